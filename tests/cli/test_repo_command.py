"""bbq repo 命令测试"""

import pytest
from click.testing import CliRunner

from bbq.cli.main import cli


@pytest.fixture
def runner(bbq_root, write_config):
    write_config(github_user_prefix=False)
    return CliRunner()


class TestRepoClone:
    """测试 repo clone"""

    def test_clone(self, runner, bbq_root, make_source_repo):
        source = make_source_repo("project")

        result = runner.invoke(cli, ["repo", "clone", str(source)])

        assert result.exit_code == 0, result.output
        assert "仓库已登记：project" in result.output
        assert (bbq_root / "repos" / "project" / "HEAD").is_file()

    def test_clone_with_name(self, runner, bbq_root, make_source_repo):
        source = make_source_repo("project")
        result = runner.invoke(cli, ["repo", "clone", str(source), "renamed"])
        assert result.exit_code == 0, result.output
        assert (bbq_root / "repos" / "renamed").is_dir()

    def test_clone_collision(self, runner, make_source_repo):
        """重复克隆时退出码为 1"""
        source = make_source_repo("project")
        runner.invoke(cli, ["repo", "clone", str(source)])

        result = runner.invoke(cli, ["repo", "clone", str(source)])

        assert result.exit_code == 1
        assert "错误：" in result.output

    def test_clone_failure_shows_details(self, runner, tmp_path):
        result = runner.invoke(cli, ["repo", "clone", str(tmp_path / "does-not-exist")])
        assert result.exit_code == 1
        assert "错误：" in result.output


class TestRepoList:
    """测试 repo list"""

    def test_empty(self, runner):
        result = runner.invoke(cli, ["repo", "list"])
        assert result.exit_code == 0
        assert "还没有仓库" in result.output

    def test_table(self, runner, make_source_repo):
        source = make_source_repo("project")
        runner.invoke(cli, ["repo", "clone", str(source), "beta"])
        runner.invoke(cli, ["repo", "clone", str(source), "alpha"])

        result = runner.invoke(cli, ["repo", "list"])

        assert result.exit_code == 0
        assert "NAME" in result.output
        assert result.output.index("alpha") < result.output.index("beta")
        assert str(source) in result.output


class TestRepoRemove:
    """测试 repo rm"""

    def test_remove(self, runner, bbq_root, make_source_repo):
        runner.invoke(cli, ["repo", "clone", str(make_source_repo("project"))])

        result = runner.invoke(cli, ["repo", "rm", "project"])

        assert result.exit_code == 0, result.output
        assert not (bbq_root / "repos" / "project").exists()

    def test_remove_missing(self, runner):
        result = runner.invoke(cli, ["repo", "rm", "nope"])
        assert result.exit_code == 1
        assert "错误：" in result.output

    def test_remove_with_worktrees(self, runner, bbq_root, make_source_repo):
        """仓库下仍有 worktree 时拒绝删除"""
        runner.invoke(cli, ["repo", "clone", str(make_source_repo("project"))])
        runner.invoke(cli, ["worktree", "create", "project", "--name", "wt"])

        result = runner.invoke(cli, ["repo", "rm", "project"])

        assert result.exit_code == 1
        assert (bbq_root / "repos" / "project").exists()
        assert (bbq_root / "worktrees" / "project" / "wt").exists()

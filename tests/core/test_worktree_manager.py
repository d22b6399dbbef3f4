"""WorktreeManager 单元测试

在临时根目录下使用真实 git 验证创建、列出、删除以及脚本时序。
"""

import json
import random
from pathlib import Path

import pytest

from bbq.core.config_manager import BbqConfig
from bbq.core.data_structures import OperationState
from bbq.core.exceptions import (
    GitCommandError,
    HookFailed,
    InvalidBranchName,
    InvalidWorktreeName,
    MissingInterpreter,
    WorktreeAlreadyExists,
    WorktreeNameRequired,
    WorktreeNotFound,
)
from bbq.core.git_client import GitClient
from bbq.core.hook_manager import HookManager
from bbq.core.logger import LoggerConfig, configure_logger
from bbq.core.worktree_manager import WorktreeManager
from bbq.core.worktree_names import CITY_NAMES


@pytest.fixture
def repo(registry, make_source_repo):
    source = make_source_repo("project", branches=["develop"])
    return registry.clone(str(source))


def current_branch(path: Path, run_git) -> str:
    return run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=path)


class TestCreate:
    """测试创建"""

    def test_create_new_branch_from_default(self, manager, repo, paths, run_git):
        """未指定分支时以 worktree 名称新建分支"""
        worktree = manager.create(repo, name="feature-x")

        assert worktree.path == paths.worktree_path("project", "feature-x")
        assert worktree.path.is_dir()
        assert worktree.branch == "feature-x"
        assert current_branch(worktree.path, run_git) == "feature-x"
        assert (worktree.path / "README.md").exists()

    def test_create_existing_branch(self, manager, repo, run_git):
        """已存在的本地分支直接检出"""
        worktree = manager.create(repo, name="dev", branch="develop")
        assert worktree.branch == "develop"
        assert current_branch(worktree.path, run_git) == "develop"

    def test_create_missing_branch_is_created(self, manager, repo, run_git):
        """分支不存在时从 HEAD 新建"""
        worktree = manager.create(repo, name="login", branch="feature/login")
        assert current_branch(worktree.path, run_git) == "feature/login"

    def test_create_from_source(self, manager, repo, run_git):
        """--from 指定新分支起点"""
        worktree = manager.create(repo, name="hotfix", source="develop")
        develop_sha = run_git("--git-dir", str(repo.bare_path), "rev-parse", "refs/heads/develop")
        assert run_git("rev-parse", "HEAD", cwd=worktree.path) == develop_sha
        assert worktree.branch == "hotfix"

    def test_create_remote_branch_spec(self, manager, repo, run_git):
        """origin/<branch> 拉取后检出同名分支"""
        worktree = manager.create(repo, name="dev", branch="origin/develop")
        assert worktree.branch == "develop"
        assert current_branch(worktree.path, run_git) == "develop"

    def test_name_collision_same_repo(self, manager, repo):
        """同一仓库下重名失败"""
        manager.create(repo, name="feature-x")
        with pytest.raises(WorktreeAlreadyExists):
            manager.create(repo, name="feature-x")

    def test_same_name_in_different_repos(self, manager, registry, make_source_repo):
        """不同仓库下可以同名"""
        source = make_source_repo("shared")
        first = registry.clone(str(source), "first")
        second = registry.clone(str(source), "second")

        a = manager.create(first, name="feature-x")
        b = manager.create(second, name="feature-x")

        assert a.path != b.path
        assert a.path.exists() and b.path.exists()

    def test_name_required(self, manager, repo):
        """未提供名称且未启用城市名时失败"""
        with pytest.raises(WorktreeNameRequired):
            manager.create(repo)

    def test_city_name(self, paths, repo):
        """default_worktree_name=cities 时自动命名"""
        manager = WorktreeManager(
            paths,
            BbqConfig(github_user_prefix=False, default_worktree_name="Cities"),
            rng=random.Random(1),
        )
        worktree = manager.create(repo)
        assert worktree.name in CITY_NAMES
        assert worktree.path.is_dir()

    @pytest.mark.parametrize("name", ["bad name", "a/b", "..", "ü"])
    def test_invalid_name(self, manager, repo, name):
        with pytest.raises(InvalidWorktreeName):
            manager.create(repo, name=name)

    def test_invalid_branch(self, manager, repo):
        with pytest.raises(InvalidBranchName):
            manager.create(repo, name="x", branch="/leading")

    def test_github_user_prefix(self, paths, repo, run_git):
        """开启 github_user_prefix 且有 gh 登录名时分支带前缀"""
        class LoggedInClient(GitClient):
            def gh_username(self):
                return "alice"

        manager = WorktreeManager(paths, BbqConfig(), git_factory=LoggedInClient)
        worktree = manager.create(repo, name="wt")

        assert worktree.branch == "alice/wt"
        assert current_branch(worktree.path, run_git) == "alice/wt"

    def test_state_history(self, manager, repo):
        manager.create(repo, name="feature-x")
        assert manager.last_operation.states == (
            OperationState.PENDING,
            OperationState.RESOLVING_INPUTS,
            OperationState.MATERIALIZING,
            OperationState.HOOK_RUNNING,
            OperationState.DONE,
        )


class TestCreateHooks:
    """测试 post-create 脚本"""

    def test_missing_hook_is_noop(self, manager, repo):
        """没有 post-create 脚本时正常创建"""
        worktree = manager.create(repo, name="plain")
        assert worktree.path.exists()
        assert manager.last_operation.state is OperationState.DONE

    def test_post_create_runs_in_worktree(self, paths, registry, make_source_repo):
        """脚本随仓库内容检出，在新 worktree 中执行"""
        source = make_source_repo("hooked", files={
            ".bbq/worktree/post-create": "#!/bin/sh\necho created > created.txt\n",
        })
        repo = registry.clone(str(source))
        seen = []
        hooks = HookManager(capture_output=True)
        hooks.register_listener(lambda kind, script: seen.append(script))
        manager = WorktreeManager(paths, BbqConfig(github_user_prefix=False), hook_manager=hooks)

        worktree = manager.create(repo, name="wt")

        assert (worktree.path / "created.txt").read_text().strip() == "created"
        assert seen == [worktree.path / ".bbq" / "worktree" / "post-create"]

    def test_post_create_failure_keeps_worktree(self, manager, registry, make_source_repo):
        """脚本失败时操作报错，但 worktree 保留"""
        source = make_source_repo("failing", files={
            ".bbq/worktree/post-create": "#!/bin/sh\nexit 3\n",
        })
        repo = registry.clone(str(source))

        with pytest.raises(HookFailed) as exc_info:
            manager.create(repo, name="wt")

        assert exc_info.value.exit_code == 3
        assert manager.last_operation.state is OperationState.FAILED
        assert manager.last_operation.failure_reason
        assert [item.name for item in manager.list(repo)] == ["wt"]

    def test_post_create_unbalanced_quote(self, manager, registry, make_source_repo):
        """首行引号不成对时以 HookFailed 结束，操作标记为失败"""
        source = make_source_repo("quoted", files={
            ".bbq/worktree/post-create": '#!/bin/sh -c "oops\necho hi\n',
        })
        repo = registry.clone(str(source))

        with pytest.raises(HookFailed):
            manager.create(repo, name="wt")

        assert manager.last_operation.state is OperationState.FAILED

    def test_post_create_missing_interpreter(self, manager, registry, make_source_repo):
        source = make_source_repo("noshebang", files={
            ".bbq/worktree/post-create": "echo hi\n",
        })
        repo = registry.clone(str(source))
        with pytest.raises(MissingInterpreter):
            manager.create(repo, name="wt")


class TestListAndGet:
    """测试列出与查找"""

    def test_list_empty(self, manager, repo):
        assert manager.list(repo) == []

    def test_list_sorted(self, manager, repo):
        manager.create(repo, name="zeta")
        manager.create(repo, name="alpha")
        worktrees = manager.list(repo)
        assert [item.name for item in worktrees] == ["alpha", "zeta"]
        assert all(item.repo_name == "project" for item in worktrees)
        assert all(item.head for item in worktrees)

    def test_list_reflects_disk(self, manager, repo, run_git):
        """在 bbq 之外删除的 worktree 也会反映出来"""
        worktree = manager.create(repo, name="outside")
        run_git("--git-dir", str(repo.bare_path), "worktree", "remove", str(worktree.path))
        assert manager.list(repo) == []

    def test_get_by_branch(self, manager, repo):
        manager.create(repo, name="login", branch="feature/login")
        assert manager.get(repo, "feature/login").name == "login"

    def test_get_missing(self, manager, repo):
        with pytest.raises(WorktreeNotFound):
            manager.get(repo, "nope")


class TestRemove:
    """测试删除"""

    def test_remove(self, manager, repo):
        worktree = manager.create(repo, name="feature-x")
        manager.remove(repo, "feature-x")
        assert not worktree.path.exists()
        assert manager.list(repo) == []
        assert manager.last_operation.states == (
            OperationState.PENDING,
            OperationState.RESOLVING_INPUTS,
            OperationState.HOOK_RUNNING,
            OperationState.DETACHING,
            OperationState.DONE,
        )

    def test_remove_missing(self, manager, repo):
        with pytest.raises(WorktreeNotFound):
            manager.remove(repo, "nope")
        assert manager.last_operation.state is OperationState.FAILED

    def test_pre_delete_failure_blocks_removal(self, manager, repo):
        """pre-delete 退出码为 1 时不删除"""
        worktree = manager.create(repo, name="guarded")
        hook = worktree.path / ".bbq" / "worktree" / "pre-delete"
        hook.parent.mkdir(parents=True)
        hook.write_text("#!/bin/sh\nexit 1\n")

        with pytest.raises(HookFailed) as exc_info:
            manager.remove(repo, "guarded")

        assert exc_info.value.exit_code == 1
        assert worktree.path.exists()
        assert hook.exists()
        assert [item.name for item in manager.list(repo)] == ["guarded"]

    def test_pre_delete_sees_worktree(self, manager, repo, tmp_path):
        """pre-delete 在删除前运行，可以读取 worktree 内容"""
        worktree = manager.create(repo, name="inspect")
        marker = tmp_path / "seen.txt"
        hook = worktree.path / ".bbq" / "worktree" / "pre-delete"
        hook.parent.mkdir(parents=True)
        hook.write_text(f"#!/bin/sh\ncat README.md > {marker}\n")

        # 未跟踪的脚本文件需要 --force
        manager.remove(repo, "inspect", force=True)

        assert marker.read_text().startswith("# project")
        assert not worktree.path.exists()

    def test_dirty_worktree_needs_force(self, manager, repo):
        """有未提交修改时需要 force"""
        worktree = manager.create(repo, name="dirty")
        (worktree.path / "README.md").write_text("changed\n")

        with pytest.raises(GitCommandError):
            manager.remove(repo, "dirty")
        assert worktree.path.exists()

        manager.remove(repo, "dirty", force=True)
        assert not worktree.path.exists()


class TestLogging:
    """测试日志上下文"""

    def test_events_carry_repo_and_worktree(self, manager, repo, tmp_path):
        """创建与删除的日志都带上仓库名和 worktree 名"""
        log_dir = tmp_path / "logs"
        configure_logger(LoggerConfig(log_dir=log_dir, level="DEBUG", json_output=True))

        manager.create(repo, name="logged")
        manager.remove(repo, "logged")

        events = [
            json.loads(line)
            for line in (log_dir / "bbq.log").read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        by_name = {event["event"]: event for event in events}
        for name in ("Worktree materialized", "Worktree ready", "Worktree detached"):
            assert by_name[name]["repo"] == "project"
            assert by_name[name]["worktree"] == "logged"
        assert by_name["Worktree materialized"]["branch"] == "logged"

"""测试公共夹具

每个测试都在独立的 HOME 下运行，不会读写真实的 ~/.bbq。
"""

import subprocess
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest
import tomli_w

from bbq.core.config_manager import BbqConfig
from bbq.core.hook_manager import HookManager
from bbq.core.logger import LoggerConfig, configure_logger
from bbq.core.paths import BbqPaths
from bbq.core.repo_registry import RepoRegistry
from bbq.core.worktree_manager import WorktreeManager


def git(*args: str, cwd: Optional[Path] = None) -> str:
    """运行 git 并返回标准输出"""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """隔离 HOME、BBQ_ROOT_DIR 与 git 身份"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("BBQ_ROOT_DIR", raising=False)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    yield home
    # CLI 会把日志指向临时 HOME，测试结束后恢复静默配置
    configure_logger(LoggerConfig())


@pytest.fixture
def bbq_root(tmp_path, monkeypatch):
    """通过 BBQ_ROOT_DIR 指定的根目录"""
    root = tmp_path / "bbq-root"
    monkeypatch.setenv("BBQ_ROOT_DIR", str(root))
    return root


@pytest.fixture
def write_config(isolated_env):
    """写入 ~/.bbq/config.toml"""
    def _write(**values) -> Path:
        path = isolated_env / ".bbq" / "config.toml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomli_w.dumps(values), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def make_source_repo(tmp_path):
    """创建带提交的普通仓库，作为克隆来源

    默认分支为 main，branches 中的其它分支从 main 派生；
    files 中的文件会在 main 上提交（路径 -> 内容）。
    """
    def _make(
        name: str = "project",
        branches: Iterable[str] = (),
        files: Optional[Dict[str, str]] = None,
    ) -> Path:
        repo = tmp_path / "sources" / name
        repo.mkdir(parents=True)
        git("init", cwd=repo)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo)

        (repo / "README.md").write_text(f"# {name}\n", encoding="utf-8")
        for relative, content in (files or {}).items():
            target = repo / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        git("add", "-A", cwd=repo)
        git("commit", "-m", "initial commit", cwd=repo)

        for branch in branches:
            git("branch", branch, cwd=repo)
        return repo
    return _make


@pytest.fixture
def paths(bbq_root) -> BbqPaths:
    return BbqPaths(bbq_root)


@pytest.fixture
def registry(paths) -> RepoRegistry:
    return RepoRegistry(paths)


@pytest.fixture
def config() -> BbqConfig:
    return BbqConfig(github_user_prefix=False)


@pytest.fixture
def manager(paths, config) -> WorktreeManager:
    return WorktreeManager(paths, config, hook_manager=HookManager(capture_output=True))


@pytest.fixture
def run_git():
    """在测试中直接调用 git"""
    return git

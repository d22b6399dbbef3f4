"""BBQ 目录布局

所有裸仓库和 worktree 都放在同一个根目录下：

    <root>/repos/<repo>                裸仓库
    <root>/worktrees/<repo>/<name>     worktree 检出目录

根目录优先级：环境变量 BBQ_ROOT_DIR > 配置项 root_dir > ~/.bbq
"""

import os
from pathlib import Path
from typing import Optional

ROOT_ENV_VAR = "BBQ_ROOT_DIR"


def config_root() -> Path:
    """配置目录（固定为 ~/.bbq，不受 BBQ_ROOT_DIR 影响）"""
    return Path.home() / ".bbq"


def expand_user_path(value: str) -> Path:
    """展开以 ~ 开头的路径"""
    value = value.strip()
    if value == "~" or value.startswith("~/"):
        return Path.home() / value[2:]
    return Path(value)


def resolve_root(root_dir: Optional[str] = None) -> Path:
    """解析本次调用使用的根目录

    Args:
        root_dir: 配置文件中的 root_dir

    Returns:
        根目录路径
    """
    env_root = os.environ.get(ROOT_ENV_VAR, "")
    if env_root.strip():
        return Path(env_root.strip())

    if root_dir and root_dir.strip():
        return expand_user_path(root_dir)

    return config_root()


class BbqPaths:
    """根目录下的路径计算"""

    def __init__(self, root: Path):
        self.root = Path(root)

    @property
    def repos_root(self) -> Path:
        return self.root / "repos"

    @property
    def worktrees_root(self) -> Path:
        return self.root / "worktrees"

    def repo_path(self, name: str) -> Path:
        return self.repos_root / name

    def repo_worktrees_dir(self, repo_name: str) -> Path:
        return self.worktrees_root / repo_name

    def worktree_path(self, repo_name: str, name: str) -> Path:
        return self.repo_worktrees_dir(repo_name) / name

    def ensure(self) -> None:
        """确保 repos/ 与 worktrees/ 目录存在"""
        self.repos_root.mkdir(parents=True, exist_ok=True)
        self.worktrees_root.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"BbqPaths(root={self.root!r})"

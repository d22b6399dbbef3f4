"""BBQ - 裸仓库与 Git Worktree 管理工具"""

__version__ = "0.1.0"

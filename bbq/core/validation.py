"""名称校验工具"""

import string
from typing import Optional

_WORKTREE_CHARS = set(string.ascii_letters + string.digits + "-_.")
_BRANCH_CHARS = _WORKTREE_CHARS | {"/"}


def validate_worktree_name(name: str) -> Optional[str]:
    """校验 worktree 名称

    Returns:
        错误描述，合法时返回 None
    """
    if not name:
        return "Worktree name required"
    if any(ch.isspace() for ch in name):
        return "Worktree name cannot contain spaces"
    if any(ch not in _WORKTREE_CHARS for ch in name):
        return "Worktree name can only use letters, numbers, '-', '_', or '.'"
    if name in (".", ".."):
        return "Worktree name cannot be '.' or '..'"
    return None


def validate_branch_name(name: str) -> Optional[str]:
    """校验分支名

    Returns:
        错误描述，合法时返回 None
    """
    if not name:
        return "Branch name required"
    if any(ch.isspace() for ch in name):
        return "Branch name cannot contain spaces"
    if name.startswith("/") or name.endswith("/"):
        return "Branch name cannot start or end with '/'"
    if any(ch not in _BRANCH_CHARS for ch in name):
        return "Branch name can only use letters, numbers, '-', '_', '.', or '/'"
    return None


def sanitize_name(raw: str) -> str:
    """把任意字符串规整为目录名

    非法字符连续出现时只替换为一个 '-'，并去掉首尾的 '-'。
    """
    out = []
    last_dash = False
    for ch in raw:
        if ch in _WORKTREE_CHARS:
            out.append(ch)
            last_dash = False
        elif not last_dash:
            out.append("-")
            last_dash = True
    return "".join(out).strip("-")

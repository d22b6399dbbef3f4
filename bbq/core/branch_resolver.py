"""默认分支解析

未指定分支时按固定优先级为裸仓库选出一个分支名，只做只读查询，永不失败。
"""

from typing import Callable, Optional

from bbq.core.data_structures import Repository
from bbq.core.git_client import GitClient
from bbq.core.exceptions import GitException
from bbq.core.logger import get_logger

logger = get_logger("branch_resolver")

FALLBACK_BRANCH = "main"

# 按顺序检查的候选引用：先远程跟踪分支，再本地分支
CANDIDATE_REFS = (
    "refs/remotes/origin/main",
    "refs/remotes/origin/master",
    "refs/heads/main",
    "refs/heads/master",
)


def ref_to_branch_name(reference: str) -> str:
    """把完整引用转换为分支名

    refs/remotes/origin/develop -> develop
    refs/heads/main -> main
    """
    for prefix in ("refs/remotes/origin/", "refs/remotes/", "refs/heads/"):
        if reference.startswith(prefix):
            return reference[len(prefix):]
    return reference


class BranchResolver:
    """默认分支解析器

    优先级：
      1. origin/HEAD 指向的分支
      2. 裸仓库自身 HEAD 指向的分支
      3. origin/main、origin/master
      4. 本地 main、master
      5. 常量 "main"
    """

    def __init__(self, git_factory: Optional[Callable[[Repository], GitClient]] = None):
        self._git_factory = git_factory or (lambda repo: GitClient(repo.bare_path))

    def resolve_default_branch(self, repo: Repository) -> str:
        """解析默认分支

        Args:
            repo: 裸仓库

        Returns:
            分支名
        """
        git = self._git_factory(repo)
        try:
            branch = self._resolve(git)
        except GitException as e:
            logger.warning("Default branch lookup failed", repo=repo.name, error=str(e))
            branch = None

        if branch is None:
            branch = FALLBACK_BRANCH
        logger.debug("Default branch resolved", repo=repo.name, branch=branch)
        return branch

    def _resolve(self, git: GitClient) -> Optional[str]:
        for symbolic in ("refs/remotes/origin/HEAD", "HEAD"):
            target = git.symbolic_ref(symbolic)
            # 未诞生的分支（空仓库的 HEAD）不算存在
            if target and git.ref_exists(target):
                return ref_to_branch_name(target)

        for reference in CANDIDATE_REFS:
            if git.ref_exists(reference):
                return ref_to_branch_name(reference)

        return None

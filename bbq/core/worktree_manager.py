"""Worktree 管理器

负责某个裸仓库下 worktree 的创建、列出和删除，组合默认分支解析与生命周期脚本。

创建顺序：解析输入 -> git worktree add -> post-create 脚本
删除顺序：解析输入 -> pre-delete 脚本 -> git worktree remove

worktree 列表每次都从 git 元数据重新读取，不做缓存。
"""

import random
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from bbq.core.branch_resolver import BranchResolver
from bbq.core.config_manager import BbqConfig
from bbq.core.data_structures import (
    HookKind,
    OperationState,
    Repository,
    Worktree,
    WorktreeOperation,
)
from bbq.core.exceptions import (
    BbqException,
    InvalidBranchName,
    InvalidWorktreeName,
    WorktreeAlreadyExists,
    WorktreeNameRequired,
    WorktreeNotFound,
)
from bbq.core.git_client import GitClient
from bbq.core.hook_manager import HookManager
from bbq.core.logger import OperationScope, get_logger
from bbq.core.paths import BbqPaths
from bbq.core.validation import validate_branch_name, validate_worktree_name
from bbq.core.worktree_names import DefaultWorktreeNameMode, city_worktree_name

logger = get_logger("worktree_manager")


class WorktreeManager:
    """Worktree 管理器

    last_operation 保存最近一次创建 / 删除操作的状态记录，
    失败时其中带有失败原因。
    """

    def __init__(
        self,
        paths: BbqPaths,
        config: Optional[BbqConfig] = None,
        hook_manager: Optional[HookManager] = None,
        branch_resolver: Optional[BranchResolver] = None,
        git_factory: Optional[Callable[[Optional[Path]], GitClient]] = None,
        rng: Optional[random.Random] = None,
    ):
        """初始化 Worktree 管理器

        Args:
            paths: 根目录布局
            config: 本次调用使用的配置
            hook_manager: 生命周期脚本管理器
            branch_resolver: 默认分支解析器
            git_factory: 根据裸仓库路径构造 GitClient，测试时可替换
            rng: 城市名随机数生成器
        """
        self.paths = paths
        self.config = config or BbqConfig()
        self.hook_manager = hook_manager or HookManager()
        self._git_factory = git_factory or GitClient
        self.branch_resolver = branch_resolver or BranchResolver(
            lambda repo: self._git_factory(repo.bare_path)
        )
        self._rng = rng
        self.last_operation: Optional[WorktreeOperation] = None

    def create(
        self,
        repo: Repository,
        name: Optional[str] = None,
        branch: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Worktree:
        """创建 worktree

        Args:
            repo: 所属仓库
            name: worktree 名称，省略时按 default_worktree_name 自动命名
            branch: 检出的分支，省略时以 worktree 名称新建分支
            source: 新建分支的起点，省略时使用默认分支

        Returns:
            新建的 worktree

        Raises:
            WorktreeNameRequired: 未提供名称且未启用自动命名
            InvalidWorktreeName / InvalidBranchName: 名称不合法
            WorktreeAlreadyExists: 同名 worktree 已存在
            GitException: git 操作失败
            HookException: post-create 脚本失败，此时 worktree 已经存在并保留
        """
        operation = WorktreeOperation(kind="create", repo_name=repo.name, worktree_name=name)
        self.last_operation = operation

        with OperationScope("worktree_create", {"repo": repo.name}, logger):
            try:
                operation.transition(OperationState.RESOLVING_INPUTS)
                git = self._git_factory(repo.bare_path)
                existing = self.list(repo)

                worktree_name = self._resolve_name(repo, name, existing)
                operation.worktree_name = worktree_name
                log = logger.bind(repo=repo.name, worktree=worktree_name)
                worktree_path = self.paths.worktree_path(repo.name, worktree_name)
                if worktree_path.exists() or any(item.name == worktree_name for item in existing):
                    raise WorktreeAlreadyExists(f"Worktree 已存在：{repo.name}/{worktree_name}")

                branch_name, start_point = self._resolve_branch(repo, git, worktree_name, branch, source)

                operation.transition(OperationState.MATERIALIZING)
                git.add_worktree(worktree_path, branch_name, start_point)
                log.info("Worktree materialized", branch=branch_name, path=str(worktree_path))
                worktree = Worktree(
                    name=worktree_name,
                    path=worktree_path,
                    repo_name=repo.name,
                    branch=branch_name,
                )

                operation.transition(OperationState.HOOK_RUNNING)
                self.hook_manager.run_hook(repo, HookKind.POST_CREATE, worktree_path)

                operation.transition(OperationState.DONE)
                log.info("Worktree ready")
                return worktree
            except BbqException as e:
                operation.fail(e.message)
                raise

    def list(self, repo: Repository) -> List[Worktree]:
        """列出仓库下的 worktree（按名称排序）"""
        git = self._git_factory(repo.bare_path)
        worktrees = [
            Worktree(
                name=Path(item["path"]).name,
                path=Path(item["path"]),
                repo_name=repo.name,
                branch=item.get("branch"),
                head=item.get("head"),
            )
            for item in git.list_worktrees()
        ]
        return sorted(worktrees, key=lambda w: w.name)

    def get(self, repo: Repository, name: str) -> Worktree:
        """按目录名或分支名查找 worktree

        Raises:
            WorktreeNotFound: 不存在
        """
        for worktree in self.list(repo):
            if worktree.matches(name):
                return worktree
        raise WorktreeNotFound(f"Worktree 不存在：{repo.name}/{name}")

    def remove(self, repo: Repository, name: str, force: bool = False) -> None:
        """删除 worktree

        pre-delete 脚本失败时不做任何删除。

        Raises:
            WorktreeNotFound: 不存在
            HookException: pre-delete 脚本失败
            GitException: git worktree remove 失败
        """
        operation = WorktreeOperation(kind="remove", repo_name=repo.name, worktree_name=name)
        self.last_operation = operation

        with OperationScope("worktree_remove", {"repo": repo.name, "worktree": name}, logger):
            try:
                operation.transition(OperationState.RESOLVING_INPUTS)
                worktree = self.get(repo, name)
                operation.worktree_name = worktree.name
                log = logger.bind(repo=repo.name, worktree=worktree.name)

                operation.transition(OperationState.HOOK_RUNNING)
                self.hook_manager.run_hook(repo, HookKind.PRE_DELETE, worktree.path)

                operation.transition(OperationState.DETACHING)
                self._git_factory(repo.bare_path).remove_worktree(worktree.path, force=force)
                log.info("Worktree detached", force=force)

                operation.transition(OperationState.DONE)
            except BbqException as e:
                operation.fail(e.message)
                raise

    def _resolve_name(self, repo: Repository, name: Optional[str], existing: List[Worktree]) -> str:
        if name is not None and name.strip():
            worktree_name = name.strip()
        elif DefaultWorktreeNameMode.from_config(self.config.default_worktree_name) is DefaultWorktreeNameMode.CITIES:
            taken = {item.name for item in existing}
            repo_dir = self.paths.repo_worktrees_dir(repo.name)
            if repo_dir.is_dir():
                taken.update(entry.name for entry in repo_dir.iterdir())
            worktree_name = city_worktree_name(taken, self._rng)
            logger.info("Generated worktree name", repo=repo.name, name=worktree_name)
        else:
            raise WorktreeNameRequired('需要提供 worktree 名称（或设置 default_worktree_name = "cities"）')

        error = validate_worktree_name(worktree_name)
        if error:
            raise InvalidWorktreeName(error)
        return worktree_name

    def _resolve_branch(
        self,
        repo: Repository,
        git: GitClient,
        worktree_name: str,
        branch: Optional[str],
        source: Optional[str],
    ) -> Tuple[str, Optional[str]]:
        """确定检出的分支与新建分支的起点

        Returns:
            (分支名, 起点)，起点为 None 表示检出已有的本地分支
        """
        source = source.strip() if source else None
        if source:
            error = validate_branch_name(source)
            if error:
                raise InvalidBranchName(error)

        if branch is not None and branch.strip():
            branch = branch.strip()
            error = validate_branch_name(branch)
            if error:
                raise InvalidBranchName(error)

            remote_spec = self._split_remote_branch(git, branch)
            if remote_spec is not None:
                remote, remote_branch = remote_spec
                tracking = self._fetch_remote_branch(git, remote, remote_branch)
                if git.ref_exists(f"refs/heads/{remote_branch}"):
                    return remote_branch, None
                return remote_branch, tracking

            start_point = self._start_point(git, source) if source else "HEAD"
            return self._materialize_plan(git, branch, start_point)

        new_branch = self._new_branch_name(git, worktree_name)
        if source:
            start_point = self._start_point(git, source)
        else:
            default_branch = self.branch_resolver.resolve_default_branch(repo)
            start_point = self._existing_ref(git, default_branch) or default_branch
        logger.debug("New branch planned", repo=repo.name, branch=new_branch, start_point=start_point)
        return self._materialize_plan(git, new_branch, start_point)

    def _materialize_plan(self, git: GitClient, branch: str, start_point: str) -> Tuple[str, Optional[str]]:
        # 本地分支优先，其次 origin 上的同名分支
        if git.ref_exists(f"refs/heads/{branch}"):
            return branch, None
        if git.ref_exists(f"refs/remotes/origin/{branch}"):
            return branch, f"origin/{branch}"
        return branch, start_point

    def _new_branch_name(self, git: GitClient, worktree_name: str) -> str:
        if not self.config.github_user_prefix:
            return worktree_name
        username = git.gh_username()
        if not username:
            return worktree_name
        candidate = f"{username}/{worktree_name}"
        if validate_branch_name(candidate):
            return worktree_name
        return candidate

    def _start_point(self, git: GitClient, source: str) -> str:
        remote_spec = self._split_remote_branch(git, source)
        if remote_spec is not None:
            return self._fetch_remote_branch(git, *remote_spec)
        return source

    @staticmethod
    def _existing_ref(git: GitClient, branch: str) -> Optional[str]:
        if git.ref_exists(f"refs/heads/{branch}"):
            return branch
        if git.ref_exists(f"refs/remotes/origin/{branch}"):
            return f"origin/{branch}"
        return None

    @staticmethod
    def _split_remote_branch(git: GitClient, spec: str) -> Optional[Tuple[str, str]]:
        """把 <remote>/<branch> 拆开，remote 不存在时返回 None"""
        remote, sep, remote_branch = spec.partition("/")
        if not sep or not remote_branch:
            return None
        if remote not in git.list_remotes():
            return None
        return remote, remote_branch

    @staticmethod
    def _fetch_remote_branch(git: GitClient, remote: str, remote_branch: str) -> str:
        """拉取远程分支，返回可用作起点的 <remote>/<branch>"""
        git.fetch(remote)
        # 裸仓库默认没有远程跟踪分支的 refspec
        if not git.ref_exists(f"refs/remotes/{remote}/{remote_branch}"):
            git.fetch(remote, f"refs/heads/{remote_branch}:refs/remotes/{remote}/{remote_branch}")
        return f"{remote}/{remote_branch}"

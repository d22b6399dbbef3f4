"""裸仓库登记

<root>/repos 下每个目录就是一个已登记的裸仓库，目录名即仓库名。
"""

import re
import shutil
from pathlib import Path
from typing import Callable, List, Optional

from bbq.core.data_structures import Repository
from bbq.core.exceptions import (
    InvalidRepoName,
    InvalidSource,
    GitHubCliMissing,
    RepoAlreadyExists,
    RepoHasWorktrees,
    RepoNotFound,
)
from bbq.core.git_client import GitClient
from bbq.core.logger import get_logger
from bbq.core.paths import BbqPaths
from bbq.core.validation import sanitize_name

logger = get_logger("repo_registry")

_SLUG_PART = re.compile(r"^[A-Za-z0-9._-]+$")


def repo_name_from_source(source: str) -> str:
    """从克隆来源推导仓库名

    https://github.com/user/repo.git -> repo
    git@github.com:user/repo.git -> repo
    /path/to/repo -> repo

    Raises:
        InvalidSource: 无法推导出名称
    """
    tail = source.strip().rstrip("/")
    if not tail:
        raise InvalidSource("克隆来源不能为空")

    # scp 风格地址 user@host:path
    head, sep, rest = tail.rpartition(":")
    if sep and "@" in head:
        tail = rest

    tail = tail.rsplit("/", 1)[-1]
    if tail.endswith(".git"):
        tail = tail[:-4]

    name = sanitize_name(tail)
    if not name:
        raise InvalidSource(f"无法从来源推导仓库名：{source}")
    return name


def _looks_like_url(value: str) -> bool:
    return "://" in value or value.startswith("git@") or ("@" in value and ":" in value)


def _is_path_like(value: str) -> bool:
    return value.startswith(("/", "./", "../", "~/")) or value in (".", "..") or Path(value).exists()


def github_slug(source: str) -> Optional[str]:
    """识别 GitHub owner/repo 简写，不是简写时返回 None"""
    value = source.strip()
    if not value or any(ch.isspace() for ch in value):
        return None
    if _looks_like_url(value) or _is_path_like(value):
        return None

    value = value.rstrip("/")
    if value.endswith(".git"):
        value = value[:-4]

    parts = value.split("/")
    if len(parts) != 2:
        return None
    owner, repo = parts
    if not _SLUG_PART.match(owner) or not _SLUG_PART.match(repo):
        return None
    return f"{owner}/{repo}"


class RepoRegistry:
    """裸仓库登记表

    不在内存中缓存任何状态，每次查询都重新扫描目录。
    """

    def __init__(
        self,
        paths: BbqPaths,
        git_factory: Optional[Callable[[Optional[Path]], GitClient]] = None,
    ):
        """初始化

        Args:
            paths: 根目录布局
            git_factory: 根据裸仓库路径构造 GitClient，测试时可替换
        """
        self.paths = paths
        self._git_factory = git_factory or GitClient

    def clone(self, source: str, name: Optional[str] = None) -> Repository:
        """以裸仓库形式克隆并登记

        Args:
            source: git URL、本地路径或 GitHub owner/repo 简写
            name: 仓库名，默认从来源推导

        Returns:
            新登记的仓库

        Raises:
            InvalidSource: 来源为空或无法推导名称
            InvalidRepoName: 显式名称规整后为空
            RepoAlreadyExists: 同名仓库已存在
            GitHubCliMissing: 使用简写但没有安装 gh
            GitException: 克隆失败
        """
        source = (source or "").strip()
        if not source:
            raise InvalidSource("克隆来源不能为空")

        if name is not None:
            repo_name = sanitize_name(name.strip())
            if not repo_name:
                raise InvalidRepoName(f"无效的仓库名：{name}")
        else:
            repo_name = repo_name_from_source(source)

        dest = self.paths.repo_path(repo_name)
        if dest.exists():
            raise RepoAlreadyExists(f"仓库已存在：{repo_name}")

        self.paths.ensure()
        git = self._git_factory(None)
        slug = github_slug(source)
        if slug is not None:
            if not git.gh_available():
                raise GitHubCliMissing("未找到 GitHub CLI (gh)；请安装或改用 git URL")
            git.gh_clone_bare(slug, dest)
        else:
            git.clone_bare(source, dest)

        logger.info("Repository registered", name=repo_name, source=source, path=str(dest))
        return Repository(name=repo_name, bare_path=dest, origin_url=self._origin_url(dest))

    def list(self) -> List[Repository]:
        """按名称排序列出所有仓库"""
        root = self.paths.repos_root
        if not root.is_dir():
            return []

        repos = []
        for entry in sorted(root.iterdir(), key=lambda p: p.name):
            if entry.is_dir() and (entry / "HEAD").is_file():
                repos.append(Repository(name=entry.name, bare_path=entry, origin_url=self._origin_url(entry)))
        return repos

    def get(self, name: str) -> Repository:
        """按名称查找仓库，名称可以带 .git 后缀

        Raises:
            InvalidRepoName: 名称为空
            RepoNotFound: 仓库不存在
        """
        repo_name = sanitize_name((name or "").strip())
        if repo_name.endswith(".git"):
            repo_name = repo_name[:-4]
        if not repo_name:
            raise InvalidRepoName(f"无效的仓库名：{name}")

        path = self.paths.repo_path(repo_name)
        if not (path / "HEAD").is_file():
            raise RepoNotFound(f"仓库不存在：{repo_name}")
        return Repository(name=repo_name, bare_path=path, origin_url=self._origin_url(path))

    def remove(self, name: str) -> None:
        """删除仓库

        仓库下仍有 worktree 时拒绝删除。

        Raises:
            RepoNotFound: 仓库不存在
            RepoHasWorktrees: 仍有 worktree
        """
        repo = self.get(name)
        git = self._git_factory(repo.bare_path)
        git.prune_worktrees()
        worktrees = git.list_worktrees()
        if worktrees:
            raise RepoHasWorktrees(
                f"仓库 {repo.name} 下仍有 {len(worktrees)} 个 worktree，请先删除",
                details="\n".join(item["path"] for item in worktrees),
            )

        shutil.rmtree(repo.bare_path)
        worktrees_dir = self.paths.repo_worktrees_dir(repo.name)
        if worktrees_dir.is_dir() and not any(worktrees_dir.iterdir()):
            worktrees_dir.rmdir()
        logger.info("Repository removed", name=repo.name)

    def _origin_url(self, bare_path: Path) -> Optional[str]:
        return self._git_factory(bare_path).remote_url("origin")

"""Git 操作封装类

以子进程方式驱动 git 与 gh，提供裸仓库、引用查询、worktree 操作的统一接口。
使用 structlog 记录所有操作。
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Dict, Any

from bbq.core.exceptions import GitCommandError, GitHubCliMissing, GitHubCliError
from bbq.core.logger import get_logger
from bbq.core.paths import config_root


logger = get_logger("git_client")


def _safe_cwd() -> Optional[Path]:
    """当前目录已被删除时返回一个可用的工作目录"""
    try:
        Path.cwd()
        return None
    except FileNotFoundError:
        fallback = config_root()
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


class GitClient:
    """Git 操作客户端

    git_dir 不为空时所有 git 命令都带上 --git-dir，直接作用于裸仓库。
    """

    def __init__(self, git_dir: Optional[Path] = None):
        """初始化 GitClient

        Args:
            git_dir: 裸仓库路径，None 表示不指定
        """
        self.git_dir = Path(git_dir) if git_dir else None

    def _git(self, *args: str) -> List[str]:
        """构建 git 命令"""
        cmd = ["git"]
        if self.git_dir is not None:
            cmd.extend(["--git-dir", str(self.git_dir)])
        cmd.extend(args)
        return cmd

    def _execute(self, cmd: List[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        """执行命令，启动失败统一包装为 GitCommandError"""
        cwd = cwd or _safe_cwd()
        logger.debug("Running command", command=" ".join(cmd), cwd=str(cwd) if cwd else None)

        try:
            return subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Command could not be started", command=" ".join(cmd), error=str(e))
            raise GitCommandError(f"无法执行命令：{' '.join(cmd)}", details=str(e)) from e

    def run_command(
        self,
        cmd: List[str],
        cwd: Optional[Path] = None,
        check: bool = True,
    ) -> str:
        """运行命令

        Args:
            cmd: 命令列表
            cwd: 工作目录
            check: 是否在命令失败时抛出异常

        Returns:
            去除首尾空白的标准输出

        Raises:
            GitCommandError: 命令执行失败时抛出
        """
        result = self._execute(cmd, cwd)

        if check and result.returncode != 0:
            error_msg = (result.stderr or result.stdout or "").strip()
            logger.error(
                "Git command failed",
                command=" ".join(cmd),
                return_code=result.returncode,
                error=error_msg,
            )
            raise GitCommandError(f"Git 命令执行失败：{' '.join(cmd)}", details=error_msg)

        return (result.stdout or "").strip()

    def run_status(self, cmd: List[str]) -> bool:
        """运行命令，只关心是否成功"""
        return self._execute(cmd).returncode == 0

    def get_version(self) -> Optional[str]:
        """获取 git 版本，git 不可用时返回 None"""
        try:
            output = self.run_command(["git", "--version"])
        except GitCommandError:
            return None
        return output.replace("git version ", "").strip() or None

    def clone_bare(self, source: str, dest: Path) -> None:
        """以裸仓库形式克隆

        Raises:
            GitCommandError: 克隆失败时抛出
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        self.run_command(["git", "clone", "--bare", source, str(dest)])
        logger.info("Repository cloned", source=source, dest=str(dest))

    def gh_available(self) -> bool:
        """检查 gh 是否可用"""
        try:
            return self.run_status(["gh", "--version"])
        except GitCommandError:
            return False

    def gh_version(self) -> Optional[str]:
        """获取 gh 版本，不可用时返回 None"""
        try:
            output = self.run_command(["gh", "--version"])
        except GitCommandError:
            return None
        first_line = output.splitlines()[0] if output else ""
        return first_line.replace("gh version ", "").split(" ")[0] or None

    def gh_clone_bare(self, slug: str, dest: Path) -> None:
        """通过 gh 克隆 GitHub 仓库为裸仓库

        Raises:
            GitHubCliMissing: gh 不存在
            GitHubCliError: gh 命令失败
        """
        dest.parent.mkdir(parents=True, exist_ok=True)
        cmd = ["gh", "repo", "clone", slug, str(dest), "--", "--bare"]
        try:
            result = self._execute(cmd)
        except GitCommandError as e:
            raise GitHubCliMissing("未找到 GitHub CLI (gh)；请安装或改用 git URL") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error("gh clone failed", slug=slug, error=stderr)
            raise GitHubCliError(f"gh 命令执行失败：{' '.join(cmd)}", details=stderr)
        logger.info("Repository cloned with gh", slug=slug, dest=str(dest))

    def gh_username(self) -> Optional[str]:
        """获取当前 gh 登录用户名，失败时返回 None"""
        try:
            result = self._execute(["gh", "api", "user", "-q", ".login"])
        except GitCommandError:
            return None
        if result.returncode != 0:
            return None
        lines = (result.stdout or "").strip().splitlines()
        username = lines[0].strip() if lines else ""
        return username or None

    def ref_exists(self, reference: str) -> bool:
        """检查完整引用（如 refs/heads/main）是否存在"""
        return self.run_status(self._git("show-ref", "--verify", "--quiet", reference))

    def symbolic_ref(self, reference: str) -> Optional[str]:
        """读取符号引用的目标，未设置时返回 None"""
        result = self._execute(self._git("symbolic-ref", reference))
        if result.returncode != 0:
            return None
        lines = (result.stdout or "").strip().splitlines()
        target = lines[0].strip() if lines else ""
        return target or None

    def list_remotes(self) -> List[str]:
        """列出远程仓库名"""
        output = self.run_command(self._git("remote"))
        return [line.strip() for line in output.splitlines() if line.strip()]

    def remote_url(self, remote: str = "origin") -> Optional[str]:
        """读取远程地址，未配置时返回 None"""
        result = self._execute(self._git("config", "--get", f"remote.{remote}.url"))
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip() or None

    def fetch(self, remote: str, refspec: Optional[str] = None) -> None:
        """从远程拉取"""
        cmd = self._git("fetch", remote)
        if refspec:
            cmd.append(refspec)
        self.run_command(cmd)
        logger.info("Fetched remote", remote=remote, refspec=refspec)

    def add_worktree(self, path: Path, branch: str, start_point: Optional[str] = None) -> None:
        """创建 worktree

        Args:
            path: worktree 路径
            branch: 检出的分支名
            start_point: 不为空时以它为起点新建分支

        Raises:
            GitCommandError: 创建失败时抛出
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        if start_point:
            cmd = self._git("worktree", "add", "-b", branch, str(path), start_point)
        else:
            cmd = self._git("worktree", "add", str(path), branch)

        self.run_command(cmd)
        logger.info("Worktree created", path=str(path), branch=branch, start_point=start_point)

    def remove_worktree(self, path: Path, force: bool = False) -> None:
        """删除 worktree

        Raises:
            GitCommandError: 删除失败时抛出
        """
        cmd = self._git("worktree", "remove")
        if force:
            cmd.append("--force")
        cmd.append(str(path))

        self.run_command(cmd)
        logger.info("Worktree removed", path=str(path), force=force)

    def prune_worktrees(self) -> None:
        """清理已失效的 worktree 元数据"""
        self.run_command(self._git("worktree", "prune"), check=False)

    def list_worktrees(self) -> List[Dict[str, Any]]:
        """获取 worktree 列表（不含裸仓库自身）

        Returns:
            worktree 信息列表，每个元素包含 path、head、branch
        """
        output = self.run_command(self._git("worktree", "list", "--porcelain"))
        return parse_worktree_porcelain(output, self.git_dir)


def parse_worktree_porcelain(output: str, bare_path: Optional[Path] = None) -> List[Dict[str, Any]]:
    """解析 git worktree list --porcelain 的输出

    格式（记录之间以空行分隔）:
        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/branch-name | detached | bare
    """
    worktrees: List[Dict[str, Any]] = []
    current: Dict[str, Any] = {}

    def flush() -> None:
        if not current.get("path") or current.get("bare"):
            return
        if bare_path is not None and Path(current["path"]) == Path(bare_path):
            return
        worktrees.append({
            "path": current["path"],
            "head": current.get("head"),
            "branch": current.get("branch"),
        })

    for line in output.splitlines():
        if not line.strip():
            flush()
            current = {}
            continue

        if line.startswith("worktree "):
            current["path"] = line[len("worktree "):]
        elif line.startswith("HEAD "):
            current["head"] = line[len("HEAD "):]
        elif line.startswith("branch "):
            current["branch"] = line[len("branch "):].replace("refs/heads/", "", 1)
        elif line.strip() == "bare":
            current["bare"] = True
        elif line.strip() == "detached":
            current["branch"] = None

    flush()
    return worktrees

"""生命周期脚本管理

worktree 创建后、删除前运行仓库内容中自带的脚本：

    <worktree>/.bbq/worktree/post-create
    <worktree>/.bbq/worktree/pre-delete

脚本不存在时直接视为成功；存在时首行必须是 #! 解释器声明。
"""

import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from bbq.core.data_structures import HookKind, Repository
from bbq.core.exceptions import HookFailed, MissingInterpreter
from bbq.core.logger import get_logger

logger = get_logger("hook_manager")

# 监听器签名：(脚本类型, 脚本路径)
HookListener = Callable[[HookKind, Path], None]


def hook_path(worktree_path: Path, kind: HookKind) -> Path:
    """脚本在 worktree 中的位置"""
    return Path(worktree_path) / kind.relative_path


def read_interpreter(script: Path) -> Optional[List[str]]:
    """解析脚本首行的 #! 声明

    解释器与参数按空白拆分，不解释引号。

    Returns:
        解释器及其参数，首行不是 #! 或声明为空时返回 None

    Raises:
        HookFailed: 脚本无法读取
    """
    try:
        with open(script, "r", encoding="utf-8", errors="replace") as f:
            first_line = f.readline().strip()
    except OSError as e:
        logger.error("Hook script could not be read", path=str(script), error=str(e))
        raise HookFailed(f"无法读取脚本：{script}", script=str(script), details=str(e)) from e

    if not first_line.startswith("#!"):
        return None

    return first_line[2:].split() or None


class HookManager:
    """生命周期脚本管理器

    register_listener 注册的回调会在脚本进程启动前收到通知，
    调用方借此显示“正在运行脚本”之类的状态。执行过程本身不可观察。
    """

    def __init__(self, capture_output: bool = False):
        """初始化

        Args:
            capture_output: True 时捕获脚本输出（TUI 使用），
                False 时脚本直接继承当前终端
        """
        self.capture_output = capture_output
        self._listeners: List[HookListener] = []

    def register_listener(self, listener: HookListener) -> None:
        """注册运行前通知"""
        self._listeners.append(listener)
        logger.debug("Hook listener registered", count=len(self._listeners))

    def _notify(self, kind: HookKind, script: Path) -> None:
        for listener in self._listeners:
            listener(kind, script)

    def run_hook(self, repo: Repository, kind: HookKind, worktree_path: Path) -> bool:
        """运行指定类型的脚本

        Args:
            repo: 所属仓库
            kind: 脚本类型
            worktree_path: worktree 检出目录，也是脚本的工作目录

        Returns:
            实际运行了脚本返回 True，脚本不存在返回 False

        Raises:
            MissingInterpreter: 首行没有解释器声明
            HookFailed: 脚本无法启动或以非零状态退出
        """
        worktree_path = Path(worktree_path)
        script = hook_path(worktree_path, kind)
        if not script.is_file():
            logger.debug("No hook script", repo=repo.name, kind=kind.value, path=str(script))
            return False

        interpreter = read_interpreter(script)
        if interpreter is None:
            logger.error("Hook script has no interpreter directive", repo=repo.name, path=str(script))
            raise MissingInterpreter(
                f"{kind.value} 脚本缺少解释器声明（首行应以 #! 开头）：{script}",
                script=str(script),
            )

        self._notify(kind, script)
        logger.info("Running hook script", repo=repo.name, kind=kind.value, path=str(script))

        exit_code, stderr = self._execute(interpreter + [str(script)], script, worktree_path)
        if exit_code != 0:
            logger.error(
                "Hook script failed",
                repo=repo.name,
                kind=kind.value,
                path=str(script),
                exit_code=exit_code,
            )
            # 被信号终止时没有有意义的退出码
            code = exit_code if exit_code is not None and exit_code > 0 else None
            raise HookFailed(
                f"{kind.value} 脚本执行失败（退出码 {code if code is not None else '未知'}）：{script}",
                script=str(script),
                exit_code=code,
                details=stderr or None,
            )

        logger.info("Hook script finished", repo=repo.name, kind=kind.value, path=str(script))
        return True

    def _execute(self, cmd: List[str], script: Path, cwd: Path) -> Tuple[Optional[int], str]:
        """启动脚本并等待结束，返回 (退出码, 标准错误)"""
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=self.capture_output,
                text=True,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Hook script could not be started", path=str(script), error=str(e))
            raise HookFailed(
                f"无法启动脚本：{script}",
                script=str(script),
                details=str(e),
            ) from e

        stderr = (result.stderr or "").strip() if self.capture_output else ""
        return result.returncode, stderr

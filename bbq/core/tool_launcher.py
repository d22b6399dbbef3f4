"""编辑器 / 终端启动

按固定顺序尝试候选命令，第一个能在 PATH 中找到的被启动，不等待其退出。

候选顺序：--target 指定 > 配置中的 editor / terminal > 自动探测列表
"""

import os
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from bbq.core.config_manager import BbqConfig
from bbq.core.exceptions import LaunchFailed, NoToolAvailable
from bbq.core.logger import get_logger

logger = get_logger("tool_launcher")


class ToolKind(Enum):
    """启动的工具类型"""
    EDITOR = "editor"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class ToolCandidate:
    """一个候选命令

    program 用于在 PATH 中查找，argv 是实际执行的命令行。
    """
    program: str
    argv: Tuple[str, ...]


EDITOR_PROGRAMS = ("zed", "cursor", "code")

# 编辑器别名（只保留字母数字并转小写后比较）
EDITOR_ALIASES = {
    "zed": "zed",
    "cursor": "cursor",
    "code": "code",
    "vscode": "code",
    "visualstudiocode": "code",
}

TERMINAL_PROGRAMS = (
    ("wezterm", ("start", "--cwd")),
    ("alacritty", ("--working-directory",)),
    ("kitty", ("--directory",)),
    ("gnome-terminal", ("--working-directory",)),
    ("konsole", ("--workdir",)),
    ("xfce4-terminal", ("--working-directory",)),
    ("x-terminal-emulator", ("--working-directory",)),
)

TERMINAL_TARGET = "terminal"


def normalize_target(value: str) -> str:
    """只保留字母数字并转小写：VS-Code -> vscode"""
    return "".join(ch.lower() for ch in value if ch.isascii() and ch.isalnum())


def resolve_target(target: Optional[str]) -> Tuple[ToolKind, Optional[str]]:
    """把 --target 的取值转换为 (工具类型, 指定命令)

    terminal 表示启动终端；zed / cursor / vscode 等映射到编辑器命令；
    其它取值原样当作编辑器命令。
    """
    if not target or not target.strip():
        return ToolKind.EDITOR, None
    normalized = normalize_target(target)
    if normalized == TERMINAL_TARGET:
        return ToolKind.TERMINAL, None
    return ToolKind.EDITOR, EDITOR_ALIASES.get(normalized, target.strip())


def command_candidate(command: str, path: Path) -> Optional[ToolCandidate]:
    """由用户给出的命令构造候选

    命令中带空白时交给 sh -lc 执行，例如 "code --new-window"。
    """
    command = command.strip()
    if not command:
        return None
    if any(ch.isspace() for ch in command):
        program = shlex.split(command)[0]
        line = f"{command} {shlex.quote(str(path))}"
        return ToolCandidate(program=program, argv=("sh", "-lc", line))
    return ToolCandidate(program=command, argv=(command, str(path)))


def editor_candidates(path: Path, override: Optional[str], configured: Optional[str]) -> List[ToolCandidate]:
    """编辑器候选列表；指定了 override 时只尝试它"""
    if override:
        candidate = command_candidate(EDITOR_ALIASES.get(normalize_target(override), override), path)
        return [candidate] if candidate else []

    candidates = []
    if configured:
        candidate = command_candidate(configured, path)
        if candidate:
            candidates.append(candidate)
    candidates.extend(ToolCandidate(program=name, argv=(name, str(path))) for name in EDITOR_PROGRAMS)
    return candidates


def terminal_candidates(
    path: Path,
    override: Optional[str],
    configured: Optional[str],
    platform: Optional[str] = None,
) -> List[ToolCandidate]:
    """终端候选列表

    macOS 上未配置终端时使用系统自带的 Terminal。
    """
    platform = platform or sys.platform
    if override:
        candidate = command_candidate(override, path)
        return [candidate] if candidate else []

    candidates = []
    if configured:
        if platform == "darwin" and "/" not in configured:
            candidates.append(ToolCandidate(program="open", argv=("open", "-a", configured.strip(), str(path))))
        else:
            candidate = command_candidate(configured, path)
            if candidate:
                candidates.append(candidate)
        return candidates + _default_terminals(path, platform)

    return _default_terminals(path, platform)


def _default_terminals(path: Path, platform: str) -> List[ToolCandidate]:
    if platform == "darwin":
        return [ToolCandidate(program="open", argv=("open", "-a", "Terminal", str(path)))]

    candidates = [
        ToolCandidate(program=name, argv=(name,) + args + (str(path),))
        for name, args in TERMINAL_PROGRAMS
    ]
    shell = os.environ.get("SHELL") or "sh"
    line = f"cd {shlex.quote(str(path))} && exec {shell}"
    candidates.append(ToolCandidate(program="xterm", argv=("xterm", "-e", "sh", "-lc", line)))
    return candidates


class ToolLauncher:
    """编辑器 / 终端启动器"""

    def __init__(self, config: Optional[BbqConfig] = None, platform: Optional[str] = None):
        self.config = config or BbqConfig()
        self.platform = platform or sys.platform
        # 已启动且尚未退出的进程
        self.processes: List[subprocess.Popen] = []

    def candidates(self, kind: ToolKind, path: Path, override: Optional[str] = None) -> List[ToolCandidate]:
        """按优先级排列的候选命令"""
        if kind is ToolKind.EDITOR:
            return editor_candidates(path, override, self.config.editor)
        return terminal_candidates(path, override, self.config.terminal, self.platform)

    def launch(self, kind: ToolKind, path: Path, override: Optional[str] = None) -> ToolCandidate:
        """启动第一个可用的候选

        Args:
            kind: 编辑器或终端
            path: worktree 路径
            override: 显式指定的命令

        Returns:
            实际启动的候选

        Raises:
            NoToolAvailable: 没有候选能在 PATH 中找到
            LaunchFailed: 进程启动失败
        """
        path = Path(path)
        for candidate in self.candidates(kind, path, override):
            if shutil.which(candidate.program) is None:
                logger.debug("Tool not found on PATH", kind=kind.value, program=candidate.program)
                continue
            self._spawn(kind, candidate, path)
            return candidate

        if kind is ToolKind.EDITOR:
            raise NoToolAvailable("未找到可用的编辑器；请安装 zed / cursor / code，或在配置中设置 editor")
        raise NoToolAvailable("未找到可用的终端；请在 ~/.bbq/config.toml 中设置 terminal")

    def _spawn(self, kind: ToolKind, candidate: ToolCandidate, path: Path) -> None:
        logger.info("Launching tool", kind=kind.value, command=" ".join(candidate.argv))
        try:
            process = subprocess.Popen(
                list(candidate.argv),
                cwd=str(path) if path.is_dir() else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("Tool could not be started", program=candidate.program, error=str(e))
            raise LaunchFailed(f"无法启动 {candidate.program}", details=str(e)) from e

        # 顺便回收已退出的进程
        self.processes = [p for p in self.processes if p.poll() is None]
        self.processes.append(process)

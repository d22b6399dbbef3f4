"""BBQ 核心数据结构定义

定义所有核心业务对象，包括 Repository、Worktree、HookKind 等。"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from enum import Enum
from pathlib import Path


@dataclass(frozen=True)
class Repository:
    """已登记的裸仓库"""
    name: str
    bare_path: Path
    origin_url: Optional[str] = None


@dataclass(frozen=True)
class Worktree:
    """挂在某个仓库下的 worktree

    repo_name 只是反向引用，仓库本身不在内存中维护 worktree 列表。
    """
    name: str
    path: Path
    repo_name: str
    branch: Optional[str] = None
    head: Optional[str] = None

    @property
    def is_detached(self) -> bool:
        """是否处于分离 HEAD 状态"""
        return self.branch is None

    def matches(self, name: str) -> bool:
        """按目录名或分支名匹配"""
        return self.name == name or (self.branch is not None and self.branch == name)


class HookKind(Enum):
    """生命周期脚本类型"""
    POST_CREATE = "post-create"
    PRE_DELETE = "pre-delete"

    @property
    def relative_path(self) -> Path:
        """脚本相对于 worktree 检出目录的路径"""
        return Path(".bbq") / "worktree" / self.value


class OperationState(Enum):
    """单次创建 / 删除操作的状态"""
    PENDING = "pending"
    RESOLVING_INPUTS = "resolving_inputs"
    HOOK_RUNNING = "hook_running"
    MATERIALIZING = "materializing"
    DETACHING = "detaching"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """是否为终止状态"""
        return self in (OperationState.DONE, OperationState.FAILED)


@dataclass
class WorktreeOperation:
    """创建 / 删除操作的状态记录"""
    kind: str
    repo_name: str
    worktree_name: Optional[str] = None
    state: OperationState = OperationState.PENDING
    failure_reason: Optional[str] = None
    history: List[OperationState] = field(default_factory=lambda: [OperationState.PENDING])

    def transition(self, state: OperationState) -> None:
        """进入下一个状态"""
        if self.state.is_terminal:
            raise ValueError(f"operation already finished in state {self.state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, reason: str) -> None:
        """标记失败"""
        self.failure_reason = reason
        self.transition(OperationState.FAILED)

    @property
    def states(self) -> Tuple[OperationState, ...]:
        """已经历的状态序列"""
        return tuple(self.history)

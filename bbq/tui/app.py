"""BBQ 交互界面

左侧树状列出仓库及其 worktree，底部状态栏显示正在执行的操作和错误。
耗时操作（克隆、git worktree、生命周期脚本）都在线程中执行，界面保持可用。
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Static, Tree
from textual.worker import Worker, WorkerState

from bbq import __version__
from bbq.core.context import BbqContext
from bbq.core.data_structures import HookKind, Repository, Worktree
from bbq.core.exceptions import BbqException, GitCommandError
from bbq.core.logger import get_logger
from bbq.core.tool_launcher import ToolKind
from bbq.tui.screens import ConfirmScreen, InputScreen, SetupScreen

logger = get_logger("tui")


@dataclass(frozen=True)
class NodeRef:
    """树节点对应的对象，worktree 为 None 时表示仓库节点"""
    repo: Repository
    worktree: Optional[Worktree] = None


RepoEntry = Tuple[Repository, List[Worktree], Optional[str]]


class BbqApp(App):
    """BBQ 交互界面"""

    TITLE = "bbq"
    SUB_TITLE = f"v{__version__}"

    CSS = """
    Tree {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: auto;
        background: $panel;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("c", "clone", "克隆仓库"),
        Binding("n", "new_worktree", "新建 worktree"),
        Binding("d", "delete", "删除"),
        Binding("o", "open_editor", "编辑器"),
        Binding("t", "open_terminal", "终端"),
        Binding("r", "refresh", "刷新"),
        Binding("s", "setup", "设置"),
        Binding("q", "quit", "退出"),
    ]

    def __init__(self, context: BbqContext):
        super().__init__()
        self.context = context
        self.context.hook_manager.register_listener(self._on_hook)
        self.entries: List[RepoEntry] = []

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        yield Tree("repos", id="repo-tree")
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        theme = self.context.config.theme
        if theme and theme in self.available_themes:
            self.theme = theme

        tree = self.query_one(Tree)
        tree.show_root = False
        tree.root.expand()
        tree.focus()

        self.refresh_tree()
        if self.context.config.check_updates:
            checker = self.context.update_checker()
            notice = checker.pending_notice()
            if notice:
                self.notify(notice)
            self.check_updates()

        if not self.context.config_manager.config_path.exists():
            self.action_setup()

    # 状态栏

    def _set_status(self, message: str) -> None:
        self.query_one("#status-bar", Static).update(message)

    def _show_error(self, error: BbqException) -> None:
        text = Text(f"错误：{error.message}", style="bold red")
        if error.details:
            text.append(f"\n{error.details}", style="red")
        self.query_one("#status-bar", Static).update(text)

    def _on_hook(self, kind: HookKind, script: Path) -> None:
        # 在工作线程中被调用
        self.call_from_thread(self._set_status, f"正在运行 {kind.value} 脚本 {script}")

    # 数据加载

    def _load_entries(self) -> List[RepoEntry]:
        entries = []
        for repo in self.context.registry.list():
            try:
                entries.append((repo, self.context.worktrees.list(repo), None))
            except BbqException as e:
                entries.append((repo, [], e.message))
        return entries

    def _render_tree(self) -> None:
        tree = self.query_one(Tree)
        tree.clear()
        for repo, worktrees, error in self.entries:
            label = Text(repo.name, style="bold")
            if error:
                label.append(f"  {error}", style="red")
            repo_node = tree.root.add(label, data=NodeRef(repo), expand=True)
            for item in worktrees:
                leaf = Text(item.name)
                leaf.append(f"  {item.branch or '(detached)'}", style="dim")
                repo_node.add_leaf(leaf, data=NodeRef(repo, item))

    @work(exclusive=True, group="refresh")
    async def refresh_tree(self) -> None:
        self._set_status("正在读取仓库 ...")
        try:
            self.entries = await asyncio.to_thread(self._load_entries)
            info = await asyncio.to_thread(self.context.environment_info)
        except BbqException as e:
            self._show_error(e)
            return

        self.sub_title = f"v{__version__}  {info['root']}  git {info['git'] or '?'}  gh {info['gh'] or '-'}"
        self._render_tree()
        self._set_status(f"{len(self.entries)} 个仓库")

    @work(exclusive=True, group="operation", exit_on_error=False)
    async def run_operation(self, message: str, func: Callable[[], object], done: str) -> None:
        """在线程中执行一次操作，结束后刷新"""
        self._set_status(message)
        try:
            await asyncio.to_thread(func)
        except BbqException as e:
            logger.error("Operation failed", error=e.message, error_type=type(e).__name__)
            self._show_error(e)
            return

        self.notify(done)
        self.refresh_tree()

    @work(thread=True, group="update", exit_on_error=False)
    def check_updates(self) -> None:
        try:
            notice = self.context.update_checker().check()
        except BbqException as e:
            logger.warning("Update check could not be recorded", error=e.message)
            return
        if notice:
            self.call_from_thread(self.notify, notice)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state != WorkerState.ERROR or event.worker.group != "operation":
            return
        error = event.worker.error
        logger.error("Operation crashed", error=str(error), error_type=type(error).__name__)
        self.query_one("#status-bar", Static).update(Text(f"错误：{error}", style="bold red"))

    # 选中项

    def _selected(self) -> Optional[NodeRef]:
        node = self.query_one(Tree).cursor_node
        return node.data if node is not None else None

    def _selected_worktree(self) -> Optional[NodeRef]:
        ref = self._selected()
        if ref is None or ref.worktree is None:
            self.notify("请先选中一个 worktree", severity="warning")
            return None
        return ref

    # 按键动作

    def action_refresh(self) -> None:
        self.refresh_tree()

    def action_clone(self) -> None:
        def submitted(source: Optional[str]) -> None:
            if not source:
                return
            self.run_operation(
                f"正在克隆 {source} ...",
                lambda: self.context.registry.clone(source),
                f"已克隆 {source}",
            )

        self.push_screen(InputScreen("克隆仓库", "git URL、本地路径或 owner/repo"), submitted)

    def action_new_worktree(self) -> None:
        ref = self._selected()
        if ref is None:
            self.notify("请先选中一个仓库", severity="warning")
            return
        repo = ref.repo
        title = f"在 {repo.name} 下新建 worktree"

        # 依次询问名称、起点、分支，任一步 Esc 都放弃
        def name_given(name: Optional[str]) -> None:
            if name is None:
                return
            self.push_screen(
                InputScreen(title, "新分支的起点（留空时使用默认分支）"),
                lambda source: source_given(name, source),
            )

        def source_given(name: str, source: Optional[str]) -> None:
            if source is None:
                return
            self.push_screen(
                InputScreen(title, "检出的分支（留空时以名称新建分支）"),
                lambda branch: branch_given(name, source, branch),
            )

        def branch_given(name: str, source: str, branch: Optional[str]) -> None:
            if branch is None:
                return
            self.run_operation(
                f"正在 {repo.name} 下创建 worktree ...",
                lambda: self.context.worktrees.create(
                    repo,
                    name=name or None,
                    branch=branch or None,
                    source=source or None,
                ),
                f"已在 {repo.name} 下创建 worktree",
            )

        self.push_screen(InputScreen(title, "名称（留空时自动命名）"), name_given)

    def action_delete(self) -> None:
        ref = self._selected()
        if ref is None:
            return

        if ref.worktree is not None:
            worktree = ref.worktree
            message = f"删除 worktree {ref.repo.name}/{worktree.name}？\n{worktree.path}"

            def confirmed(answer: bool) -> None:
                if answer:
                    self.remove_worktree(ref.repo, worktree)
        else:
            message = f"删除仓库 {ref.repo.name}？\n{ref.repo.bare_path}"

            def confirmed(answer: bool) -> None:
                if answer:
                    self.run_operation(
                        f"正在删除 {ref.repo.name} ...",
                        lambda: self.context.registry.remove(ref.repo.name),
                        f"已删除 {ref.repo.name}",
                    )

        self.push_screen(ConfirmScreen(message), confirmed)

    @work(exclusive=True, group="operation", exit_on_error=False)
    async def remove_worktree(self, repo: Repository, worktree: Worktree, force: bool = False) -> None:
        """删除 worktree，git 拒绝时询问是否强制删除"""
        self._set_status(f"正在删除 {worktree.name} ...")
        try:
            await asyncio.to_thread(self.context.worktrees.remove, repo, worktree.name, force)
        except GitCommandError as e:
            if force:
                self._show_error(e)
                return
            logger.warning("Worktree removal refused", worktree=worktree.name, error=e.details)
            self._show_error(e)

            def confirmed(answer: bool) -> None:
                if answer:
                    self.remove_worktree(repo, worktree, force=True)

            self.push_screen(
                ConfirmScreen(f"git 拒绝删除 {worktree.name}（可能有未提交的修改）。\n强制删除？", "强制删除"),
                confirmed,
            )
            return
        except BbqException as e:
            logger.error("Operation failed", error=e.message, error_type=type(e).__name__)
            self._show_error(e)
            return

        self.notify(f"已删除 {worktree.name}")
        self.refresh_tree()

    def action_setup(self) -> None:
        """编辑常用设置并写回配置文件"""
        config = self.context.config
        values = {
            "default_worktree_name": config.default_worktree_name,
            "editor": config.editor,
            "terminal": config.terminal,
        }

        def submitted(result: Optional[Dict[str, Optional[str]]]) -> None:
            if result is None:
                return
            try:
                for key, value in result.items():
                    self.context.config_manager.set_value(key, value)
                self.context.reload_config()
            except BbqException as e:
                self._show_error(e)
                return
            self._set_status(f"设置已保存到 {self.context.config_manager.config_path}")

        self.push_screen(SetupScreen(values), submitted)

    def action_open_editor(self) -> None:
        self._launch(ToolKind.EDITOR)

    def action_open_terminal(self) -> None:
        self._launch(ToolKind.TERMINAL)

    def _launch(self, kind: ToolKind) -> None:
        ref = self._selected_worktree()
        if ref is None:
            return
        try:
            candidate = self.context.launcher.launch(kind, ref.worktree.path)
        except BbqException as e:
            self._show_error(e)
            return
        self._set_status(f"已用 {candidate.program} 打开 {ref.worktree.path}")


def run_tui() -> None:
    """启动交互界面"""
    context = BbqContext(capture_hook_output=True)
    BbqApp(context).run()

"""交互界面的模态对话框"""

from typing import Dict, Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static


class ConfirmScreen(ModalScreen[bool]):
    """确认对话框，返回是否确认"""

    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-dialog {
        width: 70%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #confirm-message {
        width: 100%;
        height: auto;
        padding: 1 0;
    }

    #button-container {
        width: 100%;
        height: auto;
        align: center middle;
    }

    Button {
        margin: 0 1;
    }
    """

    BINDINGS = [
        Binding("y", "answer(True)", "确认", show=False),
        Binding("n", "answer(False)", "取消", show=False),
        Binding("escape", "answer(False)", "取消"),
    ]

    def __init__(self, message: str, confirm_label: str = "删除"):
        super().__init__()
        self.message = message
        self.confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Static(self.message, id="confirm-message")
            with Container(id="button-container"):
                yield Button(self.confirm_label, variant="error", id="yes")
                yield Button("取消", variant="primary", id="no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "yes")

    def action_answer(self, confirmed: bool) -> None:
        self.dismiss(confirmed)


class InputScreen(ModalScreen[Optional[str]]):
    """单行输入对话框

    回车提交输入内容（可能为空字符串），Esc 取消时返回 None。
    """

    DEFAULT_CSS = """
    InputScreen {
        align: center middle;
    }

    #input-dialog {
        width: 70%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    #input-prompt {
        width: 100%;
        height: auto;
        padding: 0 0 1 0;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "取消"),
    ]

    def __init__(self, prompt: str, placeholder: str = ""):
        super().__init__()
        self.prompt = prompt
        self.placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Vertical(id="input-dialog"):
            yield Static(self.prompt, id="input-prompt")
            yield Input(placeholder=self.placeholder, id="input-value")

    def on_mount(self) -> None:
        self.query_one(Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip())

    def action_cancel(self) -> None:
        self.dismiss(None)


class SetupScreen(ModalScreen[Optional[Dict[str, Optional[str]]]]):
    """首次运行时的设置对话框

    回车保存，返回各配置项的值（空白为 None），Esc 取消时返回 None。
    """

    FIELDS = (
        ("default_worktree_name", "默认 worktree 名称（cities 表示自动取城市名）"),
        ("editor", "编辑器（如 code、cursor、vim）"),
        ("terminal", "终端（如 Ghostty、kitty）"),
    )

    DEFAULT_CSS = """
    SetupScreen {
        align: center middle;
    }

    #setup-dialog {
        width: 70%;
        height: auto;
        border: thick $background 80%;
        background: $surface;
        padding: 1 2;
    }

    .setup-label {
        width: 100%;
        height: auto;
        padding: 1 0 0 0;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "取消"),
    ]

    def __init__(self, values: Dict[str, Optional[str]]):
        super().__init__()
        self.values = values

    def compose(self) -> ComposeResult:
        with Vertical(id="setup-dialog"):
            yield Static("bbq 设置，回车保存", id="setup-title")
            for key, label in self.FIELDS:
                yield Static(label, classes="setup-label")
                yield Input(value=self.values.get(key) or "", id=f"setup-{key}")

    def on_mount(self) -> None:
        self.query(Input).first().focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        result = {}
        for key, _ in self.FIELDS:
            value = self.query_one(f"#setup-{key}", Input).value.strip()
            result[key] = value or None
        self.dismiss(result)

    def action_cancel(self) -> None:
        self.dismiss(None)

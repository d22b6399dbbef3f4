"""CLI 输出格式化工具

颜色前缀、对齐表格和异常信息的格式化。"""

from typing import Any, List, Optional

from bbq.core.exceptions import BbqException


class Color:
    """ANSI 颜色代码"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'


class FormatterConfig:
    """格式化配置"""

    def __init__(self, no_color: bool = False):
        self.no_color = no_color

    def colorize(self, text: str, color: str) -> str:
        """no_color 关闭时为文本加上颜色"""
        if self.no_color:
            return text
        return f"{color}{text}{Color.RESET}"


class OutputFormatter:
    """CLI 输出格式化器"""

    def __init__(self, config: Optional[FormatterConfig] = None):
        self.config = config or FormatterConfig()

    def success(self, message: str) -> str:
        prefix = self.config.colorize("+", Color.GREEN)
        return f"{prefix} {message}"

    def warning(self, message: str) -> str:
        prefix = self.config.colorize("!", Color.YELLOW)
        return f"{prefix} {message}"

    def info(self, message: str) -> str:
        prefix = self.config.colorize("*", Color.BLUE)
        return f"{prefix} {message}"

    def format_exception(self, error: BbqException) -> str:
        """错误：<message>，有细节时追加在下一行"""
        text = f"错误：{error.message}"
        if error.details:
            text += "\n" + self.config.colorize(error.details, Color.DIM)
        return text

    def format_table(self, headers: List[str], rows: List[List[Any]]) -> str:
        """格式化左对齐的表格

        Args:
            headers: 表头
            rows: 数据行
        """
        if not headers:
            return ""

        widths = []
        for i, header in enumerate(headers):
            width = len(str(header))
            for row in rows:
                if i < len(row):
                    width = max(width, len(str(row[i])))
            widths.append(width)

        def render(cells: List[Any]) -> str:
            return "  ".join(str(cell).ljust(widths[i]) for i, cell in enumerate(cells)).rstrip()

        lines = [self.config.colorize(render(headers), Color.BOLD)]
        lines.append("  ".join("-" * width for width in widths))
        lines.extend(render(row) for row in rows)
        return "\n".join(lines)

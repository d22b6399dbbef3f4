"""CLI 工具包导出"""

from .formatting import (
    OutputFormatter,
    FormatterConfig,
    Color,
)
from .runner import run_command

__all__ = [
    'OutputFormatter',
    'FormatterConfig',
    'Color',
    'run_command',
]

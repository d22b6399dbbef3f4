"""命令执行辅助

构造本次调用的 BbqContext，执行命令并把 BbqException 转换为退出码 1。
"""

from typing import Any, Callable

import click

from bbq.cli.utils.formatting import FormatterConfig, OutputFormatter
from bbq.core.context import BbqContext
from bbq.core.exceptions import BbqException
from bbq.core.logger import get_logger

logger = get_logger("cli")


def run_command(ctx: click.Context, command_cls: type, action: Callable[[Any], Any]) -> None:
    """执行命令

    Args:
        ctx: click 上下文，ctx.obj["context_factory"] 可替换 BbqContext 的构造，
            ctx.obj["no_color"] 关闭彩色输出
        command_cls: 命令处理器类，以 (context, formatter) 构造
        action: 接收命令处理器实例并执行具体操作
    """
    obj = ctx.obj or {}
    formatter = OutputFormatter(FormatterConfig(no_color=obj.get("no_color", False)))
    factory = obj.get("context_factory", BbqContext)
    try:
        action(command_cls(factory(), formatter))
    except BbqException as e:
        logger.error(
            "Command failed",
            command=ctx.command_path,
            error=e.message,
            error_type=type(e).__name__,
        )
        click.echo(formatter.format_exception(e), err=True)
        ctx.exit(1)

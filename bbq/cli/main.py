"""BBQ CLI 主入口"""

import sys

import click

from bbq import __version__
from bbq.cli.commands.repo import repo
from bbq.cli.commands.worktree import worktree
from bbq.core.exceptions import BbqException
from bbq.core.logger import LoggerConfig, configure_logger
from bbq.core.paths import config_root


def setup_logging(verbose: bool) -> None:
    """默认写入 ~/.bbq/logs/bbq.log，--verbose 时同时以 DEBUG 输出到终端"""
    configure_logger(
        LoggerConfig(
            log_dir=config_root() / "logs",
            level="DEBUG" if verbose else "INFO",
            console_output=verbose,
        )
    )


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="bbq")
@click.option(
    '--verbose',
    is_flag=True,
    help='详细日志输出（调试用）'
)
@click.option(
    '--no-color',
    is_flag=True,
    help='关闭彩色输出'
)
@click.pass_context
def cli(ctx, verbose, no_color):
    """BBQ - 裸仓库与 Git Worktree 管理工具

    所有仓库和 worktree 都放在同一个根目录下（默认 ~/.bbq，
    可用环境变量 BBQ_ROOT_DIR 覆盖）。不带参数运行时进入交互界面。

    命令：
      repo clone <source> [name]       克隆裸仓库
      repo list                        列出仓库
      repo rm <name>                   删除仓库
      worktree create <repo> [...]     创建 worktree
      worktree list <repo>             列出 worktree
      worktree open <repo> <name>      在编辑器或终端中打开
      worktree rm <repo> <name>        删除 worktree

    示例:
      bbq repo clone https://github.com/user/project.git
      bbq repo clone user/project
      bbq worktree create project --branch feature/login
      bbq worktree open project login --target terminal
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['no_color'] = no_color
    setup_logging(verbose)

    if ctx.invoked_subcommand is None:
        if _is_interactive():
            from bbq.tui.app import run_tui
            run_tui()
        else:
            click.echo(ctx.get_help())


cli.add_command(repo)
cli.add_command(worktree)


def main():
    """CLI 入口点，处理全局异常"""
    try:
        cli()
    except BbqException as e:
        click.echo(f"错误：{e.message}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

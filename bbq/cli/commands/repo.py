"""bbq repo 命令组

克隆、列出和删除已登记的裸仓库。
"""

from typing import List, Optional

import click

from bbq.cli.utils import OutputFormatter, run_command
from bbq.core.context import BbqContext
from bbq.core.data_structures import Repository
from bbq.core.logger import get_logger

logger = get_logger("repo_command")


class RepoCommand:
    """仓库命令处理器"""

    def __init__(self, context: BbqContext, formatter: Optional[OutputFormatter] = None):
        self.context = context
        self.formatter = formatter or OutputFormatter()

    def clone(self, source: str, name: Optional[str] = None) -> Repository:
        """克隆仓库并输出结果"""
        logger.info("Executing repo clone", source=source, name=name)
        click.echo(self.formatter.info(f"正在克隆 {source} ..."))
        repo = self.context.registry.clone(source, name)
        click.echo(self.formatter.success(f"仓库已登记：{repo.name}"))
        click.echo(f"  路径：{repo.bare_path}")
        return repo

    def list(self) -> List[Repository]:
        """列出仓库"""
        repos = self.context.registry.list()
        if not repos:
            click.echo(self.formatter.info(f"{self.context.paths.repos_root} 下还没有仓库"))
            return repos

        rows = [[repo.name, repo.origin_url or "-", str(repo.bare_path)] for repo in repos]
        click.echo(self.formatter.format_table(["NAME", "ORIGIN", "PATH"], rows))
        return repos

    def remove(self, name: str) -> None:
        """删除仓库"""
        logger.info("Executing repo rm", name=name)
        self.context.registry.remove(name)
        click.echo(self.formatter.success(f"仓库已删除：{name}"))


@click.group()
def repo():
    """管理裸仓库"""


@repo.command("clone")
@click.argument("source")
@click.argument("name", required=False)
@click.pass_context
def clone_command(ctx: click.Context, source: str, name: Optional[str]):
    """克隆 SOURCE 为裸仓库

    SOURCE 可以是 git URL、本地路径，或 GitHub 的 owner/repo 简写（需要 gh）。
    """
    run_command(ctx, RepoCommand, lambda command: command.clone(source, name))


@repo.command("list")
@click.pass_context
def list_command(ctx: click.Context):
    """列出已登记的仓库"""
    run_command(ctx, RepoCommand, lambda command: command.list())


@repo.command("rm")
@click.argument("name")
@click.pass_context
def rm_command(ctx: click.Context, name: str):
    """删除仓库（仓库下仍有 worktree 时拒绝）"""
    run_command(ctx, RepoCommand, lambda command: command.remove(name))

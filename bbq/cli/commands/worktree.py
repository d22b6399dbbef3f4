"""bbq worktree 命令组

在已登记的仓库下创建、列出、打开和删除 worktree。
"""

from pathlib import Path
from typing import List, Optional

import click

from bbq.cli.utils import OutputFormatter, run_command
from bbq.core.context import BbqContext
from bbq.core.data_structures import HookKind, OperationState, Worktree
from bbq.core.exceptions import HookException
from bbq.core.logger import get_logger
from bbq.core.tool_launcher import resolve_target

logger = get_logger("worktree_command")


def derive_worktree_name(name: Optional[str], branch: Optional[str]) -> Optional[str]:
    """--name 优先，其次取 --branch 的最后一段

    feature/login -> login
    """
    if name and name.strip():
        return name.strip()
    if branch and branch.strip():
        tail = branch.strip().rstrip("/").rsplit("/", 1)[-1]
        return tail or None
    return None


class WorktreeCommand:
    """Worktree 命令处理器"""

    def __init__(self, context: BbqContext, formatter: Optional[OutputFormatter] = None):
        self.context = context
        self.formatter = formatter or OutputFormatter()
        self.context.hook_manager.register_listener(self._on_hook)

    def _on_hook(self, kind: HookKind, script: Path) -> None:
        click.echo(self.formatter.info(f"正在运行 {kind.value} 脚本 {script}"))

    def create(
        self,
        repo_name: str,
        branch: Optional[str] = None,
        name: Optional[str] = None,
        source: Optional[str] = None,
    ) -> Worktree:
        """创建 worktree"""
        logger.info("Executing worktree create", repo=repo_name, branch=branch, name=name, source=source)
        repo = self.context.registry.get(repo_name)
        try:
            worktree = self.context.worktrees.create(
                repo,
                name=derive_worktree_name(name, branch),
                branch=branch,
                source=source,
            )
        except HookException:
            operation = self.context.worktrees.last_operation
            if operation is not None and OperationState.HOOK_RUNNING in operation.states:
                kept = self.context.paths.worktree_path(repo.name, operation.worktree_name)
                click.echo(self.formatter.warning(f"post-create 脚本失败，worktree 已保留：{kept}"), err=True)
            raise
        click.echo(self.formatter.success(f"Worktree 已创建：{repo.name}/{worktree.name}"))
        click.echo(f"  分支：{worktree.branch}")
        click.echo(f"  路径：{worktree.path}")
        return worktree

    def list(self, repo_name: str) -> List[Worktree]:
        """列出 worktree"""
        repo = self.context.registry.get(repo_name)
        worktrees = self.context.worktrees.list(repo)
        if not worktrees:
            click.echo(self.formatter.info(f"仓库 {repo.name} 下还没有 worktree"))
            return worktrees

        rows = [
            [item.name, item.branch or "(detached)", str(item.path)]
            for item in worktrees
        ]
        click.echo(self.formatter.format_table(["NAME", "BRANCH", "PATH"], rows))
        return worktrees

    def open(self, repo_name: str, name: str, target: Optional[str] = None) -> None:
        """在编辑器或终端中打开 worktree"""
        repo = self.context.registry.get(repo_name)
        worktree = self.context.worktrees.get(repo, name)
        kind, override = resolve_target(target)
        candidate = self.context.launcher.launch(kind, worktree.path, override)
        click.echo(self.formatter.success(f"已用 {candidate.program} 打开 {worktree.path}"))

    def remove(self, repo_name: str, name: str, force: bool = False) -> None:
        """删除 worktree"""
        logger.info("Executing worktree rm", repo=repo_name, name=name, force=force)
        repo = self.context.registry.get(repo_name)
        self.context.worktrees.remove(repo, name, force=force)
        click.echo(self.formatter.success(f"Worktree 已删除：{repo.name}/{name}"))


@click.group()
def worktree():
    """管理 worktree"""


@worktree.command("create")
@click.argument("repo")
@click.option("--branch", "-b", help="检出的分支（不存在时自动创建）")
@click.option("--name", "-n", help="worktree 名称，默认取分支名最后一段")
@click.option("--from", "source", help="新建分支的起点，默认为仓库默认分支")
@click.pass_context
def create_command(
    ctx: click.Context,
    repo: str,
    branch: Optional[str],
    name: Optional[str],
    source: Optional[str],
):
    """在 REPO 下创建 worktree

    名称取 --name，其次取 --branch 的最后一段。两者都没有给出时，
    需要在 ~/.bbq/config.toml 中设置 default_worktree_name = "cities"
    自动取城市名，否则报错。

    示例:
      bbq worktree create myrepo --branch feature/login
      bbq worktree create myrepo --name hotfix --from origin/release
    """
    run_command(ctx, WorktreeCommand, lambda command: command.create(repo, branch=branch, name=name, source=source))


@worktree.command("list")
@click.argument("repo")
@click.pass_context
def list_command(ctx: click.Context, repo: str):
    """列出 REPO 下的 worktree"""
    run_command(ctx, WorktreeCommand, lambda command: command.list(repo))


@worktree.command("open")
@click.argument("repo")
@click.argument("name")
@click.option("--target", "-t", help="zed | cursor | vscode | terminal")
@click.pass_context
def open_command(ctx: click.Context, repo: str, name: str, target: Optional[str]):
    """在编辑器或终端中打开 worktree"""
    run_command(ctx, WorktreeCommand, lambda command: command.open(repo, name, target))


@worktree.command("rm")
@click.argument("repo")
@click.argument("name")
@click.option("--force", "-f", is_flag=True, help="即使有未提交的修改也删除")
@click.pass_context
def rm_command(ctx: click.Context, repo: str, name: str, force: bool):
    """删除 worktree（pre-delete 脚本失败时不删除）"""
    run_command(ctx, WorktreeCommand, lambda command: command.remove(repo, name, force=force))

"""GWT add 命令实现

在容器目录中为分支创建新的 worktree，分支不存在时从 base 创建。
"""

from typing import Optional

import click

from gwt.core.exceptions import GWTException
from gwt.cli.utils import fail, require_argument, get_formatter, get_manager


@click.command(name="add")
@click.argument("branch", required=False)
@click.argument("base", required=False)
@click.pass_context
def add_cmd(ctx: click.Context, branch: Optional[str], base: Optional[str]) -> None:
    """创建新的 worktree

    \b
    使用示例:
    gwt add feature-auth          # 从当前分支创建
    gwt add feature-auth main     # 从 main 创建
    gwt add pr-review origin/pr   # 从远程分支创建
    """
    formatter = get_formatter(ctx)
    branch = require_argument(ctx, branch, "branch")

    try:
        result = get_manager(ctx).add_worktree(branch, base)
    except GWTException as e:
        fail(ctx, e)

    if result.created_branch:
        click.echo(f"Created new branch '{result.branch}' from '{result.base}'")
    else:
        click.echo(f"Branch '{result.branch}' exists, checked it out")
    click.echo()
    click.echo(formatter.success(f"Worktree created: {result.path}"))
    click.echo(formatter.hint(f"cd {result.path}"))

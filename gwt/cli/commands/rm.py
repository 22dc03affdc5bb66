"""GWT rm 命令实现

删除 worktree，并可选删除对应分支。分支删除失败只给出提示，不影响退出状态。
"""

from typing import Optional

import click

from gwt.core.exceptions import GWTException
from gwt.cli.utils import fail, require_argument, get_formatter, get_manager


@click.command(name="rm")
@click.argument("branch", required=False)
@click.option("-d", "--delete-branch", is_flag=True, help="同时删除分支（git branch -d）")
@click.option("-D", "--force-delete-branch", is_flag=True, help="强制删除分支（git branch -D）")
@click.option("-f", "--force", is_flag=True, help="强制删除有未提交改动的 worktree")
@click.pass_context
def rm_cmd(
    ctx: click.Context,
    branch: Optional[str],
    delete_branch: bool,
    force_delete_branch: bool,
    force: bool,
) -> None:
    """删除 worktree（可选删除分支）

    \b
    使用示例:
    gwt rm feature-auth      # 只删除 worktree
    gwt rm feature-auth -d   # 删除 worktree 和分支
    gwt rm feature-auth -D   # 删除 worktree，强制删除分支
    """
    formatter = get_formatter(ctx)
    branch = require_argument(ctx, branch, "branch")

    try:
        result = get_manager(ctx).remove_worktree(
            branch,
            delete_branch=delete_branch,
            force_delete=force_delete_branch,
            force=force,
        )
    except GWTException as e:
        fail(ctx, e)

    click.echo(formatter.success(f"Worktree removed: {result.path}"))

    if result.branch_deleted:
        click.echo(formatter.success(f"Branch deleted: {result.branch}"))
    elif result.branch_deleted is False:
        if result.branch_error:
            click.echo(f"  {result.branch_error}", err=True)
        click.echo(
            formatter.warning(f"Use 'git branch -D {result.branch}' to force delete"),
            err=True,
        )

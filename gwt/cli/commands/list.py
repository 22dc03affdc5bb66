"""GWT list 命令实现

列出所有 worktree。
"""

import json

import click

from gwt.core.exceptions import GWTException
from gwt.cli.utils import fail, get_formatter, get_manager


@click.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="以 JSON 格式输出")
@click.option("-a", "--all", "include_bare", is_flag=True, help="包含裸仓库条目")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool, include_bare: bool) -> None:
    """列出所有 worktree"""
    formatter = get_formatter(ctx)

    try:
        entries = get_manager(ctx).list_worktrees(include_bare=include_bare)
    except GWTException as e:
        fail(ctx, e)

    if as_json:
        click.echo(json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False, indent=2))
        return

    click.echo("Active worktrees:")
    click.echo()

    rows = []
    for entry in entries:
        if entry.is_bare:
            branch = "(bare)"
        elif entry.is_detached:
            branch = "(detached HEAD)"
        else:
            branch = f"[{entry.branch}]"
        flags = [flag for flag, on in (("locked", entry.is_locked), ("prunable", entry.is_prunable)) if on]
        marker = "*" if entry.is_current else " "
        rows.append([marker, str(entry.path), entry.short_head, branch, " ".join(flags)])

    click.echo(formatter.format_table(["", "PATH", "HEAD", "BRANCH", ""], rows))

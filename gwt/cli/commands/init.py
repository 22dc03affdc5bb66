"""GWT init 命令实现

把已有的标准仓库就地转换为 .bare + <branch>/ 的 worktree 结构。"""

from typing import Optional

import click

from gwt.core.exceptions import GWTException
from gwt.cli.utils import InteractivePrompt, fail, get_formatter, get_manager


@click.command(name="init")
@click.argument("main_branch", required=False)
@click.option("-y", "--yes", is_flag=True, help="跳过确认")
@click.pass_context
def init_cmd(ctx: click.Context, main_branch: Optional[str], yes: bool) -> None:
    """把当前仓库转换为 worktree 结构

    \b
    使用示例:
    gwt init              # 主分支为 main
    gwt init master       # 指定主分支
    gwt init -y           # 不询问直接转换
    """
    formatter = get_formatter(ctx)
    confirm = InteractivePrompt.assume_yes if yes else InteractivePrompt.confirm

    try:
        result = get_manager(ctx).convert(
            main_branch=main_branch,
            confirm=confirm,
            progress=lambda message: click.echo(formatter.info(message)),
        )
    except GWTException as e:
        fail(ctx, e)

    click.echo()
    click.echo(formatter.success("Conversion complete!"))
    click.echo(f"  Bare repo: {result.bare_dir}/")
    click.echo(f"  Main worktree: {result.worktree_path}/")
    if result.leftover_staging:
        click.echo(formatter.warning(f"临时目录未能删除，请手动清理：{result.leftover_staging}"), err=True)
    click.echo()
    click.echo("Next steps:")
    click.echo(formatter.hint(f"cd {result.worktree_path}"))
    click.echo(formatter.hint("gwt add <branch-name>  # Create additional worktrees"))

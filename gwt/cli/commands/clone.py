"""GWT clone 命令实现

以 .bare + <branch>/ 结构克隆仓库，失败时不留下半成品目录。
"""

from typing import Optional

import click

from gwt.core.exceptions import GWTException
from gwt.cli.utils import fail, require_argument, get_formatter, get_manager


@click.command(name="clone")
@click.argument("repo_url", required=False)
@click.argument("directory", required=False)
@click.argument("main_branch", required=False)
@click.pass_context
def clone_cmd(
    ctx: click.Context,
    repo_url: Optional[str],
    directory: Optional[str],
    main_branch: Optional[str],
) -> None:
    """以 worktree 结构克隆仓库

    \b
    使用示例:
    gwt clone https://github.com/user/repo.git
    gwt clone https://github.com/user/repo.git my-project
    gwt clone https://github.com/user/repo.git my-project develop
    """
    formatter = get_formatter(ctx)
    repo_url = require_argument(ctx, repo_url, "repo_url")

    try:
        result = get_manager(ctx).clone_with_layout(
            repo_url,
            directory=directory,
            main_branch=main_branch,
            progress=lambda message: click.echo(formatter.info(message)),
        )
    except GWTException as e:
        fail(ctx, e)

    click.echo()
    click.echo(formatter.success("Repository cloned with worktree structure!"))
    click.echo(f"  Bare repo: {result.bare_dir}/")
    click.echo(f"  Main worktree: {result.worktree_path}/")
    click.echo()
    click.echo("Next steps:")
    click.echo(formatter.hint(f"cd {result.worktree_path}"))

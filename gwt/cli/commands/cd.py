"""GWT cd 命令实现

输出分支对应 worktree 的绝对路径，配合 shell 使用：cd "$(gwt cd <branch>)"。
标准输出只包含路径，所有诊断信息写入标准错误。
"""

from typing import Optional

import click

from gwt.core.exceptions import GWTException
from gwt.cli.utils import fail, require_argument, get_manager


@click.command(name="cd")
@click.argument("branch", required=False)
@click.pass_context
def cd_cmd(ctx: click.Context, branch: Optional[str]) -> None:
    """输出 worktree 路径（配合 cd 使用）

    \b
    使用示例:
    cd "$(gwt cd feature-auth)"

    \b
    提示：运行 'gwt shell-init' 获取 gcd 函数
    """
    branch = require_argument(ctx, branch, "branch")
    try:
        path = get_manager(ctx).resolve_worktree_path(branch)
    except GWTException as e:
        fail(ctx, e)

    click.echo(str(path))

"""命令共享的上下文工具

从 click 上下文中取出配置，按需构建布局管理器，并统一处理错误输出。
"""

from pathlib import Path
from typing import NoReturn, Optional

import click

from gwt.core.config_manager import ConfigManager
from gwt.core.exceptions import GWTException
from gwt.core.git_client import GitClient
from gwt.core.layout_manager import WorktreeLayoutManager
from gwt.core.logger import get_logger

from .formatting import FormatterConfig, OutputFormatter

logger = get_logger("cli")


def get_config_manager(ctx: click.Context) -> ConfigManager:
    """获取（必要时创建）配置管理器"""
    obj = ctx.ensure_object(dict)
    if 'config_manager' not in obj:
        obj['config_manager'] = ConfigManager()
    return obj['config_manager']


def get_formatter(ctx: click.Context) -> OutputFormatter:
    """根据全局 --no-color 与 display.colors 构建格式化器"""
    obj = ctx.ensure_object(dict)
    if 'formatter' not in obj:
        no_color = obj.get('no_color', False)
        if not no_color:
            no_color = not get_config_manager(ctx).get("display.colors", True)
        obj['formatter'] = OutputFormatter(FormatterConfig(no_color=no_color))
    return obj['formatter']


def get_manager(ctx: click.Context) -> WorktreeLayoutManager:
    """构建绑定当前目录的布局管理器"""
    obj = ctx.ensure_object(dict)
    if 'manager' not in obj:
        cwd = Path.cwd()
        obj['manager'] = WorktreeLayoutManager(
            GitClient(cwd),
            config_manager=get_config_manager(ctx),
            cwd=cwd,
        )
    return obj['manager']


def fail(ctx: click.Context, error: GWTException) -> NoReturn:
    """把异常输出为一行诊断（写入 stderr）并以状态 1 退出"""
    logger.debug("Command failed", error_type=type(error).__name__, error=error.message)
    click.echo(get_formatter(ctx).format_exception(error), err=True)
    ctx.exit(1)


def require_argument(ctx: click.Context, value: Optional[str], name: str) -> str:
    """必填参数缺失时输出用法与示例并以状态 1 退出"""
    if value:
        return value
    click.echo(get_formatter(ctx).error(f"Missing argument '{name.upper()}'."), err=True)
    click.echo(ctx.get_help(), err=True)
    ctx.exit(1)

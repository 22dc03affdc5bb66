"""GWT CLI 主入口"""

import sys
from typing import Optional

import click

from gwt.cli.commands.add import add_cmd
from gwt.cli.commands.cd import cd_cmd
from gwt.cli.commands.clone import clone_cmd
from gwt.cli.commands.guide import guide_cmd, shell_init_cmd
from gwt.cli.commands.init import init_cmd
from gwt.cli.commands.list import list_cmd
from gwt.cli.commands.rm import rm_cmd
from gwt.cli.utils import FormatterConfig, OutputFormatter
from gwt.core.config_manager import ConfigManager
from gwt.core.exceptions import ConfigException
from gwt.core.logger import LoggerConfig, configure_logger


@click.group()
@click.version_option(version="0.1.0", prog_name="gwt")
@click.option(
    '--verbose',
    is_flag=True,
    help='详细日志输出到 stderr（调试用）'
)
@click.option(
    '--no-color',
    is_flag=True,
    help='关闭彩色输出'
)
@click.option(
    '--config',
    'config_path',
    type=click.Path(dir_okay=False),
    default=None,
    help='配置文件路径（默认 $GWT_CONFIG 或 ~/.config/gwt/config.yaml）'
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, no_color: bool, config_path: Optional[str]) -> None:
    """GWT - Git Worktree Layout Manager

    管理 <repo>/.bare/ + <repo>/<branch>/ 结构的 worktree

    \b
    核心命令：
      init [branch]             把当前仓库转换为 worktree 结构
      clone <url> [dir] [br]    以 worktree 结构克隆仓库
      add <branch> [base]       添加新 worktree
      rm <branch> [-d]          删除 worktree
      list                      列出所有 worktree
      cd <branch>               输出 worktree 路径
    其他命令：
      guide                     工作流说明
      shell-init [zsh|bash]     输出 gcd shell 函数

    \b
    示例:
      gwt init
      gwt add feature-auth main
      cd "$(gwt cd feature-auth)"
      gwt rm feature-auth -d
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['no_color'] = no_color

    config_manager = ConfigManager(config_path)
    try:
        config_manager.load_config()
    except ConfigException as e:
        formatter = OutputFormatter(FormatterConfig(no_color=no_color))
        click.echo(formatter.format_exception(e), err=True)
        ctx.exit(1)
    ctx.obj['config_manager'] = config_manager

    configure_logger(LoggerConfig(
        log_dir=config_manager.get("logging.log_dir"),
        level="DEBUG" if verbose else config_manager.get("logging.level", "INFO"),
        json_output=config_manager.get("logging.json", False),
        console_output=verbose,
    ))


# 注册命令
cli.add_command(init_cmd, name="init")
cli.add_command(add_cmd, name="add")
cli.add_command(rm_cmd, name="rm")
cli.add_command(list_cmd, name="list")
cli.add_command(cd_cmd, name="cd")
cli.add_command(clone_cmd, name="clone")
cli.add_command(guide_cmd, name="guide")
cli.add_command(shell_init_cmd, name="shell-init")


def main():
    """CLI 入口点，处理全局异常"""
    try:
        cli()
    except Exception as e:
        # 其他未处理的异常
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

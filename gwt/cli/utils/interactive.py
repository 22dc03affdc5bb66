"""CLI 交互输入工具封装"""

import click


class InteractivePrompt:
    """交互式提示工具"""

    @staticmethod
    def confirm(message: str, default: bool = False, show_default: bool = True) -> bool:
        """交互确认，阻塞等待用户输入"""
        return click.confirm(message, default=default, show_default=show_default)

    @staticmethod
    def assume_yes(message: str) -> bool:
        """跳过确认（--yes）"""
        click.echo(message)
        return True


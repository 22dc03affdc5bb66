"""CLI 输出格式化工具

提供颜色、表格以及错误消息的格式化功能。"""

from typing import Any, List, Optional

from gwt.core.exceptions import (
    ConfigException,
    GitException,
    GWTException,
    RepositoryException,
    TransactionException,
    WorktreeException,
)


# 错误类别前缀
ERROR_PREFIXES = [
    (RepositoryException, "仓库错误"),
    (WorktreeException, "Worktree 错误"),
    (GitException, "Git 错误"),
    (ConfigException, "配置错误"),
    (TransactionException, "事务错误"),
]


class Color:
    """ANSI 颜色代码"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    CYAN = '\033[36m'


class FormatterConfig:
    """格式化配置中心"""

    def __init__(self, no_color: bool = False):
        """初始化配置
        Args:
            no_color: 是否禁用颜色输出
        """
        self.no_color = no_color

    def colorize(self, text: str, color: str) -> str:
        """根据配置为文本添加 ANSI 颜色"""
        if self.no_color:
            return text
        return f"{color}{text}{Color.RESET}"


class OutputFormatter:
    """CLI 输出格式化器实现"""

    def __init__(self, config: Optional[FormatterConfig] = None):
        self.config = config or FormatterConfig()

    def success(self, message: str) -> str:
        """格式化成功消息"""
        prefix = self.config.colorize("✓", Color.GREEN)
        return f"{prefix} {message}"

    def error(self, message: str) -> str:
        """格式化错误消息"""
        prefix = self.config.colorize("Error:", Color.RED)
        return f"{prefix} {message}"

    def warning(self, message: str) -> str:
        """格式化警告消息"""
        prefix = self.config.colorize("Note:", Color.YELLOW)
        return f"{prefix} {message}"

    def info(self, message: str) -> str:
        """格式化普通信息消息"""
        return self.config.colorize(message, Color.DIM)

    def hint(self, message: str) -> str:
        """格式化提示（缩进的后续步骤）"""
        return f"  {self.config.colorize(message, Color.CYAN)}"

    def format_exception(self, error: GWTException) -> str:
        """把异常格式化为一行诊断，git 的原始输出附在后面

        例如:
            Error: Worktree 错误：Worktree 'feature' not found
        """
        category = next(
            (label for exc_type, label in ERROR_PREFIXES if isinstance(error, exc_type)),
            None,
        )
        message = f"{category}：{error.message}" if category else error.message
        lines = [self.error(message)]
        if error.details:
            lines.extend(f"  {line}" for line in str(error.details).splitlines())
        return "\n".join(lines)

    def format_table(
        self,
        headers: List[str],
        rows: List[List[Any]],
    ) -> str:
        """格式化对齐的表格字符串"""
        if not headers:
            return ""

        column_widths = []
        for i, header in enumerate(headers):
            max_width = len(str(header))
            for row in rows:
                if i < len(row):
                    max_width = max(max_width, len(str(row[i])))
            column_widths.append(max_width)

        lines = []
        header_row = "  ".join(
            str(header).ljust(column_widths[i]) for i, header in enumerate(headers)
        ).rstrip()
        lines.append(self.config.colorize(header_row, Color.BOLD))
        lines.append("  ".join("-" * width for width in column_widths))

        for row in rows:
            lines.append(
                "  ".join(str(cell).ljust(column_widths[i]) for i, cell in enumerate(row)).rstrip()
            )

        return "\n".join(lines)


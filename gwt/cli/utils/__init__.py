"""CLI 工具包导出"""

from .formatting import (
    OutputFormatter,
    FormatterConfig,
    Color,
)
from .interactive import InteractivePrompt
from .project_utils import get_config_manager, get_formatter, get_manager, fail, require_argument

__all__ = [
    'OutputFormatter',
    'FormatterConfig',
    'Color',
    'InteractivePrompt',
    'get_config_manager',
    'get_formatter',
    'get_manager',
    'fail',
    'require_argument',
]

"""结构化日志系统

基于 structlog 的结构化日志记录器，支持操作追踪。
默认不输出任何内容，只有在 --verbose 或配置了日志目录时才启用处理器。
"""

import logging
import time
import uuid
import contextvars
from pathlib import Path
from typing import Any, Dict, Optional

import structlog


ROOT_LOGGER_NAME = "gwt"
LOG_FILENAME = "gwt.log"

# 当前操作 ID，用于关联同一次命令中的日志
_operation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    'operation_id', default=""
)


class LoggerConfig:
    """日志配置类"""

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        level: str = "INFO",
        json_output: bool = False,
        console_output: bool = False,
    ):
        """初始化日志配置
        Args:
            log_dir: 日志目录，如果为 None 则不写入文件
            level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
            json_output: 是否输出 JSON 格式
            console_output: 是否输出到标准错误
        """
        self.log_dir = Path(log_dir) if log_dir else None
        self.level = level.upper()
        self.json_output = json_output
        self.console_output = console_output


def _setup_structlog(config: LoggerConfig) -> None:
    """配置 stdlib 处理器和 structlog 处理链"""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if not isinstance(handler, logging.NullHandler):
            root.removeHandler(handler)
            handler.close()

    # 控制台输出走 stderr，stdout 只留给命令结果
    if config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    if config.log_dir:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.log_dir / LOG_FILENAME, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(file_handler)

    root.setLevel(getattr(logging, config.level, logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if config.json_output
            else structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class Logger:
    """结构化日志记录器

    对 structlog 的薄封装，自动附带当前操作 ID。
    """

    def __init__(self, name: str = ROOT_LOGGER_NAME, config: Optional[LoggerConfig] = None):
        """初始化日志记录器

        Args:
            name: 组件名称，会挂在 gwt 根记录器下
            config: 日志配置对象，传入时会重新配置处理器
        """
        self.name = name
        self.config = config or LoggerConfig()
        if config is not None:
            _setup_structlog(config)
        qualified = name if name.startswith(ROOT_LOGGER_NAME) else f"{ROOT_LOGGER_NAME}.{name}"
        self.logger = structlog.get_logger(qualified)

    def debug(self, event: str, **kwargs) -> None:
        """记录 DEBUG 级别日志"""
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs) -> None:
        """记录 INFO 级别日志"""
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        """记录 WARNING 级别日志"""
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        """记录 ERROR 级别日志"""
        self._log("error", event, **kwargs)

    def _log(self, level: str, event: str, **kwargs) -> None:
        operation_id = _operation_id.get()
        if operation_id and 'operation_id' not in kwargs:
            kwargs['operation_id'] = operation_id
        getattr(self.logger, level)(event, **kwargs)


class OperationScope:
    """操作范围上下文管理器

    记录一次操作的开始、结束与异常，并为其间的日志设置操作 ID。
    """

    def __init__(
        self,
        operation_name: str,
        context: Optional[Dict[str, Any]] = None,
        logger: Optional[Logger] = None,
        operation_id: Optional[str] = None,
    ):
        self.operation_name = operation_name
        self.context = context or {}
        self.logger = logger or get_logger()
        self.operation_id = operation_id or str(uuid.uuid4())
        self.start_time: Optional[float] = None
        self.duration_ms: Optional[int] = None
        self._token = None

    def __enter__(self) -> 'OperationScope':
        self._token = _operation_id.set(self.operation_id)
        self.start_time = time.time()
        self.logger.info(f"{self.operation_name}_started", **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.duration_ms = int((time.time() - self.start_time) * 1000)
        if exc_type is not None:
            self.logger.error(
                f"{self.operation_name}_failed",
                duration_ms=self.duration_ms,
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                **self.context,
            )
        else:
            self.logger.info(
                f"{self.operation_name}_succeeded",
                duration_ms=self.duration_ms,
                **self.context,
            )
        # 只恢复本层设置的操作 ID，不影响外层操作
        _operation_id.reset(self._token)
        return False


_loggers: Dict[str, Logger] = {}


def get_logger(name: str = ROOT_LOGGER_NAME) -> Logger:
    """获取（并缓存）指定组件的日志记录器"""
    if name not in _loggers:
        _loggers[name] = Logger(name)
    return _loggers[name]


def configure_logger(config: LoggerConfig) -> None:
    """按配置重新设置全局日志处理器

    已经通过 get_logger 获取的记录器无需重建，structlog 不缓存配置。
    """
    _setup_structlog(config)


# 默认静默：未启用处理器时日志交给 NullHandler
logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
_setup_structlog(LoggerConfig())

"""操作系统 - 支持事务管理的原子操作

提供基础操作类和具体的文件系统操作实现。
所有操作都支持执行和回滚，并可被事务管理。
"""

import shutil
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from gwt.core.logger import Logger, get_logger


class OperationStatus(Enum):
    """操作状态枚举"""
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class Operation(ABC):
    """操作基类

    所有具体操作都应继承此类，实现 execute() 和 rollback() 方法。
    """

    def __init__(
        self,
        operation_id: Optional[str] = None,
        description: str = "",
        logger: Optional[Logger] = None,
    ):
        """初始化操作

        Args:
            operation_id: 操作 ID，如果为 None 则自动生成
            description: 操作描述
            logger: 日志记录器实例
        """
        self.operation_id = operation_id or str(uuid.uuid4())
        self.description = description
        self.logger = logger or get_logger("operations")
        self.status = OperationStatus.PENDING
        self.error: Optional[Exception] = None

    @abstractmethod
    def execute(self) -> Any:
        """执行操作

        Raises:
            Exception: 操作执行失败时抛出异常
        """
        pass

    @abstractmethod
    def rollback(self) -> None:
        """回滚操作

        Raises:
            Exception: 回滚失败时抛出异常
        """
        pass


class CallableOperation(Operation):
    """基于可调用对象的操作

    使用 lambda 或函数作为操作的执行和回滚逻辑。
    """

    def __init__(
        self,
        execute_fn: Callable[[], Any],
        rollback_fn: Optional[Callable[[], None]] = None,
        operation_id: Optional[str] = None,
        description: str = "",
        logger: Optional[Logger] = None,
    ):
        super().__init__(operation_id, description, logger)
        self.execute_fn = execute_fn
        self.rollback_fn = rollback_fn or (lambda: None)

    def execute(self) -> Any:
        """执行操作"""
        self.status = OperationStatus.EXECUTING
        try:
            result = self.execute_fn()
            self.status = OperationStatus.COMPLETED
            return result
        except Exception as e:
            self.error = e
            self.status = OperationStatus.FAILED
            raise

    def rollback(self) -> None:
        """回滚操作"""
        try:
            self.rollback_fn()
            self.status = OperationStatus.ROLLED_BACK
        except Exception as e:
            self.error = e
            self.status = OperationStatus.FAILED
            raise


class CreateDirectoryOperation(Operation):
    """创建目录操作

    回滚时删除整个目录树，包括执行后写入其中的内容。
    """

    def __init__(
        self,
        directory_path: Path,
        operation_id: Optional[str] = None,
        logger: Optional[Logger] = None,
    ):
        super().__init__(
            operation_id,
            description=f"Create directory {directory_path}",
            logger=logger,
        )
        self.directory_path = Path(directory_path)
        self.created = False

    def execute(self) -> None:
        """创建目录"""
        self.status = OperationStatus.EXECUTING
        try:
            self.directory_path.mkdir(parents=True)
            self.created = True
            self.status = OperationStatus.COMPLETED
            self.logger.debug("directory_created", path=str(self.directory_path))
        except Exception as e:
            self.error = e
            self.status = OperationStatus.FAILED
            self.logger.error("directory_creation_failed", path=str(self.directory_path), error=str(e))
            raise

    def rollback(self) -> None:
        """删除创建的目录"""
        if self.created and self.directory_path.exists():
            shutil.rmtree(self.directory_path)
            self.logger.info("directory_removed", path=str(self.directory_path))
        self.status = OperationStatus.ROLLED_BACK


class MovePathOperation(Operation):
    """移动文件或目录的操作

    同一文件系统内是一次 rename；回滚时移回原位置。
    """

    def __init__(
        self,
        source: Path,
        destination: Path,
        operation_id: Optional[str] = None,
        logger: Optional[Logger] = None,
    ):
        super().__init__(
            operation_id,
            description=f"Move {source} -> {destination}",
            logger=logger,
        )
        self.source = Path(source)
        self.destination = Path(destination)
        self.moved = False

    def execute(self) -> None:
        """执行移动"""
        self.status = OperationStatus.EXECUTING
        try:
            if self.destination.exists() or self.destination.is_symlink():
                raise FileExistsError(f"Destination already exists: {self.destination}")
            self.destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(self.source), str(self.destination))
            self.moved = True
            self.status = OperationStatus.COMPLETED
            self.logger.debug("path_moved", source=str(self.source), destination=str(self.destination))
        except Exception as e:
            self.error = e
            self.status = OperationStatus.FAILED
            self.logger.error(
                "path_move_failed",
                source=str(self.source),
                destination=str(self.destination),
                error=str(e),
            )
            raise

    def rollback(self) -> None:
        """移回原位置"""
        if self.moved:
            shutil.move(str(self.destination), str(self.source))
            self.moved = False
            self.logger.info("path_move_rolled_back", source=str(self.source))
        self.status = OperationStatus.ROLLED_BACK

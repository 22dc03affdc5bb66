"""事务管理系统

按顺序执行一组操作，任何一步失败时按逆序回滚已执行的操作。
"""

import uuid
from typing import Any, Callable, List, Optional

from gwt.core.exceptions import TransactionException, TransactionRollbackError
from gwt.core.logger import Logger, get_logger
from gwt.core.operations import CallableOperation, Operation, OperationStatus


class Transaction:
    """事务管理器

    管理一组操作的原子执行，提供提交和回滚功能。
    """

    def __init__(
        self,
        transaction_id: Optional[str] = None,
        logger: Optional[Logger] = None,
    ):
        """初始化事务

        Args:
            transaction_id: 事务 ID，如果为 None 则自动生成
            logger: 日志记录器实例
        """
        self.transaction_id = transaction_id or str(uuid.uuid4())
        self.logger = logger or get_logger("transaction")
        self.operations: List[Operation] = []
        self.executed_operations: List[Operation] = []
        self.status = "pending"
        self.error: Optional[Exception] = None

    def add_operation(
        self,
        operation: Optional[Operation] = None,
        execute_fn: Optional[Callable[[], Any]] = None,
        rollback_fn: Optional[Callable[[], None]] = None,
        description: str = "",
    ) -> "Transaction":
        """添加操作到事务

        支持两种方式：
        1. 传入 Operation 对象
        2. 传入 execute_fn 和可选的 rollback_fn

        Returns:
            返回 self 以支持链式调用

        Raises:
            TransactionException: 如果事务已提交或回滚
        """
        if self.status != "pending":
            raise TransactionException(
                f"Cannot add operation to {self.status} transaction"
            )

        if operation is None:
            if execute_fn is None:
                raise TransactionException("Either operation or execute_fn must be provided")
            operation = CallableOperation(
                execute_fn=execute_fn,
                rollback_fn=rollback_fn,
                description=description,
                logger=self.logger,
            )

        self.operations.append(operation)
        return self

    def commit(self) -> None:
        """提交事务

        按顺序执行所有操作。如果任何操作失败，会自动回滚已执行的操作，
        然后抛出 TransactionRollbackError，原始异常保存在 __cause__ 中。

        Raises:
            TransactionException: 如果事务已提交或回滚
            TransactionRollbackError: 如果操作执行失败
        """
        if self.status != "pending":
            raise TransactionException(
                f"Cannot commit {self.status} transaction"
            )

        self.status = "executing"
        self.logger.debug(
            "transaction_commit_started",
            transaction_id=self.transaction_id,
            operations_count=len(self.operations),
        )

        for operation in self.operations:
            try:
                operation.status = OperationStatus.EXECUTING
                operation.execute()
                self.executed_operations.append(operation)
            except Exception as e:
                operation.error = e
                operation.status = OperationStatus.FAILED
                self.logger.error(
                    "operation_failed",
                    transaction_id=self.transaction_id,
                    operation_id=operation.operation_id,
                    description=operation.description,
                    error=str(e),
                )
                self.error = e
                try:
                    self._rollback_executed_operations()
                except TransactionRollbackError:
                    self.status = "rollback_failed"
                    raise
                self.status = "rolled_back"
                raise TransactionRollbackError(
                    f"Transaction failed at '{operation.description}': {e}",
                    executed_ops=list(self.executed_operations),
                ) from e

        self.status = "committed"
        self.logger.debug(
            "transaction_committed",
            transaction_id=self.transaction_id,
            operations_count=len(self.operations),
        )

    def _rollback_executed_operations(self) -> None:
        """按逆序回滚已执行的操作

        Raises:
            TransactionRollbackError: 如果任何操作回滚失败
        """
        rollback_errors = []

        for operation in reversed(self.executed_operations):
            try:
                operation.rollback()
                self.logger.info(
                    "operation_rolled_back",
                    transaction_id=self.transaction_id,
                    description=operation.description,
                )
            except Exception as e:
                rollback_errors.append((operation.description, e))
                self.logger.error(
                    "operation_rollback_failed",
                    transaction_id=self.transaction_id,
                    description=operation.description,
                    error=str(e),
                )

        if rollback_errors:
            error_messages = "; ".join(
                [f"{description}: {e}" for description, e in rollback_errors]
            )
            raise TransactionRollbackError(
                f"Rollback failed for operations: {error_messages}",
                executed_ops=list(self.executed_operations),
            )

    def is_rolled_back(self) -> bool:
        """检查事务是否已回滚"""
        return self.status == "rolled_back"


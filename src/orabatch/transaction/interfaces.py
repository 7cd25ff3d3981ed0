from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from orabatch.exception import DriverError, StateError, ValidationError
from orabatch.result import OperationResult
from orabatch.retry import RetryPolicy


class IsolationLevel(Enum):
    """Oracle transaction modes"""

    READ_COMMITTED = "READ COMMITTED"
    SERIALIZABLE = "SERIALIZABLE"
    READ_ONLY = "READ ONLY"

    @property
    def statement(self) -> Optional[str]:
        # READ COMMITTED is the session default
        if self is IsolationLevel.READ_COMMITTED:
            return None
        if self is IsolationLevel.READ_ONLY:
            return "SET TRANSACTION READ ONLY"
        return f"SET TRANSACTION ISOLATION LEVEL {self.value}"


@dataclass(frozen=True)
class TransactionOptions:
    isolation: IsolationLevel = IsolationLevel.READ_COMMITTED
    timeout: Optional[float] = 300.0
    auto_rollback_on_error: bool = True
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValidationError("timeout: must be a positive number")


class AlreadyActiveError(StateError):
    pass


class NotActiveError(StateError):
    pass


class TransactionError(DriverError):
    """A transaction control statement failed"""

    pass


class SavepointError(TransactionError):
    pass


class CommitFailedError(TransactionError):
    pass


class RollbackFailedError(TransactionError):
    pass


class BatchStatementError(TransactionError):
    """Raised by ``execute_batch`` when a statement fails with stop_on_error.

    ``results`` holds every per-operation result recorded up to and
    including the failing one.
    """

    def __init__(
        self,
        message: str,
        results: Optional[List[OperationResult]] = None,
    ) -> None:
        super().__init__(message)
        self.results = list(results or [])

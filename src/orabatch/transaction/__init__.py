"""
Savepoint-aware transaction control with retry on lock conflicts.
"""

from .coordinator import Statement, TransactionCoordinator
from .interfaces import (
    AlreadyActiveError,
    BatchStatementError,
    CommitFailedError,
    IsolationLevel,
    NotActiveError,
    RollbackFailedError,
    SavepointError,
    TransactionError,
    TransactionOptions,
)
from .savepoint import Savepoint
from .state import SavepointInfo, TransactionInfo, TransactionState

__all__ = [
    "TransactionCoordinator",
    "Statement",
    "TransactionOptions",
    "IsolationLevel",
    "TransactionError",
    "AlreadyActiveError",
    "NotActiveError",
    "SavepointError",
    "CommitFailedError",
    "RollbackFailedError",
    "BatchStatementError",
    "Savepoint",
    "SavepointInfo",
    "TransactionInfo",
    "TransactionState",
]

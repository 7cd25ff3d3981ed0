from .connection import (
    ConnectionHandle,
    ExecuteManyResult,
    ExecuteResult,
    RowError,
)

__all__ = (
    "ConnectionHandle",
    "ExecuteManyResult",
    "ExecuteResult",
    "RowError",
)

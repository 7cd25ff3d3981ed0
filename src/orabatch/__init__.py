from importlib.metadata import version

from .base.connection import (
    ConnectionHandle,
    ExecuteManyResult,
    ExecuteResult,
    RowError,
)
from .binds import Bind, BindDirection, BindKind
from .bulk import BulkBatchEngine, BulkOperation, BulkOptions
from .classifier import ErrorCategory, classify
from .exception import (
    BulkOperationError,
    ConflictError,
    DriverError,
    DuplicateSavepointError,
    EmptyDatasetError,
    InvalidIdentifierError,
    InvalidNameError,
    MissingKeyColumnsError,
    NoUpdatableColumnsError,
    OrabatchError,
    SavepointNotFoundError,
    StateError,
    ValidationError,
)
from .interface.oracle import OracleConnection, OraclePool
from .pool import PoolManager
from .result import (
    BatchError,
    BatchOperationResult,
    OperationKind,
    OperationResult,
    ResultAggregator,
)
from .retry import RetryPolicy
from .transaction import (
    AlreadyActiveError,
    CommitFailedError,
    IsolationLevel,
    NotActiveError,
    TransactionCoordinator,
    TransactionOptions,
)

__version__ = version("orabatch")

__all__ = (
    "AlreadyActiveError",
    "BatchError",
    "BatchOperationResult",
    "Bind",
    "BindDirection",
    "BindKind",
    "BulkBatchEngine",
    "BulkOperation",
    "BulkOperationError",
    "BulkOptions",
    "CommitFailedError",
    "ConflictError",
    "ConnectionHandle",
    "DriverError",
    "DuplicateSavepointError",
    "EmptyDatasetError",
    "ErrorCategory",
    "ExecuteManyResult",
    "ExecuteResult",
    "InvalidIdentifierError",
    "InvalidNameError",
    "IsolationLevel",
    "MissingKeyColumnsError",
    "NoUpdatableColumnsError",
    "NotActiveError",
    "OperationKind",
    "OperationResult",
    "OrabatchError",
    "OracleConnection",
    "OraclePool",
    "PoolManager",
    "ResultAggregator",
    "RetryPolicy",
    "RowError",
    "SavepointNotFoundError",
    "StateError",
    "TransactionCoordinator",
    "TransactionOptions",
    "ValidationError",
    "classify",
)

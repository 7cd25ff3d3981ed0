from .engine import (
    DEFAULT_BATCH_SIZE,
    BulkBatchEngine,
    BulkOperation,
    BulkOptions,
    batch_bounds,
)
from .statement import (
    BulkStatement,
    MergeStatement,
    build_delete,
    build_insert,
    build_merge,
    build_update,
    validate_identifier,
)

__all__ = (
    "DEFAULT_BATCH_SIZE",
    "BulkBatchEngine",
    "BulkOperation",
    "BulkOptions",
    "BulkStatement",
    "MergeStatement",
    "batch_bounds",
    "build_delete",
    "build_insert",
    "build_merge",
    "build_update",
    "validate_identifier",
)

"""
Preconfigured coordinators and engines for common workloads.
"""

from orabatch.base.connection import ConnectionHandle
from orabatch.bulk import BulkBatchEngine
from orabatch.retry import RetryPolicy
from orabatch.transaction import (
    IsolationLevel,
    TransactionCoordinator,
    TransactionOptions,
)

OLTP = TransactionOptions(
    isolation=IsolationLevel.READ_COMMITTED,
    timeout=30,
    retry_policy=RetryPolicy(max_retries=3, retry_delay_ms=500),
)
BATCH = TransactionOptions(
    isolation=IsolationLevel.READ_COMMITTED,
    timeout=1800,
    retry_policy=RetryPolicy(max_retries=5, retry_delay_ms=2000),
)
ANALYTICS = TransactionOptions(
    isolation=IsolationLevel.READ_ONLY,
    timeout=3600,
    auto_rollback_on_error=False,
    retry_policy=RetryPolicy(max_retries=1, retry_delay_ms=0),
)
CRITICAL = TransactionOptions(
    isolation=IsolationLevel.SERIALIZABLE,
    timeout=120,
    retry_policy=RetryPolicy(max_retries=5, retry_delay_ms=1500),
)

HIGH_VOLUME_BATCH_SIZE = 5000
FAST_BATCH_SIZE = 10000
CONSERVATIVE_BATCH_SIZE = 500


def create_oltp_coordinator(
    connection: ConnectionHandle,
) -> TransactionCoordinator:
    """Short transactions, quick retries"""
    return TransactionCoordinator(connection, OLTP)


def create_batch_coordinator(
    connection: ConnectionHandle,
) -> TransactionCoordinator:
    """Long running batch transactions"""
    return TransactionCoordinator(connection, BATCH)


def create_analytics_coordinator(
    connection: ConnectionHandle,
) -> TransactionCoordinator:
    """Read-only reporting, no retries"""
    return TransactionCoordinator(connection, ANALYTICS)


def create_critical_coordinator(
    connection: ConnectionHandle,
) -> TransactionCoordinator:
    return TransactionCoordinator(connection, CRITICAL)


def create_high_volume_engine(connection: ConnectionHandle) -> BulkBatchEngine:
    return BulkBatchEngine(connection, HIGH_VOLUME_BATCH_SIZE)


def create_fast_engine(connection: ConnectionHandle) -> BulkBatchEngine:
    return BulkBatchEngine(connection, FAST_BATCH_SIZE)


def create_conservative_engine(
    connection: ConnectionHandle,
) -> BulkBatchEngine:
    """Small batches for memory constrained workers"""
    return BulkBatchEngine(connection, CONSERVATIVE_BATCH_SIZE)

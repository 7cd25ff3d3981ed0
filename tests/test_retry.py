from unittest.mock import AsyncMock

import pytest

from orabatch.exception import ConflictError, DriverError, ValidationError
from orabatch.retry import RetryPolicy
from orabatch.transaction import TransactionCoordinator, TransactionOptions
from orabatch.transaction import coordinator as coordinator_module

DEADLOCK = "ORA-00060: deadlock detected while waiting for resource"


def make_txn(connection, **policy):
    policy.setdefault("retry_delay_ms", 0)
    return TransactionCoordinator(
        connection,
        TransactionOptions(retry_policy=RetryPolicy(**policy)),
    )


async def test_always_deadlocking_operation(connection):
    txn = make_txn(connection, max_retries=3)
    error = DriverError(DEADLOCK)
    operation = AsyncMock(side_effect=error)
    await txn.begin_transaction()

    with pytest.raises(DriverError) as exc_info:
        await txn.execute_with_retry(operation, "x")

    assert exc_info.value is error
    assert operation.await_count == 3
    assert txn.retry_count == 2


async def test_fatal_error_is_not_retried(connection):
    txn = make_txn(connection, max_retries=5)
    error = DriverError("ORA-00001: unique constraint (APP.PK) violated")
    operation = AsyncMock(side_effect=error)
    await txn.begin_transaction()

    with pytest.raises(DriverError) as exc_info:
        await txn.execute_with_retry(operation, "insert")

    assert exc_info.value is error
    assert operation.await_count == 1
    assert txn.retry_count == 0


async def test_connectivity_errors_are_fatal(connection):
    txn = make_txn(connection, max_retries=5)
    operation = AsyncMock(side_effect=DriverError("ORA-03113: end-of-file"))

    with pytest.raises(DriverError):
        await txn.execute_with_retry(operation)

    assert operation.await_count == 1


async def test_succeeds_after_conflict(connection):
    txn = make_txn(connection, max_retries=3)
    operation = AsyncMock(
        side_effect=[ConflictError("ORA-08177: can't serialize access"), 42]
    )
    await txn.begin_transaction()

    result = await txn.execute_with_retry(operation, "serializable update")

    assert result == 42
    assert operation.await_count == 2
    assert txn.retry_count == 1


async def test_plain_exception_with_conflict_code(connection):
    txn = make_txn(connection, max_retries=2)
    operation = AsyncMock(
        side_effect=[RuntimeError("ORA-00054: resource busy"), "done"]
    )

    assert await txn.execute_with_retry(operation) == "done"


async def test_retry_count_only_tracked_inside_transaction(connection):
    txn = make_txn(connection, max_retries=2)
    operation = AsyncMock(side_effect=[DriverError(DEADLOCK), None])

    await txn.execute_with_retry(operation)

    assert txn.retry_count == 0


async def test_retry_count_resets_on_commit(connection):
    txn = make_txn(connection, max_retries=2)
    operation = AsyncMock(side_effect=[DriverError(DEADLOCK), None])
    await txn.begin_transaction()
    await txn.execute_with_retry(operation)
    assert txn.retry_count == 1

    await txn.commit()

    assert txn.retry_count == 0


async def test_custom_retryable_codes(connection):
    txn = make_txn(
        connection,
        max_retries=2,
        retryable_error_codes=frozenset({"ORA-03113"}),
    )
    operation = AsyncMock(side_effect=[DriverError("ORA-03113: eof"), "ok"])

    assert await txn.execute_with_retry(operation) == "ok"


async def test_narrowed_policy_skips_other_conflicts(connection):
    txn = make_txn(
        connection, max_retries=3, retryable_error_codes={"ORA-00060"}
    )
    error = ConflictError("ORA-00054: resource busy")
    operation = AsyncMock(side_effect=error)

    with pytest.raises(ConflictError) as exc_info:
        await txn.execute_with_retry(operation)

    assert exc_info.value is error
    assert operation.await_count == 1


async def test_sleeps_fixed_delay_between_attempts(connection, monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr(coordinator_module.asyncio, "sleep", sleep)
    txn = make_txn(connection, max_retries=3, retry_delay_ms=250)
    operation = AsyncMock(side_effect=DriverError(DEADLOCK))

    with pytest.raises(DriverError):
        await txn.execute_with_retry(operation)

    assert [c.args[0] for c in sleep.await_args_list] == [0.25, 0.25]


def test_backoff_delay():
    policy = RetryPolicy(
        retry_delay_ms=100, backoff_multiplier=2, max_retry_delay_ms=300
    )
    assert policy.delay_for(1) == 0.1
    assert policy.delay_for(2) == 0.2
    assert policy.delay_for(3) == 0.3
    assert policy.delay_for(4) == 0.3


def test_fixed_delay_by_default():
    policy = RetryPolicy(retry_delay_ms=1000)
    assert {policy.delay_for(n) for n in range(1, 5)} == {1.0}


@pytest.mark.parametrize(
    "kwargs",
    (
        {"max_retries": 0},
        {"retry_delay_ms": -1},
        {"backoff_multiplier": 0.5},
        {"max_retry_delay_ms": -5},
    ),
)
def test_invalid_policy(kwargs):
    with pytest.raises(ValidationError):
        RetryPolicy(**kwargs)

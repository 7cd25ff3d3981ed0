from types import SimpleNamespace

import pytest

from orabatch.exception import DriverError, ValidationError
from orabatch.transaction import (
    BatchStatementError,
    Statement,
    TransactionCoordinator,
)
from orabatch.transaction import coordinator as coordinator_module

OPERATIONS = [
    {"sql": "UPDATE accounts SET balance = balance - 10 WHERE id = 1"},
    {"sql": "INSERT INTO broken VALUES (1)", "name": "broken insert"},
    Statement("UPDATE accounts SET balance = balance + 10 WHERE id = 2"),
]


@pytest.fixture
def failing_connection(connection):
    connection.execute_errors["INSERT INTO broken"] = DriverError(
        "ORA-00942: table or view does not exist"
    )
    return connection


async def test_begins_implicitly_and_leaves_commit_to_caller(connection):
    txn = TransactionCoordinator(connection)

    results = await txn.execute_batch(
        [{"sql": "DELETE FROM staging", "binds": {"id": 1}}]
    )

    assert txn.is_active
    assert connection.commits == 0
    assert results[0].success
    assert results[0].name == "operation_1"
    assert results[0].rows_affected == 1


async def test_stop_on_error(failing_connection):
    txn = TransactionCoordinator(failing_connection)

    with pytest.raises(BatchStatementError) as exc_info:
        await txn.execute_batch(OPERATIONS)

    error = exc_info.value
    assert "broken insert" in str(error)
    assert "ORA-00942" in str(error)
    assert [r.success for r in error.results] == [True, False]
    assert len(failing_connection.statements) == 2
    assert txn.is_active


async def test_stop_on_error_rolls_back_to_latest_savepoint(
    failing_connection,
):
    txn = TransactionCoordinator(failing_connection)

    with pytest.raises(BatchStatementError):
        await txn.execute_batch(OPERATIONS, savepoint_per_operation=True)

    statements = failing_connection.statements
    assert statements[0].startswith("SAVEPOINT batch_0_")
    assert statements[2].startswith("SAVEPOINT batch_1_")
    latest = statements[2].split()[1]
    assert statements[-1] == f"ROLLBACK TO SAVEPOINT {latest}"
    assert txn.savepoints == [statements[0].split()[1], latest]


async def test_continue_on_error(failing_connection):
    txn = TransactionCoordinator(failing_connection)

    results = await txn.execute_batch(OPERATIONS, stop_on_error=False)

    assert [r.index for r in results] == [0, 1, 2]
    assert [r.success for r in results] == [True, False, True]
    assert results[1].name == "broken insert"
    assert "ORA-00942" in results[1].error
    assert not any(s.startswith("ROLLBACK") for s in failing_connection.statements)


async def test_runs_inside_existing_transaction(connection):
    txn = TransactionCoordinator(connection)
    await txn.begin_transaction()
    started_at = txn.started_at

    await txn.execute_batch([{"sql": "DELETE FROM staging"}])

    assert txn.started_at == started_at


async def test_savepoint_names_stay_unique_within_a_millisecond(
    connection, monkeypatch
):
    clock = SimpleNamespace(time=lambda: 1792320985.5)
    monkeypatch.setattr(coordinator_module, "time", clock)
    txn = TransactionCoordinator(connection)
    await txn.begin_transaction()

    first = await txn.execute_batch(
        [{"sql": "DELETE FROM a"}], savepoint_per_operation=True
    )
    second = await txn.execute_batch(
        [{"sql": "DELETE FROM b"}], savepoint_per_operation=True
    )

    assert first[0].success and second[0].success
    assert txn.savepoints == [
        "batch_0_1792320985500",
        "batch_0_1792320985500_1",
    ]
    assert all(len(name) <= 30 for name in txn.savepoints)


async def test_operation_without_sql(connection):
    txn = TransactionCoordinator(connection)

    with pytest.raises(ValidationError) as exc_info:
        await txn.execute_batch([{"sql": "DELETE FROM a"}, {"name": "empty"}])

    assert "Operation 1" in str(exc_info.value)
    assert connection.statements == []
    assert not txn.is_active

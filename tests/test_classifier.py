import pytest

from orabatch.classifier import (
    DEFAULT_RETRYABLE_CODES,
    ErrorCategory,
    classify,
    extract_code,
    is_retryable,
)
from orabatch.exception import ConflictError, DriverError


@pytest.mark.parametrize(
    "message",
    (
        "ORA-00060: deadlock detected while waiting for resource",
        "ORA-08177: can't serialize access for this transaction",
        "ORA-00054: resource busy and acquire with NOWAIT specified",
        "ORA-30006: resource busy; acquire with WAIT timeout expired",
    ),
)
def test_conflicts_are_retryable(message):
    assert classify(DriverError(message)) is ErrorCategory.RETRYABLE
    assert classify(Exception(message)) is ErrorCategory.RETRYABLE


@pytest.mark.parametrize(
    "message",
    (
        "ORA-00001: unique constraint (APP.PK_ITEMS) violated",
        "ORA-00942: table or view does not exist",
        "ORA-00933: SQL command not properly ended",
        "ORA-03113: end-of-file on communication channel",
        "ORA-12170: TNS:Connect timeout occurred",
        "DPY-4011: the database or network closed the connection",
        "something went wrong",
    ),
)
def test_everything_else_is_fatal(message):
    assert classify(DriverError(message)) is ErrorCategory.FATAL


def test_conflict_error_follows_code_set():
    busy = ConflictError("ORA-00054: resource busy")
    assert classify(busy) is ErrorCategory.RETRYABLE
    assert classify(busy, {"ORA-00060"}) is ErrorCategory.FATAL
    assert classify(ConflictError("lock wait")) is ErrorCategory.FATAL


def test_code_mentioned_later_in_message_is_ignored():
    error = DriverError(
        "ORA-01400: cannot insert NULL (seen after ORA-00060 earlier)"
    )
    assert classify(error) is ErrorCategory.FATAL


def test_custom_code_set():
    error = DriverError("ORA-12170: TNS:Connect timeout occurred")
    codes = DEFAULT_RETRYABLE_CODES | {"ORA-12170"}
    assert classify(error, codes) is ErrorCategory.RETRYABLE
    assert classify(DriverError("ORA-00060: x"), ()) is ErrorCategory.FATAL


def test_extract_code():
    assert extract_code(Exception("ORA-00942: missing")) == "ORA-00942"
    assert extract_code(Exception("DPY-4011: closed")) == "DPY-4011"
    assert extract_code(DriverError("no code", code="ORA-01400")) == "ORA-01400"
    assert extract_code(Exception("plain")) is None


def test_driver_error_keeps_message():
    error = DriverError("ORA-01400: cannot insert NULL")
    assert str(error) == "ORA-01400: cannot insert NULL"
    assert error.code == "ORA-01400"


def test_is_retryable():
    assert is_retryable(ConflictError("ORA-00054: resource busy"))
    assert not is_retryable(ValueError("bad input"))

import pytest

from orabatch import factory
from orabatch.binds import Bind, BindDirection, BindKind
from orabatch.exception import ValidationError
from orabatch.transaction import IsolationLevel


def test_coordinator_presets(connection):
    oltp = factory.create_oltp_coordinator(connection)
    analytics = factory.create_analytics_coordinator(connection)
    critical = factory.create_critical_coordinator(connection)
    batch = factory.create_batch_coordinator(connection)

    assert oltp.options.retry_policy.max_retries == 3
    assert analytics.options.isolation is IsolationLevel.READ_ONLY
    assert not analytics.options.auto_rollback_on_error
    assert critical.options.isolation is IsolationLevel.SERIALIZABLE
    assert batch.options.timeout > oltp.options.timeout
    assert oltp.connection is connection


@pytest.mark.parametrize(
    "create,size",
    (
        (factory.create_high_volume_engine, 5000),
        (factory.create_fast_engine, 10000),
        (factory.create_conservative_engine, 500),
    ),
)
def test_engine_presets(connection, create, size):
    assert create(connection).default_batch_size == size


def test_bind_constructors():
    assert Bind.cursor().direction is BindDirection.OUT
    assert Bind.out(BindKind.STRING, max_size=100).is_output
    assert not Bind.number(5).is_output
    assert Bind.in_out(BindKind.NUMBER, 1).value == 1


@pytest.mark.parametrize(
    "kwargs",
    (
        {"kind": BindKind.CURSOR},
        {"kind": BindKind.STRING, "value": "x", "direction": BindDirection.OUT},
    ),
)
def test_invalid_binds(kwargs):
    with pytest.raises(ValidationError):
        Bind(**kwargs)

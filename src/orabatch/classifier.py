"""
Maps driver errors onto the closed retryable/fatal split used by the
transaction coordinator and the bulk engine.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, Optional

from orabatch.exception import ORA_CODE, DriverError

DEADLOCK = "ORA-00060"
SERIALIZATION_FAILURE = "ORA-08177"
RESOURCE_BUSY = "ORA-00054"
RESOURCE_BUSY_NOWAIT = "ORA-30006"

DEFAULT_RETRYABLE_CODES: FrozenSet[str] = frozenset(
    (DEADLOCK, SERIALIZATION_FAILURE, RESOURCE_BUSY, RESOURCE_BUSY_NOWAIT)
)


class ErrorCategory(Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


def extract_code(error: BaseException) -> Optional[str]:
    """Return the first ``ORA-NNNNN`` style code carried by an error"""
    if isinstance(error, DriverError) and error.code:
        return error.code
    match = ORA_CODE.search(str(error))
    return match.group(1) if match else None


def is_conflict_code(
    code: Optional[str],
    retryable_codes: Iterable[str] = DEFAULT_RETRYABLE_CODES,
) -> bool:
    return code is not None and code in set(retryable_codes)


def classify(
    error: BaseException,
    retryable_codes: Iterable[str] = DEFAULT_RETRYABLE_CODES,
) -> ErrorCategory:
    """Classify an error as RETRYABLE or FATAL.

    An error is retryable only when the code it carries is one of
    ``retryable_codes``; by default those are the lock and serialization
    conflicts. Connectivity errors are FATAL; reconnecting is up to the
    caller.
    """
    if is_conflict_code(extract_code(error), retryable_codes):
        return ErrorCategory.RETRYABLE
    return ErrorCategory.FATAL


def is_retryable(
    error: BaseException,
    retryable_codes: Iterable[str] = DEFAULT_RETRYABLE_CODES,
) -> bool:
    return classify(error, retryable_codes) is ErrorCategory.RETRYABLE

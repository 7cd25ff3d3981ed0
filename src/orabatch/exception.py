from __future__ import annotations

import re
from typing import Optional

ORA_CODE = re.compile(r"\b((?:ORA|PLS|DPY|DPI)-\d{4,5})\b")


class OrabatchError(Exception):
    """Root of every error raised by orabatch"""


class ValidationError(OrabatchError):
    """Bad input detected before any statement is sent"""


class StateError(OrabatchError):
    """Operation attempted in the wrong transaction state"""


class InvalidNameError(ValidationError):
    ...


class DuplicateSavepointError(ValidationError):
    ...


class SavepointNotFoundError(ValidationError):
    ...


class EmptyDatasetError(ValidationError):
    ...


class NoUpdatableColumnsError(ValidationError):
    ...


class MissingKeyColumnsError(ValidationError):
    ...


class InvalidIdentifierError(ValidationError):
    ...


class DriverError(OrabatchError):
    """Raised for anything reported by the database connection.

    The original driver message is kept verbatim in ``str(error)`` and the
    driver exception, when there is one, is chained as ``__cause__``.
    """

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is None:
            match = ORA_CODE.search(message)
            code = match.group(1) if match else None
        self.code = code


class ConflictError(DriverError):
    """Deadlock, serialization failure or resource busy"""


class BulkOperationError(DriverError):
    def __init__(
        self,
        message: str,
        batch_index: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, code=code)
        self.batch_index = batch_index

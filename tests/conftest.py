from typing import Callable, Dict, List, Optional, Sequence

import pytest

from orabatch.base.connection import (
    ConnectionHandle,
    ExecuteManyResult,
    ExecuteResult,
    RowError,
)
from orabatch.exception import DriverError


class FakeConnection(ConnectionHandle):
    """In-memory handle recording every call.

    ``row_failure`` returns an error message for bind rows that should fail.
    ``execute_errors`` maps a SQL prefix to the exception ``execute`` raises.
    ``many_errors`` is consumed in order: one entry per ``execute_many`` call,
    ``None`` meaning that call succeeds.
    """

    def __init__(self):
        self.statements: List[str] = []
        self.many_calls: List[Dict] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.row_failure: Optional[Callable[[Dict], Optional[str]]] = None
        self.execute_errors: Dict[str, Exception] = {}
        self.many_errors: List[Optional[Exception]] = []
        self.commit_error: Optional[Exception] = None
        self.rollback_error: Optional[Exception] = None
        self.rows_affected = 1

    async def execute(self, sql, binds=None, *, auto_commit=False):
        self.statements.append(sql)
        for prefix, error in self.execute_errors.items():
            if sql.startswith(prefix):
                raise error
        if auto_commit:
            self.commits += 1
        return ExecuteResult(rows_affected=self.rows_affected)

    async def execute_many(
        self,
        sql,
        binds: Sequence[Dict],
        *,
        auto_commit=False,
        batch_errors=False,
    ):
        self.many_calls.append(
            {"sql": sql, "binds": list(binds), "batch_errors": batch_errors}
        )
        if self.many_errors:
            error = self.many_errors.pop(0)
            if error is not None:
                raise error
        errors = []
        for offset, row in enumerate(binds):
            message = self.row_failure(row) if self.row_failure else None
            if message is None:
                continue
            if not batch_errors:
                raise DriverError(message)
            errors.append(RowError(offset=offset, message=message))
        if auto_commit:
            self.commits += 1
        return ExecuteManyResult(
            rows_affected=len(binds) - len(errors), batch_errors=errors
        )

    async def commit(self):
        if self.commit_error is not None:
            raise self.commit_error
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1
        if self.rollback_error is not None:
            raise self.rollback_error

    async def close(self):
        self.closed = True


@pytest.fixture
def connection():
    return FakeConnection()

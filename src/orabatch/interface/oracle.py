from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, contextmanager
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

import oracledb

from orabatch.base.connection import (
    Binds,
    ConnectionHandle,
    ExecuteManyResult,
    ExecuteResult,
    RowError,
)
from orabatch.binds import Bind, BindDirection, BindKind
from orabatch.classifier import ErrorCategory, classify, extract_code
from orabatch.exception import (
    ConflictError,
    DriverError,
    OrabatchError,
    ValidationError,
)

DB_TYPES = {
    BindKind.STRING: oracledb.DB_TYPE_VARCHAR,
    BindKind.NUMBER: oracledb.DB_TYPE_NUMBER,
    BindKind.DATE: oracledb.DB_TYPE_DATE,
    BindKind.CLOB: oracledb.DB_TYPE_CLOB,
    BindKind.CURSOR: oracledb.DB_TYPE_CURSOR,
}


def translate_error(error: Exception) -> DriverError:
    message = str(error)
    code = extract_code(error)
    if classify(error) is ErrorCategory.RETRYABLE:
        return ConflictError(message, code=code)
    return DriverError(message, code=code)


@contextmanager
def translate_errors():
    try:
        yield
    except oracledb.Error as e:
        raise translate_error(e) from e


def prepare_binds(
    cursor: Any, binds: Optional[Binds]
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split binds into driver parameters and the OUT variables to read back"""
    params: Dict[str, Any] = {}
    outputs: Dict[str, Any] = {}
    for name, value in (binds or {}).items():
        if not isinstance(value, Bind):
            params[name] = value
            continue
        if not value.is_output and value.kind is not BindKind.CLOB:
            params[name] = value.value
            continue
        var = cursor.var(DB_TYPES[value.kind], size=value.max_size or 0)
        if value.direction is not BindDirection.OUT:
            var.setvalue(0, value.value)
        if value.is_output:
            outputs[name] = var
        params[name] = var
    return params, outputs


def prepare_array_binds(
    binds: Sequence[Binds],
) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    """Unwrap ``Bind`` values for executemany.

    Returns the plain rows and the input sizes for CLOB columns. Array DML
    takes IN binds only.
    """
    rows: List[Dict[str, Any]] = []
    sizes: Dict[str, Any] = {}
    for row in binds:
        plain: Dict[str, Any] = {}
        for name, value in row.items():
            if isinstance(value, Bind):
                if value.is_output:
                    raise ValidationError(
                        f"{name}: OUT binds are not supported in array DML"
                    )
                if value.kind is BindKind.CLOB:
                    sizes[name] = DB_TYPES[BindKind.CLOB]
                value = value.value
            plain[name] = value
        rows.append(plain)
    return rows, sizes


class OracleConnection(ConnectionHandle):
    """Connection handle over an ``oracledb.AsyncConnection``"""

    def __init__(self, connection: oracledb.AsyncConnection):
        self._connection = connection

    @property
    def raw(self) -> oracledb.AsyncConnection:
        return self._connection

    async def execute(
        self,
        sql: str,
        binds: Optional[Binds] = None,
        *,
        auto_commit: bool = False,
    ) -> ExecuteResult:
        with translate_errors():
            with self._connection.cursor() as cursor:
                params, outputs = prepare_binds(cursor, binds)
                await cursor.execute(sql, params)
                rows = None
                rows_affected = None
                if cursor.description:
                    rows = await cursor.fetchall()
                else:
                    rows_affected = cursor.rowcount
                out_binds = {
                    name: var.getvalue() for name, var in outputs.items()
                }
            if auto_commit:
                await self._connection.commit()
        return ExecuteResult(
            rows=rows, rows_affected=rows_affected, out_binds=out_binds
        )

    async def execute_many(
        self,
        sql: str,
        binds: Sequence[Binds],
        *,
        auto_commit: bool = False,
        batch_errors: bool = False,
    ) -> ExecuteManyResult:
        rows, sizes = prepare_array_binds(binds)
        with translate_errors():
            with self._connection.cursor() as cursor:
                if sizes:
                    cursor.setinputsizes(**sizes)
                await cursor.executemany(sql, rows, batcherrors=batch_errors)
                errors = []
                if batch_errors:
                    errors = [
                        RowError(offset=error.offset, message=error.message)
                        for error in cursor.getbatcherrors()
                    ]
                rows_affected = cursor.rowcount
            if auto_commit:
                await self._connection.commit()
        return ExecuteManyResult(
            rows_affected=rows_affected, batch_errors=errors
        )

    async def commit(self) -> None:
        with translate_errors():
            await self._connection.commit()

    async def rollback(self) -> None:
        with translate_errors():
            await self._connection.rollback()

    async def close(self) -> None:
        with translate_errors():
            await self._connection.close()


class OraclePool:
    """Interface for connecting to an Oracle database"""

    scheme = "oracle"

    def __init__(
        self,
        dsn: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        min_size: int = 1,
        max_size: Optional[int] = None,
        increment: int = 1,
    ) -> None:
        """Pool initialization.

        Args:
            dsn (str, optional): Easy Connect string or TNS alias
            user (str, optional): Database user
            password (str, optional): Database password
            min_size (int, optional): Minimum number of connections in pool.
                Defaults to 1
            max_size (int, optional): Maximum number of connections in pool.
                Defaults to `min_size`
            increment (int, optional): Connections opened when the pool
                grows. Defaults to 1
        """
        if not dsn or not isinstance(dsn, str):
            raise ValidationError("dsn: must be a non-empty string")

        if password is not None and (
            not isinstance(password, str) or not len(password) > 0
        ):
            raise ValidationError(
                "password: must be a string at least 1 character long"
            )

        if not isinstance(min_size, int) or min_size < 0:
            raise ValidationError("min_size: must be a non-negative integer")

        if max_size is not None and (
            not isinstance(max_size, int) or max_size < max(min_size, 1)
        ):
            raise ValidationError(
                "max_size: must be an integer no smaller than min_size"
            )

        self._dsn = dsn
        self._user = user
        self._password = password
        self._min_size = min_size
        self._max_size = max_size or max(min_size, 1)
        self._increment = increment
        self._pool: Optional[oracledb.AsyncConnectionPool] = None

    def __str__(self) -> str:
        return f"<{self.__class__.__name__} {self.user}@{self.dsn}>"

    async def open(self):
        """Open connections to the pool"""
        if self._pool is None:
            self._pool = oracledb.create_pool_async(
                user=self._user,
                password=self._password,
                dsn=self._dsn,
                min=self._min_size,
                max=self._max_size,
                increment=self._increment,
            )

    async def close(self):
        """Close connections to the pool"""
        if self._pool is not None:
            pool, self._pool = self._pool, None
            with translate_errors():
                await pool.close()

    @asynccontextmanager
    async def connection(
        self, timeout: Optional[float] = None
    ) -> AsyncIterator[OracleConnection]:
        """Obtain a connection to the database

        Args:
            timeout (float, optional): Time before an error is raised on
                failure to acquire. Defaults to `None`.

        Yields:
            OracleConnection: A connection handle, released to the pool on
                exit
        """
        if self._pool is None:
            raise OrabatchError(f"{self} is not open")
        pool = self._pool
        try:
            with translate_errors():
                raw = await asyncio.wait_for(pool.acquire(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DriverError(
                f"Timeout acquiring a connection from {self}"
            ) from e
        try:
            yield OracleConnection(raw)
        finally:
            await pool.release(raw)

    @property
    def dsn(self):
        return self._dsn

    @property
    def user(self):
        return self._user

    @property
    def min_size(self):
        return self._min_size

    @property
    def max_size(self):
        return self._max_size

    @property
    def is_open(self) -> bool:
        return self._pool is not None

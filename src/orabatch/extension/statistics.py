from collections import defaultdict
from typing import DefaultDict, Mapping, Optional, Sequence

from orabatch.base.connection import (
    Binds,
    ConnectionHandle,
    ExecuteManyResult,
    ExecuteResult,
)


def statement_verb(sql: str) -> str:
    words = sql.split(None, 1)
    return words[0].lower() if words else "unknown"


class CountingConnection(ConnectionHandle):
    """Wraps a handle and counts statements by their leading verb"""

    def __init__(self, connection: ConnectionHandle) -> None:
        self._connection = connection
        self.reset()

    def reset(self):
        self._counter: DefaultDict[str, int] = defaultdict(int)

    @property
    def counter(self):
        return dict(self._counter)

    async def execute(
        self,
        sql: str,
        binds: Optional[Binds] = None,
        *,
        auto_commit: bool = False,
    ) -> ExecuteResult:
        self._counter[statement_verb(sql)] += 1
        return await self._connection.execute(
            sql, binds, auto_commit=auto_commit
        )

    async def execute_many(
        self,
        sql: str,
        binds: Sequence[Binds],
        *,
        auto_commit: bool = False,
        batch_errors: bool = False,
    ) -> ExecuteManyResult:
        self._counter[statement_verb(sql)] += 1
        return await self._connection.execute_many(
            sql, binds, auto_commit=auto_commit, batch_errors=batch_errors
        )

    async def commit(self) -> None:
        self._counter["commit"] += 1
        await self._connection.commit()

    async def rollback(self) -> None:
        self._counter["rollback"] += 1
        await self._connection.rollback()

    async def close(self) -> None:
        await self._connection.close()


def log_statistics_report(
    logger, connections: Mapping[str, CountingConnection]
):
    COLUMN_SIZE = 8
    if not connections:
        logger.warning("No statement counters found")
        return
    keys = list(
        sorted(
            {
                key.rjust(COLUMN_SIZE)
                for connection in connections.values()
                for key in connection.counter.keys()
            }
        )
    )
    max_name = max(map(len, connections.keys()))
    headers = " | ".join([" " * max_name, *keys])
    row_data = [
        " | ".join(
            [
                name.rjust(max_name),
                *[
                    str(connection.counter.get(key.strip(), "-")).rjust(
                        COLUMN_SIZE
                    )
                    for key in keys
                ],
            ]
        )
        for name, connection in sorted(connections.items())
    ]
    rows = "\n".join(row_data)
    total_values: DefaultDict[str, int] = defaultdict(int)
    for connection in connections.values():
        for key, value in connection.counter.items():
            total_values[key] += value
    divider = "=" * len(row_data[0])
    totals = " | ".join(
        [
            "TOTALS".rjust(max_name),
            *[
                str(total_values.get(key.strip(), "-")).rjust(COLUMN_SIZE)
                for key in keys
            ],
        ]
    )
    title = "STATEMENT COUNTERS".center(len(divider))

    logger.info(
        f"SQL Statistics Report\n\n{title}\n\n{headers}\n"
        f"{rows}\n{divider}\n{totals}\n\n"
    )

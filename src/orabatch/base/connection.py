from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

Binds = Mapping[str, Any]


@dataclass
class RowError:
    """A per-row failure reported by an array-bind execution"""

    offset: int
    message: str


@dataclass
class ExecuteResult:
    rows: Optional[List[Any]] = None
    rows_affected: Optional[int] = None
    out_binds: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecuteManyResult:
    rows_affected: int = 0
    batch_errors: List[RowError] = field(default_factory=list)


class ConnectionHandle(ABC):
    """The capability the core consumes from a connection pool.

    Implementations raise on statement failure. ``execute_many`` reports
    per-row failures through ``batch_errors`` instead of raising when called
    with ``batch_errors=True``; a failure of the whole call still raises.
    """

    @abstractmethod
    async def execute(
        self,
        sql: str,
        binds: Optional[Binds] = None,
        *,
        auto_commit: bool = False,
    ) -> ExecuteResult: ...

    @abstractmethod
    async def execute_many(
        self,
        sql: str,
        binds: Sequence[Binds],
        *,
        auto_commit: bool = False,
        batch_errors: bool = False,
    ) -> ExecuteManyResult: ...

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

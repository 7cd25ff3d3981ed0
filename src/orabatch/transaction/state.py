from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from .interfaces import TransactionOptions
    from .savepoint import Savepoint


@dataclass
class TransactionState:
    active: bool = False
    started_at: Optional[datetime] = None
    savepoints: List[Savepoint] = field(default_factory=list)
    retry_count: int = 0

    def find(self, name: str) -> int:
        for index, savepoint in enumerate(self.savepoints):
            if savepoint.name == name:
                return index
        return -1

    def reset(self) -> None:
        self.active = False
        self.started_at = None
        self.savepoints = []
        self.retry_count = 0


@dataclass(frozen=True)
class SavepointInfo:
    name: str
    created_at: datetime
    description: Optional[str] = None


@dataclass(frozen=True)
class TransactionInfo:
    transaction_id: str
    active: bool
    started_at: Optional[datetime]
    duration_ms: int
    savepoints: Tuple[SavepointInfo, ...]
    retry_count: int
    options: TransactionOptions

"""
Result value objects shared by the bulk engine and the transaction batch
path, and the aggregator that builds them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple


class OperationKind(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    UPSERT = "UPSERT"


@dataclass(frozen=True)
class BatchError:
    batch_index: int
    row_index: int
    error_message: str
    row_data: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class BatchOperationResult:
    operation_kind: OperationKind
    total_rows: int
    successful_rows: int
    failed_rows: int
    batch_count: int
    duration_ms: int
    errors: Tuple[BatchError, ...] = ()

    @property
    def success(self) -> bool:
        return self.failed_rows == 0

    @property
    def message(self) -> str:
        return (
            f"Bulk {self.operation_kind.value.lower()} completed: "
            f"{self.successful_rows} succeeded, {self.failed_rows} failed "
            f"in {self.duration_ms}ms"
        )


@dataclass
class SliceOutcome:
    """What one executed slice (or statement) contributed"""

    success_count: int
    failures: List[BatchError] = field(default_factory=list)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one statement inside ``TransactionCoordinator.execute_batch``"""

    index: int
    name: str
    success: bool
    rows_affected: Optional[int] = None
    error: Optional[str] = None


class ResultAggregator:
    def __init__(self) -> None:
        self._started = time.monotonic()
        self._successful = 0
        self._failed = 0
        self._batches = 0
        self._errors: List[BatchError] = []

    def add(self, outcome: SliceOutcome) -> None:
        self._batches += 1
        self._successful += outcome.success_count
        self._failed += len(outcome.failures)
        self._errors.extend(outcome.failures)

    @property
    def successful_rows(self) -> int:
        return self._successful

    @property
    def failed_rows(self) -> int:
        return self._failed

    @property
    def batch_count(self) -> int:
        return self._batches

    @property
    def errors(self) -> Tuple[BatchError, ...]:
        return tuple(self._errors)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started) * 1000)

    def build(
        self,
        kind: OperationKind,
        total_rows: int,
    ) -> BatchOperationResult:
        return BatchOperationResult(
            operation_kind=kind,
            total_rows=total_rows,
            successful_rows=self._successful,
            failed_rows=self._failed,
            batch_count=self._batches,
            duration_ms=self.elapsed_ms,
            errors=tuple(self._errors),
        )

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from orabatch.base.connection import ConnectionHandle
from orabatch.exception import (
    BulkOperationError,
    EmptyDatasetError,
    ValidationError,
)
from orabatch.result import (
    BatchError,
    BatchOperationResult,
    OperationKind,
    ResultAggregator,
    SliceOutcome,
)

from .statement import (
    BulkStatement,
    Row,
    build_delete,
    build_insert,
    build_merge,
    build_update,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass(frozen=True)
class BulkOptions:
    """Per-call options for the bulk engine.

    Args:
        batch_size (int, optional): Rows per array-bind call. Defaults to
            the engine's ``default_batch_size``
        continue_on_error (bool): Record failed rows and batches instead
            of raising. Defaults to `False`
        auto_commit (bool): Commit after every batch. When `False` the
            engine commits once at the end if any row succeeded. Defaults
            to `True`
        include_row_data (bool): Attach the failing row to each error
            entry. Defaults to `False`
    """

    batch_size: Optional[int] = None
    continue_on_error: bool = False
    auto_commit: bool = True
    include_row_data: bool = False

    def __post_init__(self) -> None:
        if self.batch_size is not None and self.batch_size < 1:
            raise ValidationError("batch_size: must be a positive integer")


@dataclass(frozen=True)
class BulkOperation:
    """One entry for ``BulkBatchEngine.run``.

    ``columns`` holds the where columns for UPDATE/DELETE and the key
    columns for UPSERT; it is ignored for INSERT.
    """

    kind: OperationKind
    table: str
    rows: Sequence[Row]
    columns: Sequence[str] = ()
    options: Optional[BulkOptions] = None
    overrides: Dict[str, Any] = field(default_factory=dict)


def batch_bounds(total: int, batch_size: int) -> List[Tuple[int, int]]:
    """Half-open ``(start, end)`` slices covering ``total`` rows"""
    if batch_size < 1:
        raise ValidationError("batch_size: must be a positive integer")
    return [
        (start, min(start + batch_size, total))
        for start in range(0, total, batch_size)
    ]


class BulkBatchEngine:
    """
    Array-bind DML against a single connection.

    Batches run one after another in ascending order; a connection cannot
    run two statements at once.
    """

    def __init__(
        self,
        connection: ConnectionHandle,
        default_batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if default_batch_size < 1:
            raise ValidationError(
                "default_batch_size: must be a positive integer"
            )
        self._connection = connection
        self.default_batch_size = default_batch_size

    async def bulk_insert(
        self,
        table: str,
        rows: Sequence[Row],
        options: Optional[BulkOptions] = None,
        **overrides: Any,
    ) -> BatchOperationResult:
        rows = self._require_rows(rows)
        statement = build_insert(table, rows)
        return await self._run_batches(
            OperationKind.INSERT,
            table,
            statement,
            rows,
            self._options(options, overrides),
        )

    async def bulk_update(
        self,
        table: str,
        rows: Sequence[Row],
        where_columns: Sequence[str],
        options: Optional[BulkOptions] = None,
        **overrides: Any,
    ) -> BatchOperationResult:
        rows = self._require_rows(rows)
        statement = build_update(table, rows, where_columns)
        return await self._run_batches(
            OperationKind.UPDATE,
            table,
            statement,
            rows,
            self._options(options, overrides),
        )

    async def bulk_delete(
        self,
        table: str,
        rows: Sequence[Row],
        where_columns: Sequence[str],
        options: Optional[BulkOptions] = None,
        **overrides: Any,
    ) -> BatchOperationResult:
        rows = self._require_rows(rows)
        statement = build_delete(table, rows, where_columns)
        return await self._run_batches(
            OperationKind.DELETE,
            table,
            statement,
            rows,
            self._options(options, overrides),
        )

    async def bulk_upsert(
        self,
        table: str,
        rows: Sequence[Row],
        key_columns: Sequence[str],
        options: Optional[BulkOptions] = None,
        **overrides: Any,
    ) -> BatchOperationResult:
        """Insert or update every row with one MERGE statement.

        The MERGE is atomic, so ``failed_rows`` is always 0 and
        ``successful_rows`` is the driver's affected-row count.
        """
        rows = self._require_rows(rows)
        resolved = self._options(options, overrides)
        statement = build_merge(table, rows, key_columns)
        aggregator = ResultAggregator()

        logger.debug("Bulk upsert of %d rows into %s", len(rows), table)
        try:
            outcome = await self._connection.execute(
                statement.sql,
                statement.binds,
                auto_commit=resolved.auto_commit,
            )
        except Exception as e:
            logger.error("Bulk upsert into %s failed: %s", table, e)
            raise BulkOperationError(
                f"Bulk upsert into {table} failed: {e}", batch_index=0
            ) from e

        aggregator.add(SliceOutcome(outcome.rows_affected or 0))
        result = aggregator.build(OperationKind.UPSERT, len(rows))
        logger.info(result.message)
        return result

    async def run(
        self, operations: Sequence[BulkOperation]
    ) -> List[BatchOperationResult]:
        """Run several bulk operations one after another"""
        results = []
        for operation in operations:
            kind = operation.kind
            if kind is OperationKind.INSERT:
                call = self.bulk_insert(
                    operation.table,
                    operation.rows,
                    operation.options,
                    **operation.overrides,
                )
            elif kind is OperationKind.UPDATE:
                call = self.bulk_update(
                    operation.table,
                    operation.rows,
                    operation.columns,
                    operation.options,
                    **operation.overrides,
                )
            elif kind is OperationKind.DELETE:
                call = self.bulk_delete(
                    operation.table,
                    operation.rows,
                    operation.columns,
                    operation.options,
                    **operation.overrides,
                )
            else:
                call = self.bulk_upsert(
                    operation.table,
                    operation.rows,
                    operation.columns,
                    operation.options,
                    **operation.overrides,
                )
            results.append(await call)
        return results

    async def _run_batches(
        self,
        kind: OperationKind,
        table: str,
        statement: BulkStatement,
        rows: List[Row],
        options: BulkOptions,
    ) -> BatchOperationResult:
        batch_size = options.batch_size or self.default_batch_size
        aggregator = ResultAggregator()
        label = kind.value.lower()

        for batch_index, (start, end) in enumerate(
            batch_bounds(len(rows), batch_size)
        ):
            chunk = rows[start:end]
            try:
                outcome = await self._connection.execute_many(
                    statement.sql,
                    [statement.binds_for(row) for row in chunk],
                    auto_commit=False,
                    batch_errors=options.continue_on_error,
                )
                if options.auto_commit:
                    await self._connection.commit()
            except Exception as e:
                if not options.continue_on_error:
                    logger.error(
                        "Bulk %s batch %d on %s failed: %s",
                        label,
                        batch_index,
                        table,
                        e,
                    )
                    raise BulkOperationError(
                        f"Bulk {label} batch {batch_index} on {table} "
                        f"failed: {e}",
                        batch_index=batch_index,
                    ) from e
                logger.warning(
                    "Bulk %s batch %d on %s failed, continuing: %s",
                    label,
                    batch_index,
                    table,
                    e,
                )
                aggregator.add(
                    SliceOutcome(
                        0,
                        [
                            self._error(
                                batch_index, start + offset, str(e), row, options
                            )
                            for offset, row in enumerate(chunk)
                        ],
                    )
                )
                continue

            failures = [
                self._error(
                    batch_index,
                    start + row_error.offset,
                    row_error.message,
                    chunk[row_error.offset],
                    options,
                )
                for row_error in outcome.batch_errors
            ]
            aggregator.add(SliceOutcome(len(chunk) - len(failures), failures))
            logger.debug(
                "Bulk %s batch %d on %s: %d rows, %d failed",
                label,
                batch_index,
                table,
                len(chunk),
                len(failures),
            )

        if not options.auto_commit and aggregator.successful_rows > 0:
            try:
                await self._connection.commit()
            except Exception as e:
                logger.error("Final commit of bulk %s failed: %s", label, e)
                raise BulkOperationError(
                    f"Bulk {label} on {table} failed to commit: {e}"
                ) from e

        result = aggregator.build(kind, len(rows))
        logger.info(result.message)
        return result

    @staticmethod
    def _error(
        batch_index: int,
        row_index: int,
        message: str,
        row: Row,
        options: BulkOptions,
    ) -> BatchError:
        return BatchError(
            batch_index=batch_index,
            row_index=row_index,
            error_message=message,
            row_data=dict(row) if options.include_row_data else None,
        )

    @staticmethod
    def _require_rows(rows: Sequence[Row]) -> List[Row]:
        if not rows:
            raise EmptyDatasetError("Bulk operation requires at least one row")
        return list(rows)

    @staticmethod
    def _options(
        options: Optional[BulkOptions], overrides: dict
    ) -> BulkOptions:
        options = options or BulkOptions()
        if overrides:
            options = replace(options, **overrides)
        return options

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
    Union,
)
from uuid import uuid4

from orabatch.base.connection import Binds, ConnectionHandle
from orabatch.classifier import ErrorCategory, classify
from orabatch.exception import (
    DuplicateSavepointError,
    OrabatchError,
    SavepointNotFoundError,
    ValidationError,
)
from orabatch.result import (
    BatchError,
    OperationResult,
    ResultAggregator,
    SliceOutcome,
)

from .interfaces import (
    AlreadyActiveError,
    BatchStatementError,
    CommitFailedError,
    NotActiveError,
    RollbackFailedError,
    SavepointError,
    TransactionError,
    TransactionOptions,
)
from .savepoint import Savepoint, validate_savepoint_name
from .state import SavepointInfo, TransactionInfo, TransactionState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Statement:
    sql: str
    binds: Optional[Binds] = None
    name: Optional[str] = None


StatementLike = Union[Statement, Mapping[str, Any]]


class TransactionCoordinator:
    """
    Drives one transaction at a time on a single connection.

    The coordinator goes IDLE -> ACTIVE -> IDLE and can be reused for any
    number of transactions. It never opens or closes the connection.
    """

    def __init__(
        self,
        connection: ConnectionHandle,
        options: Optional[TransactionOptions] = None,
    ):
        self.transaction_id = f"txn_{uuid4().hex[:8]}"
        self.options = options or TransactionOptions()
        self._connection = connection
        self._state = TransactionState()
        self._timeout_handle: Optional[asyncio.TimerHandle] = None

        logger.debug(
            "Transaction coordinator %s created (isolation=%s)",
            self.transaction_id,
            self.options.isolation.value,
        )

    async def begin_transaction(self) -> None:
        """Begin the transaction"""
        if self._state.active:
            raise AlreadyActiveError(
                f"Transaction {self.transaction_id} already active; "
                "commit or rollback first"
            )

        statement = self.options.isolation.statement
        if statement:
            try:
                await self._connection.execute(statement)
            except Exception as e:
                raise TransactionError(
                    f"Failed to begin transaction {self.transaction_id}: {e}"
                ) from e

        self._state.active = True
        self._state.started_at = datetime.now(timezone.utc)
        self._state.retry_count = 0
        self._arm_timeout()

        logger.info(
            "Transaction %s started at %s",
            self.transaction_id,
            self._state.started_at.isoformat(),
        )

    async def create_savepoint(
        self, name: str, description: Optional[str] = None
    ) -> Savepoint:
        """Create a savepoint for nested rollback points"""
        self._require_active("create savepoint")
        validate_savepoint_name(name)
        if self._state.find(name) >= 0:
            raise DuplicateSavepointError(f"Savepoint {name} already exists")

        try:
            await self._connection.execute(f"SAVEPOINT {name}")
        except Exception as e:
            logger.error("Failed to create savepoint %s: %s", name, e)
            raise SavepointError(
                f"Failed to create savepoint {name}: {e}"
            ) from e

        savepoint = Savepoint(name, self, description)
        self._state.savepoints.append(savepoint)
        logger.info(
            "Created savepoint %s in transaction %s",
            name,
            self.transaction_id,
        )
        return savepoint

    async def rollback_to_savepoint(self, name: str) -> None:
        """Rollback to a savepoint, discarding every later savepoint"""
        self._require_active("rollback to savepoint")
        index = self._state.find(name)
        if index < 0:
            raise SavepointNotFoundError(f"Savepoint {name} not found")

        try:
            await self._connection.execute(f"ROLLBACK TO SAVEPOINT {name}")
        except Exception as e:
            logger.error("Failed to rollback to savepoint %s: %s", name, e)
            raise SavepointError(
                f"Failed to rollback to savepoint {name}: {e}"
            ) from e

        del self._state.savepoints[index + 1 :]
        logger.info("Rolled back to savepoint %s", name)

    async def release_savepoint(self, name: str) -> None:
        """Forget a savepoint; no statement is sent"""
        self._require_active("release savepoint")
        index = self._state.find(name)
        if index < 0:
            raise SavepointNotFoundError(f"Savepoint {name} not found")
        del self._state.savepoints[index]
        logger.debug("Released savepoint %s", name)

    async def commit(self) -> None:
        """Commit the transaction"""
        self._require_active("commit")
        logger.debug("Committing transaction %s", self.transaction_id)

        try:
            await self._connection.commit()
        except Exception as e:
            logger.error(
                "Commit failed for %s: %s", self.transaction_id, e
            )
            if self.options.auto_rollback_on_error:
                try:
                    await self.rollback()
                except RollbackFailedError as rollback_error:
                    logger.critical(
                        "Rollback after failed commit also failed: %s",
                        rollback_error,
                    )
            raise CommitFailedError(
                f"Failed to commit transaction {self.transaction_id}: {e}"
            ) from e

        duration = self._duration_ms()
        self._finish()
        logger.info(
            "Transaction %s committed in %dms", self.transaction_id, duration
        )

    async def rollback(self) -> None:
        """Rollback the transaction.

        Transaction state is cleared even when the ROLLBACK statement fails;
        the connection should then be treated as suspect.
        """
        self._require_active("rollback")
        logger.debug("Rolling back transaction %s", self.transaction_id)
        duration = self._duration_ms()

        try:
            await self._connection.rollback()
        except Exception as e:
            logger.critical(
                "CRITICAL: Rollback failed for %s: %s", self.transaction_id, e
            )
            raise RollbackFailedError(
                f"Failed to rollback transaction {self.transaction_id}: {e}"
            ) from e
        finally:
            self._finish()

        logger.info(
            "Transaction %s rolled back after %dms",
            self.transaction_id,
            duration,
        )

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str = "operation",
    ) -> T:
        """Run ``operation``, retrying it on lock and serialization conflicts.

        Fatal errors are raised on first sight. When the attempts run out the
        last conflict error is raised unchanged.
        """
        policy = self.options.retry_policy
        attempt = 0
        while True:
            attempt += 1
            try:
                return await operation()
            except Exception as e:
                category = classify(e, policy.retryable_error_codes)
                if category is ErrorCategory.FATAL:
                    raise
                if attempt >= policy.max_retries:
                    logger.warning(
                        "%s failed after %d attempts: %s", label, attempt, e
                    )
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    "%s failed (attempt %d of %d), retrying in %.3fs: %s",
                    label,
                    attempt,
                    policy.max_retries,
                    delay,
                    e,
                )
                await asyncio.sleep(delay)
                if self._state.active:
                    self._state.retry_count += 1

    async def execute_batch(
        self,
        operations: Sequence[StatementLike],
        savepoint_per_operation: bool = False,
        stop_on_error: bool = True,
    ) -> List[OperationResult]:
        """Execute statements in order inside the current transaction.

        A transaction is begun when none is active. The caller commits.
        """
        statements = [
            self._as_statement(index, op)
            for index, op in enumerate(operations)
        ]
        if not self._state.active:
            await self.begin_transaction()

        aggregator = ResultAggregator()
        results: List[OperationResult] = []

        for index, statement in enumerate(statements):
            name = statement.name or f"operation_{index + 1}"
            try:
                if savepoint_per_operation:
                    savepoint = self._batch_savepoint_name(index)
                    await self.create_savepoint(savepoint)
                outcome = await self._connection.execute(
                    statement.sql, statement.binds or {}, auto_commit=False
                )
            except Exception as e:
                results.append(
                    OperationResult(index, name, success=False, error=str(e))
                )
                aggregator.add(
                    SliceOutcome(0, [BatchError(index, index, str(e))])
                )
                if stop_on_error:
                    await self._rollback_to_latest_savepoint()
                    raise BatchStatementError(
                        f"Operation {name!r} failed: {e}", results
                    ) from e
                logger.warning("Operation %r failed, continuing: %s", name, e)
                continue

            results.append(
                OperationResult(
                    index,
                    name,
                    success=True,
                    rows_affected=outcome.rows_affected,
                )
            )
            aggregator.add(SliceOutcome(1))

        logger.info(
            "Batch in transaction %s: %d succeeded, %d failed in %dms",
            self.transaction_id,
            aggregator.successful_rows,
            aggregator.failed_rows,
            aggregator.elapsed_ms,
        )
        return results

    def info(self) -> TransactionInfo:
        return TransactionInfo(
            transaction_id=self.transaction_id,
            active=self._state.active,
            started_at=self._state.started_at,
            duration_ms=self._duration_ms(),
            savepoints=tuple(
                SavepointInfo(sp.name, sp.created_at, sp.description)
                for sp in self._state.savepoints
            ),
            retry_count=self._state.retry_count,
            options=self.options,
        )

    async def _rollback_to_latest_savepoint(self) -> None:
        if not self._state.savepoints:
            return
        latest = self._state.savepoints[-1].name
        try:
            await self.rollback_to_savepoint(latest)
        except OrabatchError as rollback_error:
            logger.error(
                "Could not rollback to savepoint %s after failure: %s",
                latest,
                rollback_error,
            )

    def _batch_savepoint_name(self, index: int) -> str:
        base = f"batch_{index}_{int(time.time() * 1000)}"
        name = base
        suffix = 0
        while self._state.find(name) >= 0:
            suffix += 1
            name = f"{base}_{suffix}"
        return name

    @staticmethod
    def _as_statement(index: int, operation: StatementLike) -> Statement:
        if isinstance(operation, Statement):
            return operation
        if "sql" not in operation:
            raise ValidationError(f"Operation {index} has no sql")
        return Statement(
            sql=operation["sql"],
            binds=operation.get("binds"),
            name=operation.get("name"),
        )

    def _require_active(self, action: str) -> None:
        if not self._state.active:
            raise NotActiveError(
                f"Cannot {action}: transaction {self.transaction_id} "
                "is not active"
            )

    def _duration_ms(self) -> int:
        if not self._state.started_at:
            return 0
        elapsed = datetime.now(timezone.utc) - self._state.started_at
        return int(elapsed.total_seconds() * 1000)

    def _arm_timeout(self) -> None:
        # TODO: cancel the in-flight statement once the handle contract
        # exposes a cancel/break primitive; until then this only warns.
        timeout = self.options.timeout
        if not timeout:
            return
        started_at = self._state.started_at
        self._timeout_handle = asyncio.get_running_loop().call_later(
            timeout, self._warn_timeout, started_at
        )

    def _warn_timeout(self, started_at: Optional[datetime]) -> None:
        if self._state.active and self._state.started_at == started_at:
            logger.warning(
                "Transaction %s exceeded its %ss timeout; consider a rollback",
                self.transaction_id,
                self.options.timeout,
            )

    def _finish(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        self._state.reset()

    async def __aenter__(self):
        """Async context manager entry"""
        await self.begin_transaction()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if not self._state.active:
            return False
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        except Exception as e:
            logger.error(
                "Error in context manager exit for %s: %s",
                self.transaction_id,
                e,
            )
            if exc_type is None:
                raise
        return False

    @property
    def is_active(self) -> bool:
        return self._state.active

    @property
    def started_at(self) -> Optional[datetime]:
        return self._state.started_at

    @property
    def retry_count(self) -> int:
        return self._state.retry_count

    @property
    def savepoints(self) -> List[str]:
        """Names of the live savepoints in creation order"""
        return [savepoint.name for savepoint in self._state.savepoints]

    @property
    def connection(self) -> ConnectionHandle:
        return self._connection

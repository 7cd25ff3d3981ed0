"""
Savepoint bookkeeping for nested rollback points.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from orabatch.exception import InvalidNameError

if TYPE_CHECKING:
    from .coordinator import TransactionCoordinator

logger = logging.getLogger(__name__)

SAVEPOINT_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,29}$")


def validate_savepoint_name(name: str) -> str:
    if not isinstance(name, str) or not SAVEPOINT_NAME.match(name):
        raise InvalidNameError(
            f"Invalid savepoint name {name!r}: must start with a letter and "
            "contain only letters, digits and underscores (30 characters max)"
        )
    return name


class Savepoint:
    """
    A named rollback point inside an active transaction.

    Oracle has no RELEASE SAVEPOINT statement, so releasing only drops the
    entry from the coordinator's bookkeeping.
    """

    def __init__(
        self,
        name: str,
        coordinator: TransactionCoordinator,
        description: Optional[str] = None,
    ):
        self.name = validate_savepoint_name(name)
        self.coordinator = coordinator
        self.description = description
        self.created_at = datetime.now(timezone.utc)

        logger.debug(
            f"Created savepoint {self.name} in transaction "
            f"{coordinator.transaction_id}"
        )

    async def rollback(self) -> None:
        """Rollback to this savepoint"""
        await self.coordinator.rollback_to_savepoint(self.name)

    async def release(self) -> None:
        """Forget this savepoint"""
        await self.coordinator.release_savepoint(self.name)

    @property
    def is_released(self) -> bool:
        return self.name not in self.coordinator.savepoints

    def __str__(self) -> str:
        status = "released" if self.is_released else "active"
        return f"<Savepoint {self.name} ({status})>"

    def __repr__(self) -> str:
        return f"Savepoint(name={self.name!r})"

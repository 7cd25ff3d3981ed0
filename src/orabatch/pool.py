from __future__ import annotations

import logging
from typing import Dict, Iterator, Optional, Type

from orabatch.interface.oracle import OraclePool

logger = logging.getLogger(__name__)


class PoolManager:
    """
    Keeps one pool per key so callers sharing credentials share a pool.

    Create one manager and pass it to whatever builds connection handles.
    """

    def __init__(self, pool_class: Type[OraclePool] = OraclePool) -> None:
        self._pool_class = pool_class
        self._pools: Dict[str, OraclePool] = {}

    def get_or_create(
        self,
        key: str,
        dsn: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        min_size: int = 1,
        max_size: Optional[int] = None,
    ) -> OraclePool:
        """
        Get existing pool or create new one for the key.

        Args:
            key: Identity of the pool, typically credential id plus type
            dsn: Database connection string
            user: Database user
            password: Database password
            min_size: Minimum number of connections in pool
            max_size: Maximum number of connections in pool

        Returns:
            Shared pool instance for the key
        """
        if key not in self._pools:
            self._pools[key] = self._pool_class(
                dsn,
                user=user,
                password=password,
                min_size=min_size,
                max_size=max_size,
            )
            logger.debug("Created pool %s for key %s", self._pools[key], key)
        return self._pools[key]

    def get(self, key: str) -> Optional[OraclePool]:
        """Get pool for key if it exists"""
        return self._pools.get(key)

    async def close(self, key: str) -> None:
        pool = self._pools.pop(key, None)
        if pool is not None:
            await pool.close()

    async def close_all(self) -> None:
        """Close every pool, attempting all of them before raising"""
        errors = []
        for key in list(self._pools):
            try:
                await self.close(key)
            except Exception as e:
                logger.warning("Error closing pool %s: %s", key, e)
                errors.append(e)
        if errors:
            raise errors[0]

    def __contains__(self, key: object) -> bool:
        return key in self._pools

    def __iter__(self) -> Iterator[str]:
        return iter(self._pools)

    def __len__(self) -> int:
        return len(self._pools)

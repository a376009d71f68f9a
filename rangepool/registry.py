"""Pool registry for the quoting API.

Holds range pools by id together with the custody they settle against, so
the HTTP layer can resolve a path parameter to a pool and a quoting facade.
"""

from __future__ import annotations

import structlog

from rangepool.pool.custody import Custody
from rangepool.pool.errors import InvalidPool
from rangepool.pool.range_pool import RangePool
from rangepool.queries import RangePoolQueries

logger = structlog.get_logger()


class PoolRegistry:
    """Range pools keyed by pool id, all backed by one custody."""

    def __init__(self, custody: Custody, pools: list[RangePool] | None = None) -> None:
        self._custody = custody
        self._pools: dict[str, RangePool] = {}
        self._queries = RangePoolQueries(custody)

        if pools:
            for pool in pools:
                self.add_pool(pool)

    @property
    def custody(self) -> Custody:
        return self._custody

    @property
    def queries(self) -> RangePoolQueries:
        return self._queries

    def add_pool(self, pool: RangePool) -> None:
        """Add a pool. A pool with the same id is replaced."""
        pool_id = pool.get_pool_id()
        if pool_id in self._pools:
            logger.debug("range_pool_replaced", pool_id=pool_id)
        self._pools[pool_id] = pool

    def get_pool(self, pool_id: str) -> RangePool:
        """Look up a pool by id.

        Raises:
            InvalidPool: If no pool is registered under pool_id
        """
        pool = self._pools.get(pool_id)
        if pool is None:
            raise InvalidPool(f"Pool {pool_id} is not registered")
        return pool

    @property
    def pool_ids(self) -> list[str]:
        return list(self._pools)

    def __contains__(self, pool_id: object) -> bool:
        return pool_id in self._pools

    def __len__(self) -> int:
        return len(self._pools)

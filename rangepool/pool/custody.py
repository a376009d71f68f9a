"""Custody collaborator.

Real token balances live outside the pool, in a vault. The pool reads them
through the ``Custody`` protocol on every operation and never caches them.
``InMemoryVault`` is a plain dictionary-backed implementation for tests,
simulations and the quoting API.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import structlog

from rangepool.models.types import normalize_address

from .errors import InsufficientBalance, InvalidPool, LengthMismatch

logger = structlog.get_logger()


@runtime_checkable
class Custody(Protocol):
    """Source of truth for which tokens a pool holds and how much of each."""

    def get_pool_tokens(self, pool_id: str) -> tuple[list[str], list[int]]:
        """Return (tokens, balances) for a pool, in registration order.

        Balances are raw amounts in each token's native decimals.
        """
        ...


class InMemoryVault:
    """Dictionary-backed custody for a set of pools."""

    def __init__(self) -> None:
        self._tokens: dict[str, list[str]] = {}
        self._balances: dict[str, list[int]] = {}

    def register_pool(
        self,
        pool_id: str,
        tokens: Sequence[str],
        balances: Sequence[int] | None = None,
    ) -> None:
        """Register a pool's tokens, optionally with starting balances."""
        if balances is None:
            balances = [0] * len(tokens)
        if len(balances) != len(tokens):
            raise LengthMismatch(f"Got {len(balances)} balances for {len(tokens)} tokens")
        if any(b < 0 for b in balances):
            raise InsufficientBalance("Balances must be non-negative")
        self._tokens[pool_id] = [normalize_address(t) for t in tokens]
        self._balances[pool_id] = list(balances)

    def get_pool_tokens(self, pool_id: str) -> tuple[list[str], list[int]]:
        if pool_id not in self._tokens:
            raise InvalidPool(f"Pool {pool_id} is not registered")
        return list(self._tokens[pool_id]), list(self._balances[pool_id])

    def apply_deltas(self, pool_id: str, deltas: Sequence[int]) -> None:
        """Add signed deltas to a pool's balances, all or nothing.

        Raises:
            InvalidPool: If the pool is not registered
            LengthMismatch: If deltas has the wrong length
            InsufficientBalance: If any balance would go negative
        """
        _, balances = self.get_pool_tokens(pool_id)
        if len(deltas) != len(balances):
            raise LengthMismatch(f"Got {len(deltas)} deltas for {len(balances)} tokens")

        updated = [b + d for b, d in zip(balances, deltas, strict=True)]
        for i, balance in enumerate(updated):
            if balance < 0:
                raise InsufficientBalance(
                    f"Token index {i} would go to {balance} in pool {pool_id}"
                )

        self._balances[pool_id] = updated
        logger.debug("vault_balances_updated", pool_id=pool_id, balances=updated)

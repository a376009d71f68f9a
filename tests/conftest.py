"""Pytest configuration and fixtures."""

from dataclasses import dataclass

import pytest

from rangepool.pool import InMemoryVault, RangePool
from tests.helpers import initial_share_supply, make_range_pool


@dataclass
class FakeClock:
    """Settable clock for weight schedules."""

    now: float = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def pool_and_vault() -> tuple[RangePool, InMemoryVault]:
    """Initialized 30/70 pool: real 0.1/0.2, virtual 0.2/0.4, fee 1%."""
    return make_range_pool()


@pytest.fixture
def pool(pool_and_vault: tuple[RangePool, InMemoryVault]) -> RangePool:
    return pool_and_vault[0]


@pytest.fixture
def vault(pool_and_vault: tuple[RangePool, InMemoryVault]) -> InMemoryVault:
    return pool_and_vault[1]


@pytest.fixture
def total_supply(pool: RangePool) -> int:
    """Share supply minted by the pool's init join."""
    return initial_share_supply(pool)

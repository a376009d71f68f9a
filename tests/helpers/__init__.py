"""Test helpers module for shared test utilities.

- constants: Token addresses and common fixed-point values
- factories: Range pool factory functions
"""

from tests.helpers.constants import (
    DAI,
    ONE_PERCENT,
    SCALING_FACTORS,
    UNKNOWN_TOKEN,
    USDC,
    WBTC,
    WEIGHT_30,
    WEIGHT_70,
    WETH,
)
from tests.helpers.factories import (
    DEFAULT_POOL_ID,
    DEFAULT_REAL_BALANCES,
    DEFAULT_VIRTUAL_BALANCES,
    initial_share_supply,
    make_range_pool,
)

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "WBTC",
    "UNKNOWN_TOKEN",
    "SCALING_FACTORS",
    "ONE_PERCENT",
    "WEIGHT_30",
    "WEIGHT_70",
    # Factories
    "DEFAULT_POOL_ID",
    "DEFAULT_REAL_BALANCES",
    "DEFAULT_VIRTUAL_BALANCES",
    "initial_share_supply",
    "make_range_pool",
]

"""Tests for the read-only quoting facade."""

import pytest

from rangepool.math.fixed_point import Bfp
from rangepool.pool import InMemoryVault, RangePool
from rangepool.pool.errors import (
    InsufficientBalance,
    InvalidPool,
    PoolNoScalingFactors,
    TokenNotFound,
)
from rangepool.queries import RangePoolQueries, SwapInfo
from tests.helpers import (
    DAI,
    DEFAULT_POOL_ID,
    ONE_PERCENT,
    UNKNOWN_TOKEN,
    WEIGHT_30,
    WEIGHT_70,
    WETH,
)


@pytest.fixture
def queries(vault: InMemoryVault) -> RangePoolQueries:
    return RangePoolQueries(vault)


class TestGetAmountOut:
    def test_less_than_amount_in(self, queries: RangePoolQueries, pool: RangePool) -> None:
        amount_out = queries.get_amount_out(pool, 10**16, WETH, DAI)
        assert 0 < amount_out < 10**16

    def test_does_not_mutate(self, queries: RangePoolQueries, pool: RangePool) -> None:
        before = pool.get_virtual_balances()
        first = queries.get_amount_out(pool, 10**16, WETH, DAI)
        second = queries.get_amount_out(pool, 10**16, WETH, DAI)
        assert first == second
        assert pool.get_virtual_balances() == before

    def test_unknown_asset_in(self, queries: RangePoolQueries, pool: RangePool) -> None:
        with pytest.raises(TokenNotFound):
            queries.get_amount_out(pool, 10**16, UNKNOWN_TOKEN, DAI)

    def test_unknown_asset_out(self, queries: RangePoolQueries, pool: RangePool) -> None:
        with pytest.raises(TokenNotFound):
            queries.get_amount_out(pool, 10**16, WETH, UNKNOWN_TOKEN)

    def test_clamped_to_real_balance(self, queries: RangePoolQueries, pool: RangePool) -> None:
        """A huge input cannot drain more than the vault holds."""
        assert queries.get_amount_out(pool, 10**21, WETH, DAI) == 2 * 10**17


class TestGetAmountIn:
    def test_greater_than_amount_out(self, queries: RangePoolQueries, pool: RangePool) -> None:
        amount_in = queries.get_amount_in(pool, 10**15, WETH, DAI)
        assert amount_in > 10**15

    def test_round_trip_within_tenth_of_percent(
        self, queries: RangePoolQueries, pool: RangePool
    ) -> None:
        amount_in = 10**15
        amount_out = queries.get_amount_out(pool, amount_in, WETH, DAI)
        recovered = queries.get_amount_in(pool, amount_out, WETH, DAI)
        assert abs(recovered - amount_in) * 1000 <= amount_in

    def test_above_real_balance(self, queries: RangePoolQueries, pool: RangePool) -> None:
        with pytest.raises(InsufficientBalance):
            queries.get_amount_in(pool, 2 * 10**17 + 1, WETH, DAI)


class TestGetSwapInfo:
    def test_breakdown(self, queries: RangePoolQueries, pool: RangePool) -> None:
        info = queries.get_swap_info(pool, 10**16, WETH, DAI)
        assert info == SwapInfo(
            amount_out=queries.get_amount_out(pool, 10**16, WETH, DAI),
            amount_in_after_fees=99 * 10**14,
            fee_amount=10**14,
            virtual_balance_in=2 * 10**17,
            virtual_balance_out=4 * 10**17,
            weight_in=WEIGHT_30,
            weight_out=WEIGHT_70,
            swap_fee_percentage=ONE_PERCENT,
        )


class _NoScalingFactors:
    def get_pool_id(self) -> str:
        return "no-scaling"

    def get_scaling_factors(self) -> list[int]:
        return []

    def get_virtual_balances(self) -> list[Bfp]:
        return []

    def get_normalized_weights(self) -> list[Bfp]:
        return []

    def get_swap_fee_percentage(self) -> Bfp:
        return Bfp(0)


class _ShortArrays(_NoScalingFactors):
    """Reports the fixture pool's id but no virtual balances."""

    def get_pool_id(self) -> str:
        return DEFAULT_POOL_ID

    def get_scaling_factors(self) -> list[int]:
        return [1, 1]

    def get_normalized_weights(self) -> list[Bfp]:
        return [Bfp(WEIGHT_30), Bfp(WEIGHT_70)]


class _BrokenScalingFactors(_ShortArrays):
    def get_scaling_factors(self) -> list[int]:
        raise RuntimeError("storage unavailable")


class TestTargetProbing:
    """The facade checks the target before computing anything."""

    def test_missing_read_surface(self, queries: RangePoolQueries) -> None:
        with pytest.raises(InvalidPool):
            queries.get_amount_out(object(), 1, WETH, DAI)

    def test_missing_scaling_factors(self, queries: RangePoolQueries) -> None:
        with pytest.raises(PoolNoScalingFactors):
            queries.get_amount_out(_NoScalingFactors(), 1, WETH, DAI)

    def test_scaling_factors_raising(self, queries: RangePoolQueries) -> None:
        with pytest.raises(PoolNoScalingFactors):
            queries.get_amount_out(_BrokenScalingFactors(), 1, WETH, DAI)

    def test_short_virtual_balances(self, queries: RangePoolQueries) -> None:
        with pytest.raises(InvalidPool, match="0 virtual balances"):
            queries.get_amount_out(_ShortArrays(), 10**16, WETH, DAI)
        with pytest.raises(InvalidPool):
            queries.get_swap_info(_ShortArrays(), 10**16, WETH, DAI)

    def test_pool_not_in_custody(self, pool: RangePool) -> None:
        with pytest.raises(InvalidPool):
            RangePoolQueries(InMemoryVault()).get_amount_out(pool, 1, WETH, DAI)


class TestPassThroughs:
    def test_curve_functions_exposed(self) -> None:
        amount_out = RangePoolQueries.calc_out_given_in(
            Bfp(2 * 10**17),
            Bfp(WEIGHT_30),
            Bfp(4 * 10**17),
            Bfp(WEIGHT_70),
            Bfp(99 * 10**14),
            Bfp(10**15),
        )
        assert amount_out == Bfp(10**15)

    def test_ratio_min_exposed(self) -> None:
        ratio = RangePoolQueries.calc_ratio_min([Bfp(100), Bfp(0)], [Bfp(10), Bfp(5)])
        assert ratio == Bfp(10**17)

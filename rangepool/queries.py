"""Read-only swap quoting for range pools.

RangePoolQueries replicates the pool's swap pricing without mutating
anything. It accepts any object exposing the pool read surface, probes
that surface before computing, and re-derives the token order from the
custody collaborator rather than trusting the pool's own list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import structlog

from rangepool.math.fixed_point import Bfp
from rangepool.models.types import normalize_address
from rangepool.pool import range_math
from rangepool.pool.custody import Custody
from rangepool.pool.errors import (
    InsufficientBalance,
    InvalidPool,
    LengthMismatch,
    PoolNoScalingFactors,
    TokenNotFound,
)
from rangepool.pool.scaling import (
    add_swap_fee_amount,
    scale_down_down,
    scale_down_up,
    scale_up,
    scale_up_array,
    subtract_swap_fee_amount,
)

logger = structlog.get_logger()


@runtime_checkable
class PoolReader(Protocol):
    """Read surface a pool must expose to be quoted."""

    def get_pool_id(self) -> str: ...

    def get_scaling_factors(self) -> list[int]: ...

    def get_virtual_balances(self) -> list[Bfp]: ...

    def get_normalized_weights(self) -> list[Bfp]: ...

    def get_swap_fee_percentage(self) -> Bfp: ...


@dataclass(frozen=True)
class SwapInfo:
    """Breakdown of an exact-input quote.

    Token amounts are in native decimals; virtual balances, weights and the
    fee percentage are 18-decimal fixed point.
    """

    amount_out: int
    amount_in_after_fees: int
    fee_amount: int
    virtual_balance_in: int
    virtual_balance_out: int
    weight_in: int
    weight_out: int
    swap_fee_percentage: int


@dataclass(frozen=True)
class _PairSnapshot:
    index_in: int
    index_out: int
    scaling_factor_in: int
    scaling_factor_out: int
    real_balance_out: Bfp
    virtual_balance_in: Bfp
    virtual_balance_out: Bfp
    weight_in: Bfp
    weight_out: Bfp
    swap_fee: Bfp


class RangePoolQueries:
    """Stateless quoting facade over range pools held in one custody."""

    # Pricing pass-throughs, exposed for integrators that want the raw curve
    calc_out_given_in = staticmethod(range_math.calc_out_given_in)
    calc_in_given_out = staticmethod(range_math.calc_in_given_out)
    calc_ratio_min = staticmethod(range_math.calc_ratio_min)
    calc_bpt_out_given_exact_tokens_in = staticmethod(range_math.calc_bpt_out_given_exact_tokens_in)
    calc_bpt_in_given_exact_tokens_out = staticmethod(range_math.calc_bpt_in_given_exact_tokens_out)
    calc_all_tokens_in_given_exact_bpt_out = staticmethod(
        range_math.calc_all_tokens_in_given_exact_bpt_out
    )
    calc_tokens_out_given_exact_bpt_in = staticmethod(range_math.calc_tokens_out_given_exact_bpt_in)
    calc_invariant = staticmethod(range_math.calc_invariant)

    def __init__(self, custody: Custody) -> None:
        self._custody = custody

    def _snapshot(self, pool: object, asset_in: str, asset_out: str) -> _PairSnapshot:
        if not isinstance(pool, PoolReader):
            raise InvalidPool(f"{type(pool).__name__} does not expose the pool read surface")

        pool_id = pool.get_pool_id()
        try:
            scaling_factors = list(pool.get_scaling_factors())
        except Exception as err:
            raise PoolNoScalingFactors(f"Pool {pool_id} failed to report scaling factors") from err
        if not scaling_factors:
            raise PoolNoScalingFactors(f"Pool {pool_id} reports no scaling factors")

        tokens, balances = self._custody.get_pool_tokens(pool_id)
        tokens = [normalize_address(t) for t in tokens]
        if len(scaling_factors) != len(tokens):
            raise LengthMismatch(
                f"Pool {pool_id} has {len(scaling_factors)} scaling factors "
                f"for {len(tokens)} tokens"
            )

        index_in = self._find_token(pool_id, tokens, asset_in)
        index_out = self._find_token(pool_id, tokens, asset_out)

        virtual_balances = pool.get_virtual_balances()
        weights = pool.get_normalized_weights()
        if not len(virtual_balances) == len(weights) == len(tokens):
            raise InvalidPool(
                f"Pool {pool_id} reports {len(virtual_balances)} virtual balances and "
                f"{len(weights)} weights for {len(tokens)} tokens"
            )
        real_balances = scale_up_array(balances, scaling_factors)

        return _PairSnapshot(
            index_in=index_in,
            index_out=index_out,
            scaling_factor_in=scaling_factors[index_in],
            scaling_factor_out=scaling_factors[index_out],
            real_balance_out=real_balances[index_out],
            virtual_balance_in=virtual_balances[index_in],
            virtual_balance_out=virtual_balances[index_out],
            weight_in=weights[index_in],
            weight_out=weights[index_out],
            swap_fee=pool.get_swap_fee_percentage(),
        )

    @staticmethod
    def _find_token(pool_id: str, tokens: list[str], asset: str) -> int:
        try:
            return tokens.index(normalize_address(asset))
        except ValueError as err:
            logger.debug("pool_queries_token_not_found", pool_id=pool_id, token=asset)
            raise TokenNotFound(f"Token {asset} not in pool {pool_id}") from err

    def _quote_out(self, snap: _PairSnapshot, amount_in: int) -> tuple[Bfp, Bfp]:
        """Return (upscaled amount in after fees, upscaled amount out)."""
        after_fees = subtract_swap_fee_amount(
            scale_up(amount_in, snap.scaling_factor_in), snap.swap_fee
        )
        amount_out = range_math.calc_out_given_in(
            balance_in=snap.virtual_balance_in,
            weight_in=snap.weight_in,
            balance_out=snap.virtual_balance_out,
            weight_out=snap.weight_out,
            amount_in=after_fees,
            fact_balance_out=snap.real_balance_out,
        )
        return after_fees, amount_out

    def get_amount_out(self, pool: object, amount_in: int, asset_in: str, asset_out: str) -> int:
        """Amount of asset_out a swap of amount_in (fee included) would return.

        Raises:
            InvalidPool: If pool lacks the read surface or its arrays do not
                match the custody token list
            PoolNoScalingFactors: If pool reports no scaling factors
            TokenNotFound: If either asset is not in the pool
        """
        snap = self._snapshot(pool, asset_in, asset_out)
        _, amount_out = self._quote_out(snap, amount_in)
        return scale_down_down(amount_out, snap.scaling_factor_out)

    def get_amount_in(self, pool: object, amount_out: int, asset_in: str, asset_out: str) -> int:
        """Amount of asset_in, fee included, needed to receive amount_out.

        Raises:
            InsufficientBalance: If amount_out exceeds the pool's real balance
        """
        snap = self._snapshot(pool, asset_in, asset_out)
        upscaled_out = scale_up(amount_out, snap.scaling_factor_out)
        if upscaled_out > snap.real_balance_out:
            raise InsufficientBalance(
                f"amount_out {upscaled_out.value} exceeds real balance "
                f"{snap.real_balance_out.value}"
            )
        amount_in = range_math.calc_in_given_out(
            balance_in=snap.virtual_balance_in,
            weight_in=snap.weight_in,
            balance_out=snap.virtual_balance_out,
            weight_out=snap.weight_out,
            amount_out=upscaled_out,
        )
        return scale_down_up(add_swap_fee_amount(amount_in, snap.swap_fee), snap.scaling_factor_in)

    def get_swap_info(
        self, pool: object, amount_in: int, asset_in: str, asset_out: str
    ) -> SwapInfo:
        snap = self._snapshot(pool, asset_in, asset_out)
        after_fees, amount_out = self._quote_out(snap, amount_in)
        amount_in_after_fees = scale_down_down(after_fees, snap.scaling_factor_in)
        return SwapInfo(
            amount_out=scale_down_down(amount_out, snap.scaling_factor_out),
            amount_in_after_fees=amount_in_after_fees,
            fee_amount=amount_in - amount_in_after_fees,
            virtual_balance_in=snap.virtual_balance_in.value,
            virtual_balance_out=snap.virtual_balance_out.value,
            weight_in=snap.weight_in.value,
            weight_out=snap.weight_out.value,
            swap_fee_percentage=snap.swap_fee.value,
        )

"""Range pool state machine.

A range pool prices swaps on *virtual* balances and pays out of *real*
balances held by a custody collaborator. This module owns the virtual
balances and keeps them consistent across the pool lifecycle:

- initialize: real balances are seeded, virtual balances are set as given
- swap: in-side virtual balance grows by amount_in, out-side shrinks by amount_out
- join/exit: every virtual balance scales by the share ratio minted/burned
- recovery exit: proportional payout that never touches virtual balances

Each mutating method computes its complete result before writing anything,
so a failure leaves the pool unchanged. Calls are expected to be serialized
by the host; reading state from inside a mutation is not supported.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import assert_never

import structlog

from rangepool.config import DEFAULT_POOL_LIMITS, PoolLimits
from rangepool.math.fixed_point import Bfp
from rangepool.models.types import normalize_address

from .custody import Custody
from .errors import (
    AlreadyInitialized,
    ArithmeticUnderflow,
    BptInMaxAmount,
    BptOutMinAmount,
    InsufficientBalance,
    InvalidPool,
    InvalidScalingFactor,
    InvalidVirtualBalance,
    LengthMismatch,
    MaxSwapFee,
    MaxTokens,
    MinSwapFee,
    MinTokens,
    NotInitialized,
    NotYetImplemented,
    OutOfBounds,
    TokenNotFound,
    ZeroBalanceError,
)
from .range_math import (
    calc_all_tokens_in_given_exact_bpt_out,
    calc_bpt_in_given_exact_tokens_out,
    calc_bpt_out_given_exact_tokens_in,
    calc_grown_virtual_balances,
    calc_in_given_out,
    calc_invariant,
    calc_out_given_in,
    calc_shrunk_virtual_balances,
    calc_tokens_out_given_exact_bpt_in,
)
from .scaling import (
    add_swap_fee_amount,
    scale_down_down,
    scale_down_up,
    scale_up,
    scale_up_array,
    subtract_swap_fee_amount,
)
from .user_data import (
    AddToken,
    AllTokensInForExactSharesOut,
    ExactSharesInForOneTokenOut,
    ExactSharesInForTokensOut,
    ExactTokensInForSharesOut,
    ExitRequest,
    InitJoin,
    JoinRequest,
    RemoveToken,
    SharesInForExactTokensOut,
    TokenInForExactSharesOut,
    decode_exit,
    decode_join,
)
from .weights import WeightStorage

logger = structlog.get_logger()

# Called with (upscaled real amounts, upscaled virtual balances) on initialize
VirtualBalanceValidator = Callable[[Sequence[Bfp], Sequence[Bfp]], None]


class PoolState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class SwapKind(Enum):
    GIVEN_IN = "given_in"
    GIVEN_OUT = "given_out"


@dataclass(frozen=True)
class SwapRequest:
    """A swap at the pool boundary, amount in native decimals.

    For GIVEN_IN the amount is what the trader sends (fee included); for
    GIVEN_OUT it is what the trader wants to receive.
    """

    kind: SwapKind
    token_in: str
    token_out: str
    amount: int


@dataclass(frozen=True)
class PoolConfig:
    """Static pool parameters.

    Attributes:
        pool_id: Identifier used with the custody collaborator
        tokens: Token addresses, in custody order
        scaling_factors: Per-token multiplier to 18 decimals
        swap_fee_percentage: 18-decimal fee fraction (10**16 is 1%)
    """

    pool_id: str
    tokens: tuple[str, ...]
    scaling_factors: tuple[int, ...]
    swap_fee_percentage: int


@dataclass(frozen=True)
class JoinResult:
    shares_out: int
    amounts_in: tuple[int, ...]


@dataclass(frozen=True)
class ExitResult:
    shares_in: int
    amounts_out: tuple[int, ...]


def require_virtual_covers_real(
    real_amounts: Sequence[Bfp],
    virtual_balances: Sequence[Bfp],
) -> None:
    """Initial-balance validator: each virtual balance must be at least the real one."""
    for i, (real, virtual) in enumerate(zip(real_amounts, virtual_balances, strict=True)):
        if virtual < real:
            raise InvalidVirtualBalance(
                f"Virtual balance {virtual.value} below real balance {real.value} at index {i}"
            )


class RangePool:
    """Virtual-balance weighted pool.

    Weights and virtual balances live in an injected WeightStorage; real
    balances are read from the Custody collaborator on every call. Initial
    virtual balances are trusted as given unless a virtual_balance_validator
    is configured.
    """

    def __init__(
        self,
        config: PoolConfig,
        storage: WeightStorage,
        custody: Custody,
        *,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
        virtual_balance_validator: VirtualBalanceValidator | None = None,
    ) -> None:
        token_count = len(config.tokens)
        if token_count < limits.min_tokens:
            raise MinTokens(f"Pool needs at least {limits.min_tokens} tokens, got {token_count}")
        if token_count > limits.max_tokens:
            raise MaxTokens(f"Pool allows at most {limits.max_tokens} tokens, got {token_count}")
        if len(config.scaling_factors) != token_count:
            raise LengthMismatch(
                f"Got {len(config.scaling_factors)} scaling factors for {token_count} tokens"
            )
        if len(storage.get_normalized_weights()) != token_count:
            raise LengthMismatch(f"Weight count does not match {token_count} tokens")
        for sf in config.scaling_factors:
            if sf <= 0:
                raise InvalidScalingFactor(f"Scaling factor must be positive, got {sf}")

        self._limits = limits
        self._check_swap_fee(config.swap_fee_percentage)

        self._pool_id = config.pool_id
        self._tokens = [normalize_address(t) for t in config.tokens]
        self._scaling_factors = list(config.scaling_factors)
        self._swap_fee = Bfp(config.swap_fee_percentage)
        self._storage = storage
        self._custody = custody
        self._validator = virtual_balance_validator
        self._state = PoolState.UNINITIALIZED
        self._last_invariant = Bfp(0)

    # =========================================================================
    # Read surface
    # =========================================================================

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is PoolState.ACTIVE

    def get_pool_id(self) -> str:
        return self._pool_id

    def get_tokens(self) -> list[str]:
        return list(self._tokens)

    def get_scaling_factors(self) -> list[int]:
        return list(self._scaling_factors)

    def get_swap_fee_percentage(self) -> Bfp:
        return self._swap_fee

    def get_normalized_weights(self) -> list[Bfp]:
        return self._storage.get_normalized_weights()

    def get_normalized_weight(self, token: str) -> Bfp:
        return self.get_normalized_weights()[self._token_index(token)]

    def get_virtual_balances(self) -> list[Bfp]:
        return self._storage.get_virtual_balances()

    def get_virtual_balance(self, token: str) -> Bfp:
        return self.get_virtual_balances()[self._token_index(token)]

    def get_invariant(self) -> Bfp:
        """Weighted product invariant over the current real balances."""
        return calc_invariant(self.get_normalized_weights(), self._upscaled_real_balances())

    def get_last_post_join_exit_invariant(self) -> Bfp:
        return self._last_invariant

    # =========================================================================
    # Configuration
    # =========================================================================

    def _check_swap_fee(self, swap_fee_percentage: int) -> None:
        if swap_fee_percentage < self._limits.min_swap_fee:
            raise MinSwapFee(f"Swap fee {swap_fee_percentage} below {self._limits.min_swap_fee}")
        if swap_fee_percentage > self._limits.max_swap_fee:
            raise MaxSwapFee(f"Swap fee {swap_fee_percentage} above {self._limits.max_swap_fee}")

    def set_swap_fee_percentage(self, swap_fee_percentage: int) -> None:
        self._check_swap_fee(swap_fee_percentage)
        self._swap_fee = Bfp(swap_fee_percentage)
        logger.info(
            "range_pool_swap_fee_changed",
            pool_id=self._pool_id,
            swap_fee_percentage=swap_fee_percentage,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_active(self) -> None:
        if self._state is not PoolState.ACTIVE:
            raise NotInitialized(f"Pool {self._pool_id} is not initialized")

    def _token_index(self, token: str) -> int:
        try:
            return self._tokens.index(normalize_address(token))
        except ValueError as err:
            raise TokenNotFound(f"Token {token} not in pool {self._pool_id}") from err

    def _raw_real_balances(self) -> list[int]:
        tokens, balances = self._custody.get_pool_tokens(self._pool_id)
        if [normalize_address(t) for t in tokens] != self._tokens:
            raise InvalidPool(f"Custody token order does not match pool {self._pool_id}")
        return balances

    def _upscaled_real_balances(self) -> list[Bfp]:
        return scale_up_array(self._raw_real_balances(), self._scaling_factors)

    def _commit(self, virtual_balances: Sequence[Bfp], invariant: Bfp | None = None) -> None:
        self._storage.set_virtual_balances(virtual_balances)
        if invariant is not None:
            self._last_invariant = invariant

    def _post_join_exit_invariant(self, real_balances: Sequence[Bfp]) -> Bfp:
        if any(b.is_zero() for b in real_balances):
            return Bfp(0)
        return calc_invariant(self.get_normalized_weights(), real_balances)

    @staticmethod
    def _check_indices(indices: Sequence[int], real_balances: Sequence[Bfp]) -> None:
        for index in indices:
            if not 0 <= index < len(real_balances):
                raise OutOfBounds(f"Token index {index} outside {len(real_balances)} balances")

    @staticmethod
    def _check_total_supply(total_supply: int) -> Bfp:
        if total_supply <= 0:
            raise ZeroBalanceError("Total share supply must be positive")
        return Bfp(total_supply)

    # =========================================================================
    # Initialization
    # =========================================================================

    def _compute_init(
        self,
        amounts_in: Sequence[int],
        virtual_balances: Sequence[int],
    ) -> tuple[JoinResult, list[Bfp], Bfp]:
        if self._state is PoolState.ACTIVE:
            raise AlreadyInitialized(f"Pool {self._pool_id} is already initialized")

        real_amounts = scale_up_array(amounts_in, self._scaling_factors)
        virtual = scale_up_array(virtual_balances, self._scaling_factors)

        if self._validator is not None:
            self._validator(real_amounts, virtual)

        invariant = calc_invariant(self.get_normalized_weights(), real_amounts)
        # Issuance scales with token count so pools of different breadth compare
        shares_out = Bfp(invariant.value * len(self._tokens))

        return JoinResult(shares_out.value, tuple(amounts_in)), virtual, invariant

    def initialize(self, amounts_in: Sequence[int], virtual_balances: Sequence[int]) -> JoinResult:
        """Seed the pool. Virtual balances are stored exactly as supplied.

        Args:
            amounts_in: Initial real amounts (native decimals)
            virtual_balances: Initial virtual balances (native decimals)

        Returns:
            JoinResult with shares_out = invariant * token count

        Raises:
            AlreadyInitialized: If the pool is active
            LengthMismatch: If either array does not match the token count
        """
        result, virtual, invariant = self._compute_init(amounts_in, virtual_balances)
        self._commit(virtual, invariant)
        self._state = PoolState.ACTIVE

        logger.info(
            "range_pool_initialized",
            pool_id=self._pool_id,
            shares_out=result.shares_out,
            virtual_balances=[v.value for v in virtual],
        )
        return result

    # =========================================================================
    # Swaps
    # =========================================================================

    def swap_given_in(
        self,
        token_in_index: int,
        token_out_index: int,
        amount_in: Bfp,
        real_balances: Sequence[Bfp],
    ) -> Bfp:
        """Exact-input swap on upscaled, post-fee amounts.

        Returns:
            amount_out, never more than real_balances[token_out_index]
        """
        self._require_active()
        self._check_indices((token_in_index, token_out_index), real_balances)

        weights = self.get_normalized_weights()
        virtual = self.get_virtual_balances()

        amount_out = calc_out_given_in(
            balance_in=virtual[token_in_index],
            weight_in=weights[token_in_index],
            balance_out=virtual[token_out_index],
            weight_out=weights[token_out_index],
            amount_in=amount_in,
            fact_balance_out=real_balances[token_out_index],
        )

        virtual[token_in_index] = virtual[token_in_index].add(amount_in)
        virtual[token_out_index] = virtual[token_out_index].sub(amount_out)
        self._commit(virtual)

        logger.debug(
            "range_pool_swap",
            pool_id=self._pool_id,
            kind=SwapKind.GIVEN_IN.value,
            token_in_index=token_in_index,
            token_out_index=token_out_index,
            amount_in=amount_in.value,
            amount_out=amount_out.value,
        )
        return amount_out

    def swap_given_out(
        self,
        token_in_index: int,
        token_out_index: int,
        amount_out: Bfp,
        real_balances: Sequence[Bfp],
    ) -> Bfp:
        """Exact-output swap on upscaled amounts; returns amount_in before fees.

        Raises:
            InsufficientBalance: If amount_out exceeds the real balance
            ArithmeticUnderflow: If amount_out reaches the virtual balance
        """
        self._require_active()
        self._check_indices((token_in_index, token_out_index), real_balances)

        if amount_out > real_balances[token_out_index]:
            raise InsufficientBalance(
                f"amount_out {amount_out.value} exceeds real balance "
                f"{real_balances[token_out_index].value}"
            )

        weights = self.get_normalized_weights()
        virtual = self.get_virtual_balances()

        amount_in = calc_in_given_out(
            balance_in=virtual[token_in_index],
            weight_in=weights[token_in_index],
            balance_out=virtual[token_out_index],
            weight_out=weights[token_out_index],
            amount_out=amount_out,
        )

        virtual[token_in_index] = virtual[token_in_index].add(amount_in)
        virtual[token_out_index] = virtual[token_out_index].sub(amount_out)
        self._commit(virtual)

        logger.debug(
            "range_pool_swap",
            pool_id=self._pool_id,
            kind=SwapKind.GIVEN_OUT.value,
            token_in_index=token_in_index,
            token_out_index=token_out_index,
            amount_in=amount_in.value,
            amount_out=amount_out.value,
        )
        return amount_in

    def on_swap(self, request: SwapRequest) -> int:
        """Swap native-decimal amounts against current custody balances.

        Returns:
            amount_out for GIVEN_IN (rounded down), amount_in including the
            swap fee for GIVEN_OUT (rounded up)
        """
        self._require_active()
        index_in = self._token_index(request.token_in)
        index_out = self._token_index(request.token_out)
        real_balances = self._upscaled_real_balances()
        sf_in = self._scaling_factors[index_in]
        sf_out = self._scaling_factors[index_out]

        if request.kind is SwapKind.GIVEN_IN:
            amount_in = subtract_swap_fee_amount(scale_up(request.amount, sf_in), self._swap_fee)
            amount_out = self.swap_given_in(index_in, index_out, amount_in, real_balances)
            return scale_down_down(amount_out, sf_out)

        amount_in = self.swap_given_out(
            index_in, index_out, scale_up(request.amount, sf_out), real_balances
        )
        return scale_down_up(add_swap_fee_amount(amount_in, self._swap_fee), sf_in)

    # =========================================================================
    # Joins
    # =========================================================================

    def _compute_join(
        self,
        request: JoinRequest,
        total_supply: int,
    ) -> tuple[JoinResult, list[Bfp], Bfp]:
        self._require_active()
        supply = self._check_total_supply(total_supply)
        real_balances = self._upscaled_real_balances()

        if isinstance(request, ExactTokensInForSharesOut):
            limits = scale_up_array(request.amounts_in, self._scaling_factors)
            shares_out = calc_bpt_out_given_exact_tokens_in(real_balances, limits, supply)
            if shares_out.value < request.min_shares_out:
                raise BptOutMinAmount(
                    f"Shares out {shares_out.value} below minimum {request.min_shares_out}"
                )
            proportional = calc_all_tokens_in_given_exact_bpt_out(real_balances, shares_out, supply)
            amounts_in = [min(p, lim) for p, lim in zip(proportional, limits, strict=True)]
        elif isinstance(request, AllTokensInForExactSharesOut):
            shares_out = Bfp(request.shares_out)
            amounts_in = calc_all_tokens_in_given_exact_bpt_out(real_balances, shares_out, supply)
        elif isinstance(request, (TokenInForExactSharesOut, AddToken)):
            raise NotYetImplemented(f"Join kind {type(request).__name__} has no pricing formula")
        elif isinstance(request, InitJoin):
            raise AlreadyInitialized(f"Pool {self._pool_id} is already initialized")
        else:
            assert_never(request)

        # Every virtual balance grows by the same ratio, whichever token limited the join
        ratio = shares_out.div_down(supply)
        virtual = calc_grown_virtual_balances(self.get_virtual_balances(), ratio)

        invariant = self._post_join_exit_invariant(
            [b.add(a) for b, a in zip(real_balances, amounts_in, strict=True)]
        )
        raw_amounts = tuple(
            scale_down_up(a, sf) for a, sf in zip(amounts_in, self._scaling_factors, strict=True)
        )
        return JoinResult(shares_out.value, raw_amounts), virtual, invariant

    def on_join(self, request: JoinRequest | bytes | str, total_supply: int) -> JoinResult:
        """Add liquidity.

        Args:
            request: Typed join request, or raw ABI-encoded userData
            total_supply: Current share supply (ignored for the init join)

        Raises:
            NotInitialized: If a non-init join arrives before initialization
            BptOutMinAmount: If fewer shares than requested would be minted
            NotYetImplemented: For declared kinds without a formula
        """
        if isinstance(request, (bytes, str)):
            request = decode_join(request)
        if isinstance(request, InitJoin):
            return self.initialize(request.amounts_in, request.virtual_balances)

        result, virtual, invariant = self._compute_join(request, total_supply)
        self._commit(virtual, invariant)

        logger.debug(
            "range_pool_join",
            pool_id=self._pool_id,
            kind=type(request).__name__,
            shares_out=result.shares_out,
            amounts_in=list(result.amounts_in),
        )
        return result

    def query_join(self, request: JoinRequest | bytes | str, total_supply: int) -> JoinResult:
        """Result on_join would return, without changing any state."""
        if isinstance(request, (bytes, str)):
            request = decode_join(request)
        if isinstance(request, InitJoin):
            result, _, _ = self._compute_init(request.amounts_in, request.virtual_balances)
            return result
        result, _, _ = self._compute_join(request, total_supply)
        return result

    # =========================================================================
    # Exits
    # =========================================================================

    def _compute_exit(
        self,
        request: ExitRequest,
        total_supply: int,
    ) -> tuple[ExitResult, list[Bfp], Bfp]:
        self._require_active()
        supply = self._check_total_supply(total_supply)
        real_balances = self._upscaled_real_balances()

        if isinstance(request, ExactSharesInForTokensOut):
            shares_in = Bfp(request.shares_in)
            if shares_in > supply:
                raise ArithmeticUnderflow(
                    f"Shares in {shares_in.value} exceed total supply {supply.value}"
                )
            amounts_out = calc_tokens_out_given_exact_bpt_in(real_balances, shares_in, supply)
        elif isinstance(request, SharesInForExactTokensOut):
            limits = scale_up_array(request.amounts_out, self._scaling_factors)
            for i, (limit, balance) in enumerate(zip(limits, real_balances, strict=True)):
                if limit > balance:
                    raise InsufficientBalance(
                        f"Requested {limit.value} of token {i}, pool holds {balance.value}"
                    )
            shares_in = calc_bpt_in_given_exact_tokens_out(real_balances, limits, supply)
            if shares_in.value > request.max_shares_in:
                raise BptInMaxAmount(
                    f"Shares in {shares_in.value} above maximum {request.max_shares_in}"
                )
            proportional = calc_tokens_out_given_exact_bpt_in(real_balances, shares_in, supply)
            amounts_out = [min(p, lim) for p, lim in zip(proportional, limits, strict=True)]
        elif isinstance(request, (ExactSharesInForOneTokenOut, RemoveToken)):
            raise NotYetImplemented(f"Exit kind {type(request).__name__} has no pricing formula")
        else:
            assert_never(request)

        ratio = shares_in.div_up(supply)
        virtual = calc_shrunk_virtual_balances(self.get_virtual_balances(), ratio)

        invariant = self._post_join_exit_invariant(
            [b.sub(a) for b, a in zip(real_balances, amounts_out, strict=True)]
        )
        raw_amounts = tuple(
            scale_down_down(a, sf) for a, sf in zip(amounts_out, self._scaling_factors, strict=True)
        )
        return ExitResult(shares_in.value, raw_amounts), virtual, invariant

    def on_exit(self, request: ExitRequest | bytes | str, total_supply: int) -> ExitResult:
        """Remove liquidity.

        Raises:
            NotInitialized: If the pool has not been initialized
            BptInMaxAmount: If more shares than allowed would be burned
            NotYetImplemented: For declared kinds without a formula
        """
        if isinstance(request, (bytes, str)):
            request = decode_exit(request)

        result, virtual, invariant = self._compute_exit(request, total_supply)
        self._commit(virtual, invariant)

        logger.debug(
            "range_pool_exit",
            pool_id=self._pool_id,
            kind=type(request).__name__,
            shares_in=result.shares_in,
            amounts_out=list(result.amounts_out),
        )
        return result

    def query_exit(self, request: ExitRequest | bytes | str, total_supply: int) -> ExitResult:
        """Result on_exit would return, without changing any state."""
        if isinstance(request, (bytes, str)):
            request = decode_exit(request)
        result, _, _ = self._compute_exit(request, total_supply)
        return result

    def recovery_exit(
        self,
        shares_in: int,
        total_supply: int,
        real_balances: Sequence[int] | None = None,
    ) -> list[int]:
        """Proportional exit that bypasses the pricing state entirely.

        Virtual balances are neither read nor written, so this path keeps
        working even if they are corrupt.

        Args:
            shares_in: Shares burned (18-decimal)
            total_supply: Share supply before the burn
            real_balances: Raw balances; read from custody when omitted

        Returns:
            Raw amounts out, rounded down
        """
        supply = self._check_total_supply(total_supply)
        if shares_in > total_supply:
            raise ArithmeticUnderflow(f"Shares in {shares_in} exceed total supply {total_supply}")
        if real_balances is None:
            real_balances = self._raw_real_balances()
        if len(real_balances) != len(self._tokens):
            raise LengthMismatch(
                f"Got {len(real_balances)} balances for {len(self._tokens)} tokens"
            )

        amounts_out = calc_tokens_out_given_exact_bpt_in(
            [Bfp(b) for b in real_balances], Bfp(shares_in), supply
        )
        logger.info(
            "range_pool_recovery_exit",
            pool_id=self._pool_id,
            shares_in=shares_in,
            amounts_out=[a.value for a in amounts_out],
        )
        return [a.value for a in amounts_out]

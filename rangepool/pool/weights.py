"""Weight and virtual balance storage.

A range pool needs two capabilities from its storage: the current normalized
weights, and a slot for the virtual balances. ``WeightStorage`` is that
capability set; the pool depends on it rather than on a concrete class.

Two strategies are provided:
- FixedWeightStorage: weights set once at creation
- GradualWeightStorage: weights move linearly between two points in time
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import structlog

from rangepool.config import DEFAULT_POOL_LIMITS, PoolLimits
from rangepool.math.fixed_point import ONE_18, Bfp

from .errors import (
    GradualUpdateTimeTravel,
    LengthMismatch,
    MinWeight,
    NormalizedWeightInvariant,
)

logger = structlog.get_logger()


@runtime_checkable
class WeightStorage(Protocol):
    """Capability set a range pool needs for its weights and virtual balances."""

    def get_normalized_weights(self) -> list[Bfp]: ...

    def get_virtual_balances(self) -> list[Bfp]: ...

    def set_virtual_balances(self, balances: Sequence[Bfp]) -> None: ...


def validate_normalized_weights(
    weights: Sequence[Bfp],
    limits: PoolLimits = DEFAULT_POOL_LIMITS,
) -> None:
    """Check per-token minimum weight and that the weights sum to one.

    Raises:
        MinWeight: If any weight is below limits.min_weight
        NormalizedWeightInvariant: If the weights do not sum to exactly one
    """
    for i, weight in enumerate(weights):
        if weight.value < limits.min_weight:
            raise MinWeight(f"Weight {weight.value} at index {i} below {limits.min_weight}")
    total = sum(w.value for w in weights)
    if total != ONE_18:
        raise NormalizedWeightInvariant(f"Weights sum to {total}, expected {ONE_18}")


class _VirtualBalanceSlot:
    """Virtual balance storage shared by the weight strategies."""

    def __init__(self, token_count: int) -> None:
        self._virtual_balances = [Bfp(0)] * token_count

    def get_virtual_balances(self) -> list[Bfp]:
        return list(self._virtual_balances)

    def set_virtual_balances(self, balances: Sequence[Bfp]) -> None:
        if len(balances) != len(self._virtual_balances):
            raise LengthMismatch(
                f"Got {len(balances)} virtual balances for {len(self._virtual_balances)} tokens"
            )
        self._virtual_balances = list(balances)


class FixedWeightStorage(_VirtualBalanceSlot):
    """Weights fixed at creation."""

    def __init__(
        self,
        normalized_weights: Sequence[Bfp],
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        validate_normalized_weights(normalized_weights, limits)
        super().__init__(len(normalized_weights))
        self._weights = list(normalized_weights)

    def get_normalized_weights(self) -> list[Bfp]:
        return list(self._weights)


@dataclass(frozen=True)
class GradualWeightUpdateParams:
    """Current weight schedule.

    Attributes:
        start_time: Unix timestamp at which weights start moving
        end_time: Unix timestamp at which end_weights are reached
        start_weights: Weights in effect up to start_time
        end_weights: Weights in effect from end_time onwards
    """

    start_time: int
    end_time: int
    start_weights: tuple[Bfp, ...]
    end_weights: tuple[Bfp, ...]


class GradualWeightStorage(_VirtualBalanceSlot):
    """Weights interpolated linearly between a start and an end schedule point.

    Outside the schedule window the weights are constant. The clock is
    injectable so schedules can be tested without sleeping.
    """

    def __init__(
        self,
        normalized_weights: Sequence[Bfp],
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        validate_normalized_weights(normalized_weights, limits)
        super().__init__(len(normalized_weights))
        self._limits = limits
        self._clock = clock
        now = int(self._clock())
        weights = tuple(normalized_weights)
        self._params = GradualWeightUpdateParams(now, now, weights, weights)

    def _now(self) -> int:
        return int(self._clock())

    def update_weights_gradually(
        self,
        start_time: int,
        end_time: int,
        end_weights: Sequence[Bfp],
    ) -> None:
        """Schedule a linear move from the current weights to end_weights.

        A start_time in the past is moved forward to now, so weights never
        jump.

        Raises:
            GradualUpdateTimeTravel: If end_time < start_time
            LengthMismatch: If end_weights has the wrong length
        """
        if len(end_weights) != len(self._params.end_weights):
            raise LengthMismatch(
                f"Got {len(end_weights)} end weights for {len(self._params.end_weights)} tokens"
            )
        validate_normalized_weights(end_weights, self._limits)

        start_time = max(self._now(), start_time)
        if end_time < start_time:
            raise GradualUpdateTimeTravel(f"End time {end_time} is before start {start_time}")

        start_weights = tuple(self.get_normalized_weights())
        self._params = GradualWeightUpdateParams(
            start_time, end_time, start_weights, tuple(end_weights)
        )
        logger.info(
            "gradual_weight_update_scheduled",
            start_time=start_time,
            end_time=end_time,
            end_weights=[w.value for w in end_weights],
        )

    def get_gradual_weight_update_params(self) -> GradualWeightUpdateParams:
        return self._params

    def _progress(self) -> Bfp:
        params = self._params
        now = self._now()
        if now >= params.end_time:
            return Bfp(ONE_18)
        if now <= params.start_time:
            return Bfp(0)
        elapsed = Bfp(now - params.start_time)
        duration = Bfp(params.end_time - params.start_time)
        return elapsed.div_down(duration)

    def get_normalized_weights(self) -> list[Bfp]:
        progress = self._progress()
        weights = []
        for start, end in zip(self._params.start_weights, self._params.end_weights, strict=True):
            if end >= start:
                weights.append(start.add(end.sub(start).mul_down(progress)))
            else:
                weights.append(start.sub(start.sub(end).mul_down(progress)))
        # Last token absorbs rounding so the weights sum to exactly ONE
        weights[-1] = Bfp(ONE_18 - sum(w.value for w in weights[:-1]))
        return weights

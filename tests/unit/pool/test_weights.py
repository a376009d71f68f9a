"""Tests for weight and virtual balance storage."""

import pytest

from rangepool.config import PoolLimits
from rangepool.math.fixed_point import ONE_18, Bfp
from rangepool.pool.errors import (
    GradualUpdateTimeTravel,
    LengthMismatch,
    MinWeight,
    NormalizedWeightInvariant,
)
from rangepool.pool.weights import (
    FixedWeightStorage,
    GradualWeightStorage,
    WeightStorage,
    validate_normalized_weights,
)

HALF = Bfp(ONE_18 // 2)
W20 = Bfp.from_decimal("0.2")
W80 = Bfp.from_decimal("0.8")


class TestValidateNormalizedWeights:
    def test_accepts_weights_summing_to_one(self) -> None:
        validate_normalized_weights([Bfp.from_decimal("0.3"), Bfp.from_decimal("0.7")])

    def test_rejects_sum_off_by_one_wei(self) -> None:
        with pytest.raises(NormalizedWeightInvariant):
            validate_normalized_weights([HALF, Bfp(ONE_18 // 2 - 1)])

    def test_rejects_weight_below_minimum(self) -> None:
        with pytest.raises(MinWeight):
            validate_normalized_weights([Bfp.from_decimal("0.005"), Bfp.from_decimal("0.995")])

    def test_custom_limits(self) -> None:
        limits = PoolLimits(min_weight=ONE_18 // 4)
        with pytest.raises(MinWeight):
            validate_normalized_weights([W20, W80], limits)


class TestFixedWeightStorage:
    def test_implements_protocol(self) -> None:
        assert isinstance(FixedWeightStorage([HALF, HALF]), WeightStorage)

    def test_virtual_balances_start_at_zero(self) -> None:
        storage = FixedWeightStorage([HALF, HALF])
        assert storage.get_virtual_balances() == [Bfp(0), Bfp(0)]

    def test_set_and_get_virtual_balances(self) -> None:
        storage = FixedWeightStorage([HALF, HALF])
        storage.set_virtual_balances([Bfp(1), Bfp(2)])
        assert storage.get_virtual_balances() == [Bfp(1), Bfp(2)]

    def test_get_returns_copy(self) -> None:
        storage = FixedWeightStorage([HALF, HALF])
        balances = storage.get_virtual_balances()
        balances[0] = Bfp(99)
        assert storage.get_virtual_balances()[0] == Bfp(0)

    def test_set_wrong_length(self) -> None:
        storage = FixedWeightStorage([HALF, HALF])
        with pytest.raises(LengthMismatch):
            storage.set_virtual_balances([Bfp(1)])

    def test_rejects_invalid_weights(self) -> None:
        with pytest.raises(NormalizedWeightInvariant):
            FixedWeightStorage([HALF, W20])


class TestGradualWeightStorage:
    """Linear weight schedule on an injected clock."""

    def test_constant_without_schedule(self, clock) -> None:
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        clock.now = 10_000
        assert storage.get_normalized_weights() == [HALF, HALF]

    def test_interpolates_linearly(self, clock) -> None:
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        storage.update_weights_gradually(100, 200, [W20, W80])

        clock.now = 100
        assert storage.get_normalized_weights() == [HALF, HALF]

        clock.now = 150
        assert storage.get_normalized_weights() == [
            Bfp.from_decimal("0.35"),
            Bfp.from_decimal("0.65"),
        ]

        clock.now = 250
        assert storage.get_normalized_weights() == [W20, W80]

    def test_weights_sum_to_one_during_schedule(self, clock) -> None:
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        storage.update_weights_gradually(0, 300, [W20, W80])
        for t in (1, 37, 100, 299):
            clock.now = t
            total = sum(w.value for w in storage.get_normalized_weights())
            assert total == ONE_18

    def test_three_token_weights_sum_to_one_every_second(self, clock) -> None:
        third = Bfp(ONE_18 // 3)
        start = [third, third, Bfp(ONE_18 - 2 * third.value)]
        end = [Bfp.from_decimal("0.1"), W20, Bfp.from_decimal("0.7")]
        storage = GradualWeightStorage(start, clock=clock)
        storage.update_weights_gradually(0, 7, end)
        for t in range(8):
            clock.now = t
            total = sum(w.value for w in storage.get_normalized_weights())
            assert total == ONE_18
        assert storage.get_normalized_weights() == end

    def test_start_in_past_moves_to_now(self, clock) -> None:
        clock.now = 150
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        storage.update_weights_gradually(100, 300, [W20, W80])
        params = storage.get_gradual_weight_update_params()
        assert params.start_time == 150
        assert params.end_time == 300
        assert params.start_weights == (HALF, HALF)

    def test_end_before_start_raises(self, clock) -> None:
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        with pytest.raises(GradualUpdateTimeTravel):
            storage.update_weights_gradually(200, 100, [W20, W80])

    def test_schedule_starts_from_current_weights(self, clock) -> None:
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        storage.update_weights_gradually(0, 100, [W20, W80])
        clock.now = 50
        storage.update_weights_gradually(50, 150, [HALF, HALF])
        params = storage.get_gradual_weight_update_params()
        assert params.start_weights == (Bfp.from_decimal("0.35"), Bfp.from_decimal("0.65"))

    def test_rejects_invalid_end_weights(self, clock) -> None:
        storage = GradualWeightStorage([HALF, HALF], clock=clock)
        with pytest.raises(NormalizedWeightInvariant):
            storage.update_weights_gradually(0, 100, [W20, W20])
        with pytest.raises(LengthMismatch):
            storage.update_weights_gradually(0, 100, [Bfp.one()])

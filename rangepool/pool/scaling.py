"""Decimal scaling and swap fee helpers.

Token amounts at the boundary are in each token's native decimals. Pool math
runs on 18-decimal values, so amounts are multiplied by an integer scaling
factor on the way in (10^12 for a 6-decimal token, 1 for an 18-decimal one)
and divided on the way out with an explicit rounding direction.
"""

from collections.abc import Sequence

from rangepool.math.fixed_point import Bfp

from .errors import InvalidScalingFactor, LengthMismatch


def _check_scaling_factor(scaling_factor: int) -> None:
    if scaling_factor <= 0:
        raise InvalidScalingFactor(f"Scaling factor must be positive, got {scaling_factor}")


def scale_up(amount: int, scaling_factor: int) -> Bfp:
    """Scale a native-decimal amount to 18 decimals.

    Raises:
        InvalidScalingFactor: If scaling_factor <= 0
    """
    _check_scaling_factor(scaling_factor)
    return Bfp.from_wei(amount * scaling_factor)


def scale_up_array(amounts: Sequence[int], scaling_factors: Sequence[int]) -> list[Bfp]:
    """Scale every amount by its token's factor.

    Raises:
        LengthMismatch: If the sequences differ in length
    """
    if len(amounts) != len(scaling_factors):
        raise LengthMismatch(
            f"Got {len(amounts)} amounts for {len(scaling_factors)} scaling factors"
        )
    return [scale_up(a, sf) for a, sf in zip(amounts, scaling_factors, strict=True)]


def scale_down_down(bfp: Bfp, scaling_factor: int) -> int:
    """Scale an 18-decimal value back to native decimals, rounding down."""
    _check_scaling_factor(scaling_factor)
    return bfp.value // scaling_factor


def scale_down_up(bfp: Bfp, scaling_factor: int) -> int:
    """Scale an 18-decimal value back to native decimals, rounding up."""
    _check_scaling_factor(scaling_factor)
    if bfp.value == 0:
        return 0
    return (bfp.value - 1) // scaling_factor + 1


def swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Fee charged on an exact-input amount (rounded up, in the pool's favour)."""
    return amount.mul_up(swap_fee)


def subtract_swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Amount that reaches the curve for an exact-input swap.

    Used for given-in swaps: the fee is deducted before pricing.
    """
    return amount.sub(swap_fee_amount(amount, swap_fee))


def add_swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Gross up a curve input so that the fee is paid on top.

    Used for given-out swaps: ``amount / (1 - fee)``, rounded up.
    """
    return amount.div_up(swap_fee.complement())

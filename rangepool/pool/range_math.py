"""Range pool math.

Pricing runs on *virtual* balances while payouts are capped by the *real*
(custodied) balances. Swap formulas are the weighted product curve evaluated
on virtual balances; join/exit share math is proportional to real balances.

Rounding always favours the pool: amounts leaving the pool round down,
amounts entering it round up.
"""

from collections.abc import Sequence

from rangepool.math.fixed_point import ONE_18, Bfp

from .errors import ArithmeticUnderflow, LengthMismatch, ZeroBalanceError, ZeroInvariantError


def calc_out_given_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
    fact_balance_out: Bfp,
) -> Bfp:
    """Calculate output amount for an exact input.

    Fee should be subtracted from amount_in BEFORE calling this function.

    Formula:
        amount_out = balance_out * (1 - (balance_in / (balance_in + amount_in))^(weight_in / weight_out))

    The result is clamped to fact_balance_out: the virtual curve never promises
    more than the pool actually holds.

    Args:
        balance_in: Virtual balance of the input token
        weight_in: Normalized weight of the input token
        balance_out: Virtual balance of the output token
        weight_out: Normalized weight of the output token (must be positive)
        amount_in: Scaled input amount (after fee subtraction)
        fact_balance_out: Real balance of the output token

    Returns:
        Scaled output amount in [0, fact_balance_out]

    Raises:
        ZeroBalanceError: If balance_in + amount_in is zero
    """
    denominator = balance_in.add(amount_in)
    if denominator.is_zero():
        raise ZeroBalanceError("balance_in + amount_in must be positive")

    # Rounding the base up rounds the power up, which rounds amount_out down
    base = balance_in.div_up(denominator)
    exponent = weight_in.div_down(weight_out)
    power = base.pow_up(exponent)

    amount_out = balance_out.mul_down(power.complement())
    return min(amount_out, fact_balance_out)


def calc_in_given_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
) -> Bfp:
    """Calculate input amount for an exact output.

    Fee should be added to the result AFTER calling this function. The caller
    is responsible for checking amount_out against the real balance.

    Formula:
        amount_in = balance_in * ((balance_out / (balance_out - amount_out))^(weight_out / weight_in) - 1)

    Raises:
        ArithmeticUnderflow: If amount_out >= balance_out
    """
    if amount_out >= balance_out:
        raise ArithmeticUnderflow(
            f"amount_out {amount_out.value} must be below virtual balance {balance_out.value}"
        )

    base = balance_out.div_up(balance_out.sub(amount_out))
    exponent = weight_out.div_up(weight_in)
    power = base.pow_up(exponent)

    ratio = power.sub(Bfp(ONE_18))
    return balance_in.mul_up(ratio)


def calc_ratio_min(fact_balances: Sequence[Bfp], amounts: Sequence[Bfp]) -> Bfp:
    """Smallest amount/balance ratio among tokens with a positive balance.

    Tokens whose real balance is zero do not constrain the ratio and are
    skipped. Once the minimum reaches zero it cannot go lower, so the scan
    stops early.

    Raises:
        LengthMismatch: If the sequences differ in length
    """
    if len(fact_balances) != len(amounts):
        raise LengthMismatch(f"Got {len(amounts)} amounts for {len(fact_balances)} balances")

    ratio_min: Bfp | None = None
    for balance, amount in zip(fact_balances, amounts, strict=True):
        if balance.is_zero():
            continue
        ratio = amount.div_up(balance)
        if ratio_min is None or ratio < ratio_min:
            ratio_min = ratio
        if ratio_min.is_zero():
            break

    return ratio_min if ratio_min is not None else Bfp(0)


def calc_bpt_out_given_exact_tokens_in(
    fact_balances: Sequence[Bfp],
    amounts_in: Sequence[Bfp],
    bpt_total_supply: Bfp,
) -> Bfp:
    """Shares minted for a join limited by its weakest token."""
    return bpt_total_supply.mul_down(calc_ratio_min(fact_balances, amounts_in))


def calc_bpt_in_given_exact_tokens_out(
    fact_balances: Sequence[Bfp],
    amounts_out: Sequence[Bfp],
    bpt_total_supply: Bfp,
) -> Bfp:
    """Shares burned for an exit limited by its weakest token."""
    return bpt_total_supply.mul_down(calc_ratio_min(fact_balances, amounts_out))


def calc_proportional_amounts(
    balances: Sequence[Bfp],
    ratio: Bfp,
    *,
    round_up: bool,
) -> list[Bfp]:
    """Apply the same share ratio to every balance."""
    if round_up:
        return [balance.mul_up(ratio) for balance in balances]
    return [balance.mul_down(ratio) for balance in balances]


def calc_all_tokens_in_given_exact_bpt_out(
    balances: Sequence[Bfp],
    bpt_amount_out: Bfp,
    bpt_total_supply: Bfp,
) -> list[Bfp]:
    """Real amounts required to mint exactly bpt_amount_out (rounded up)."""
    ratio = bpt_amount_out.div_up(bpt_total_supply)
    return calc_proportional_amounts(balances, ratio, round_up=True)


def calc_tokens_out_given_exact_bpt_in(
    balances: Sequence[Bfp],
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
) -> list[Bfp]:
    """Real amounts paid out for burning exactly bpt_amount_in (rounded down)."""
    ratio = bpt_amount_in.div_down(bpt_total_supply)
    return calc_proportional_amounts(balances, ratio, round_up=False)


def calc_grown_virtual_balances(virtual_balances: Sequence[Bfp], ratio: Bfp) -> list[Bfp]:
    """Scale every virtual balance by (1 + ratio) after a join."""
    factor = Bfp(ONE_18).add(ratio)
    return [balance.mul_down(factor) for balance in virtual_balances]


def calc_shrunk_virtual_balances(virtual_balances: Sequence[Bfp], ratio: Bfp) -> list[Bfp]:
    """Scale every virtual balance by (1 - ratio) after an exit."""
    factor = ratio.complement()
    return [balance.mul_down(factor) for balance in virtual_balances]


def calc_invariant(normalized_weights: Sequence[Bfp], balances: Sequence[Bfp]) -> Bfp:
    """Constant weighted product: prod(balance_i ^ weight_i), rounded down.

    Raises:
        LengthMismatch: If the sequences differ in length
        ZeroInvariantError: If the product is zero
    """
    if len(normalized_weights) != len(balances):
        raise LengthMismatch(
            f"Got {len(balances)} balances for {len(normalized_weights)} weights"
        )

    invariant = Bfp(ONE_18)
    for weight, balance in zip(normalized_weights, balances, strict=True):
        invariant = invariant.mul_down(balance.pow_down(weight))

    if invariant.is_zero():
        raise ZeroInvariantError("Invariant is zero")
    return invariant


def normalize_weights(weights: Sequence[Bfp]) -> list[Bfp]:
    """Rescale positive weights so they sum to exactly one.

    Division truncates, so the leftover wei goes to the last token.
    """
    total = sum(w.value for w in weights)
    if total == 0:
        raise ZeroDivisionError("Cannot normalize weights summing to zero")

    normalized = [Bfp(w.value * ONE_18 // total) for w in weights]
    remainder = ONE_18 - sum(w.value for w in normalized)
    normalized[-1] = Bfp(normalized[-1].value + remainder)
    return normalized

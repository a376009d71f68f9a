"""18-decimal fixed-point arithmetic with explicit rounding direction.

Values are plain integers scaled by 10^18 (``1.0 == 10**18``). The ``pow``
primitives follow Balancer's LogExpMath (ln/exp by digit extraction plus a
short Taylor series) so that results are bit-compatible with on-chain pools:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/master/pkg/solidity-utils/contracts/math/LogExpMath.sol
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar

__all__ = [
    "Bfp",
    "LogExpMathError",
    "XOutOfBounds",
    "YOutOfBounds",
    "ProductOutOfBounds",
    "InvalidExponent",
    "pow_raw",
    "exp",
    "ONE_18",
    "ONE_20",
    "ONE_36",
]

ONE_18 = 10**18
ONE_20 = 10**20
ONE_36 = 10**36

MAX_NATURAL_EXPONENT = 130 * ONE_18
MIN_NATURAL_EXPONENT = -41 * ONE_18

# ln is computed with 36 decimals inside (0.9, 1.1)
LN_36_LOWER_BOUND = ONE_18 - 10**17
LN_36_UPPER_BOUND = ONE_18 + 10**17

MILD_EXPONENT_BOUND = (1 << 254) // ONE_20

# (x_n, e^x_n) pairs. The first table is 18-decimal, the second 20-decimal.
_BIG_TERMS = (
    (128 * ONE_18, 38877084059945950922200000000000000000000000000000000000),
    (64 * ONE_18, 6235149080811616882910000000),
)
_SMALL_TERMS = (
    (32 * ONE_20, 7_896_296_018_268_069_516_100_000_000_000_000),
    (16 * ONE_20, 888_611_052_050_787_263_676_000_000),
    (8 * ONE_20, 298_095_798_704_172_827_474_000),
    (4 * ONE_20, 5_459_815_003_314_423_907_810),
    (2 * ONE_20, 738_905_609_893_065_022_723),
    (ONE_20, 271_828_182_845_904_523_536),
    (ONE_20 // 2, 164_872_127_070_012_814_685),
    (ONE_20 // 4, 128_402_541_668_774_148_407),
    (ONE_20 // 8, 113_314_845_306_682_631_683),
    (ONE_20 // 16, 106_449_445_891_785_942_956),
)
# exp() only reduces by the terms down to 2^-2
_EXP_SMALL_TERMS = _SMALL_TERMS[:8]


class LogExpMathError(ArithmeticError):
    """Base error for the ln/exp/pow primitives."""

    pass


class XOutOfBounds(LogExpMathError):
    """Base does not fit in a signed 256-bit word."""

    pass


class YOutOfBounds(LogExpMathError):
    """Exponent exceeds MILD_EXPONENT_BOUND."""

    pass


class ProductOutOfBounds(LogExpMathError):
    """y * ln(x) falls outside the range exp() accepts."""

    pass


class InvalidExponent(LogExpMathError):
    """Natural exponent outside [MIN_NATURAL_EXPONENT, MAX_NATURAL_EXPONENT]."""

    pass


def _div_trunc(a: int, b: int) -> int:
    """Divide truncating toward zero, as EVM signed division does.

    Python's ``//`` floors, which differs for operands of opposite sign
    (``-7 // 3 == -3`` where the EVM yields ``-2``).
    """
    if b == 0:
        raise ZeroDivisionError("division by zero")
    if (a >= 0) == (b >= 0):
        return a // b
    return -(abs(a) // abs(b))


def _ln(a: int) -> int:
    """Natural log of a positive 18-decimal value, 18-decimal result."""
    if a < ONE_18:
        return -_ln((ONE_18 * ONE_18) // a)

    total = 0
    for x_n, a_n in _BIG_TERMS:
        if a >= a_n * ONE_18:
            a //= a_n
            total += x_n

    total *= 100
    a *= 100

    for x_n, a_n in _SMALL_TERMS:
        if a >= a_n:
            a = (a * ONE_20) // a_n
            total += x_n

    # ln(a) = 2 * arctanh(z), z = (a - 1) / (a + 1)
    z = ((a - ONE_20) * ONE_20) // (a + ONE_20)
    z_squared = (z * z) // ONE_20

    num = z
    series = num
    for k in range(3, 12, 2):
        num = (num * z_squared) // ONE_20
        series += num // k

    return (total + series * 2) // 100


def _ln_36(x: int) -> int:
    """Natural log with 36 decimals of precision, for x close to one."""
    x *= ONE_18

    z = _div_trunc((x - ONE_36) * ONE_36, x + ONE_36)
    z_squared = _div_trunc(z * z, ONE_36)

    num = z
    series = num
    for k in range(3, 16, 2):
        num = _div_trunc(num * z_squared, ONE_36)
        series += _div_trunc(num, k)

    return series * 2


def exp(x: int) -> int:
    """e^x for an 18-decimal exponent (may be negative)."""
    if not (MIN_NATURAL_EXPONENT <= x <= MAX_NATURAL_EXPONENT):
        raise InvalidExponent(f"Exponent {x} outside valid range")

    if x < 0:
        return (ONE_18 * ONE_18) // exp(-x)

    first_an = 1
    for x_n, a_n in _BIG_TERMS:
        if x >= x_n:
            x -= x_n
            first_an = a_n
            break

    x *= 100

    product = ONE_20
    for x_n, a_n in _EXP_SMALL_TERMS:
        if x >= x_n:
            x -= x_n
            product = (product * a_n) // ONE_20

    series = ONE_20 + x
    term = x
    for k in range(2, 13):
        term = ((term * x) // ONE_20) // k
        series += term

    return (((product * series) // ONE_20) * first_an) // 100


def pow_raw(x: int, y: int) -> int:
    """x^y for non-negative 18-decimal operands, without error compensation.

    Raises:
        XOutOfBounds: x does not fit in int256
        YOutOfBounds: y exceeds MILD_EXPONENT_BOUND
        ProductOutOfBounds: y * ln(x) cannot be exponentiated
    """
    if y == 0:
        return ONE_18
    if x == 0:
        return 0

    if x >= (1 << 255):
        raise XOutOfBounds(f"Base {x} too large")
    if y >= MILD_EXPONENT_BOUND:
        raise YOutOfBounds(f"Exponent {y} exceeds bound")

    if LN_36_LOWER_BOUND < x < LN_36_UPPER_BOUND:
        ln_36_x = _ln_36(x)
        quotient = _div_trunc(ln_36_x, ONE_18)
        remainder = ln_36_x - quotient * ONE_18
        logx_times_y = quotient * y + _div_trunc(remainder * y, ONE_18)
    else:
        logx_times_y = _ln(x) * y

    logx_times_y = _div_trunc(logx_times_y, ONE_18)

    if not (MIN_NATURAL_EXPONENT <= logx_times_y <= MAX_NATURAL_EXPONENT):
        raise ProductOutOfBounds(f"Product {logx_times_y} outside valid range")

    return exp(logx_times_y)


class Bfp:
    """Unsigned 18-decimal fixed-point number.

    Every operation names its rounding direction; callers pick the direction
    that favours the pool. ``Bfp(10**18)`` is 1.0.
    """

    ONE: ClassVar[int] = ONE_18
    # pow() is accurate to 10^-14 relative
    MAX_POW_RELATIVE_ERROR: ClassVar[int] = 10000

    __slots__ = ("value",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, value: int) -> None:
        self.value = value

    @classmethod
    def from_wei(cls, wei: int) -> Bfp:
        """Wrap an integer that is already 18-decimal scaled."""
        return cls(wei)

    @classmethod
    def from_decimal(cls, d: Decimal | str) -> Bfp:
        """Scale a non-negative decimal by 10^18, rounding half up."""
        d = Decimal(d)
        if d < 0:
            raise ValueError(f"Bfp.from_decimal requires non-negative input, got {d}")
        scaled = (d * cls.ONE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(int(scaled))

    @classmethod
    def from_int(cls, i: int) -> Bfp:
        return cls(i * cls.ONE)

    @classmethod
    def zero(cls) -> Bfp:
        return cls(0)

    @classmethod
    def one(cls) -> Bfp:
        return cls(cls.ONE)

    def to_decimal(self) -> Decimal:
        return Decimal(self.value) / Decimal(self.ONE)

    def is_zero(self) -> bool:
        return self.value == 0

    def mul_down(self, other: Bfp) -> Bfp:
        return Bfp((self.value * other.value) // self.ONE)

    def mul_up(self, other: Bfp) -> Bfp:
        product = self.value * other.value
        if product == 0:
            return Bfp(0)
        return Bfp((product - 1) // self.ONE + 1)

    def div_down(self, other: Bfp) -> Bfp:
        if other.value == 0:
            raise ZeroDivisionError("Bfp division by zero")
        return Bfp((self.value * self.ONE) // other.value)

    def div_up(self, other: Bfp) -> Bfp:
        if other.value == 0:
            raise ZeroDivisionError("Bfp division by zero")
        numerator = self.value * self.ONE
        if numerator == 0:
            return Bfp(0)
        return Bfp((numerator - 1) // other.value + 1)

    def complement(self) -> Bfp:
        """1 - self, floored at zero."""
        return Bfp(max(0, self.ONE - self.value))

    def add(self, other: Bfp) -> Bfp:
        return Bfp(self.value + other.value)

    def sub(self, other: Bfp) -> Bfp:
        """self - other, floored at zero."""
        return Bfp(max(0, self.value - other.value))

    def _max_pow_error(self, raw: int) -> int:
        product = raw * self.MAX_POW_RELATIVE_ERROR
        rounded_up = ((product - 1) // self.ONE + 1) if product > 0 else 0
        return rounded_up + 1

    def pow_down(self, exponent: Bfp) -> Bfp:
        """self^exponent, biased low by the maximum pow error."""
        raw = pow_raw(self.value, exponent.value)
        max_error = self._max_pow_error(raw)
        if raw < max_error:
            return Bfp(0)
        return Bfp(raw - max_error)

    def pow_up(self, exponent: Bfp) -> Bfp:
        """self^exponent, biased high by the maximum pow error."""
        raw = pow_raw(self.value, exponent.value)
        return Bfp(raw + self._max_pow_error(raw))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value >= other.value

    def __repr__(self) -> str:
        return f"Bfp({self.value})"

    def __str__(self) -> str:
        return str(self.to_decimal())

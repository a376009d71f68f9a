"""Range pool error classes.

Every error carries a reason ``code`` (the string a host would surface as the
revert reason). Errors always abort the whole operation; nothing is retried.
"""


class RangePoolError(Exception):
    """Base error for range pool operations."""

    code = "RANGE_POOL_ERROR"


# Input validation


class LengthMismatch(RangePoolError):
    """Array arguments do not match the pool's token count."""

    code = "INPUT_LENGTH_MISMATCH"


class OutOfBounds(RangePoolError):
    """Token index outside the balances array."""

    code = "OUT_OF_BOUNDS"


class InvalidUserData(RangePoolError):
    """Join/exit payload could not be decoded."""

    code = "INVALID_USER_DATA"


class UnhandledJoinKind(RangePoolError):
    """Join kind integer is not part of the join kind enumeration."""

    code = "UNHANDLED_JOIN_KIND"


class UnhandledExitKind(RangePoolError):
    """Exit kind integer is not part of the exit kind enumeration."""

    code = "UNHANDLED_EXIT_KIND"


class NotYetImplemented(RangePoolError):
    """Kind is declared but has no pricing formula."""

    code = "NOT_IMPLEMENTED"


# Balances and amounts


class InsufficientBalance(RangePoolError):
    """Requested amount exceeds the real balance held by the pool."""

    code = "INSUFFICIENT_BALANCE"


class ArithmeticUnderflow(RangePoolError):
    """Subtraction would go below zero (e.g. amount_out >= virtual balance)."""

    code = "SUB_OVERFLOW"


class ZeroBalanceError(RangePoolError):
    """A balance that must be positive is zero."""

    code = "ZERO_BALANCE"


class ZeroInvariantError(RangePoolError):
    """Weighted product invariant evaluated to zero."""

    code = "ZERO_INVARIANT"


class BptOutMinAmount(RangePoolError):
    """Shares minted by a join fall below the caller's floor."""

    code = "BPT_OUT_MIN_AMOUNT"


class BptInMaxAmount(RangePoolError):
    """Shares burned by an exit exceed the caller's ceiling."""

    code = "BPT_IN_MAX_AMOUNT"


class InvalidVirtualBalance(RangePoolError):
    """Initial virtual balances rejected by the configured validator."""

    code = "INVALID_VIRTUAL_BALANCE"


# Lifecycle


class NotInitialized(RangePoolError):
    """Pool has not received its initial liquidity yet."""

    code = "UNINITIALIZED"


class AlreadyInitialized(RangePoolError):
    """Init join attempted on an active pool."""

    code = "ALREADY_INITIALIZED"


# Pool configuration


class MinTokens(RangePoolError):
    code = "MIN_TOKENS"


class MaxTokens(RangePoolError):
    code = "MAX_TOKENS"


class MinWeight(RangePoolError):
    code = "MIN_WEIGHT"


class NormalizedWeightInvariant(RangePoolError):
    """Normalized weights do not sum to one."""

    code = "NORMALIZED_WEIGHT_INVARIANT"


class MinSwapFee(RangePoolError):
    code = "MIN_SWAP_FEE_PERCENTAGE"


class MaxSwapFee(RangePoolError):
    code = "MAX_SWAP_FEE_PERCENTAGE"


class InvalidScalingFactor(RangePoolError):
    """Scaling factor must be positive."""

    code = "INVALID_SCALING_FACTOR"


class GradualUpdateTimeTravel(RangePoolError):
    """Weight update window ends before it starts."""

    code = "GRADUAL_UPDATE_TIME_TRAVEL"


# Query facade


class TokenNotFound(RangePoolError):
    """Asset is not registered in the pool."""

    code = "TOKEN_NOT_FOUND"


class InvalidPool(RangePoolError):
    """Target does not expose the range pool read surface."""

    code = "INVALID_POOL"


class PoolNoScalingFactors(RangePoolError):
    """Target exposes no usable scaling factors."""

    code = "POOL_NO_SCALING_FACTORS"

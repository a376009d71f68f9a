"""Range pool implementation.

A weighted-product pool that prices swaps on virtual balances while paying
out of real balances held by an external custody.
"""

# Custody
from .custody import Custody, InMemoryVault

# Errors
from .errors import (
    AlreadyInitialized,
    ArithmeticUnderflow,
    BptInMaxAmount,
    BptOutMinAmount,
    InsufficientBalance,
    InvalidPool,
    InvalidUserData,
    LengthMismatch,
    NotInitialized,
    NotYetImplemented,
    OutOfBounds,
    PoolNoScalingFactors,
    RangePoolError,
    TokenNotFound,
    UnhandledExitKind,
    UnhandledJoinKind,
)

# Pricing curve
from .range_math import (
    calc_bpt_in_given_exact_tokens_out,
    calc_bpt_out_given_exact_tokens_in,
    calc_in_given_out,
    calc_invariant,
    calc_out_given_in,
    calc_ratio_min,
    normalize_weights,
)

# State machine
from .range_pool import (
    ExitResult,
    JoinResult,
    PoolConfig,
    PoolState,
    RangePool,
    SwapKind,
    SwapRequest,
    require_virtual_covers_real,
)

# Join/exit payloads
from .user_data import ExitKind, JoinKind, decode_exit, decode_join

# Weight storage
from .weights import FixedWeightStorage, GradualWeightStorage, WeightStorage

__all__ = [
    # Custody
    "Custody",
    "InMemoryVault",
    # Errors
    "AlreadyInitialized",
    "ArithmeticUnderflow",
    "BptInMaxAmount",
    "BptOutMinAmount",
    "InsufficientBalance",
    "InvalidPool",
    "InvalidUserData",
    "LengthMismatch",
    "NotInitialized",
    "NotYetImplemented",
    "OutOfBounds",
    "PoolNoScalingFactors",
    "RangePoolError",
    "TokenNotFound",
    "UnhandledExitKind",
    "UnhandledJoinKind",
    # Pricing curve
    "calc_bpt_in_given_exact_tokens_out",
    "calc_bpt_out_given_exact_tokens_in",
    "calc_in_given_out",
    "calc_invariant",
    "calc_out_given_in",
    "calc_ratio_min",
    "normalize_weights",
    # State machine
    "ExitResult",
    "JoinResult",
    "PoolConfig",
    "PoolState",
    "RangePool",
    "SwapKind",
    "SwapRequest",
    "require_virtual_covers_real",
    # Payloads
    "ExitKind",
    "JoinKind",
    "decode_exit",
    "decode_join",
    # Weight storage
    "FixedWeightStorage",
    "GradualWeightStorage",
    "WeightStorage",
]

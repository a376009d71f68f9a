"""Configuration for range pools and the quoting API."""

import os
from dataclasses import dataclass

from rangepool.math.fixed_point import ONE_18


@dataclass(frozen=True)
class PoolLimits:
    """Structural limits enforced when a pool is created or reconfigured.

    All fractional values are 18-decimal fixed-point integers.

    Attributes:
        min_tokens: Smallest number of tokens a pool may register (default: 2)
        max_tokens: Largest number of tokens a pool may register (default: 20)
        min_weight: Smallest normalized weight per token (default: 1%)
        min_swap_fee: Lower bound for the swap fee (default: 0.0001%)
        max_swap_fee: Upper bound for the swap fee (default: 10%)
    """

    min_tokens: int = 2
    max_tokens: int = 20
    min_weight: int = ONE_18 // 100
    min_swap_fee: int = 10**12
    max_swap_fee: int = 10**17


DEFAULT_POOL_LIMITS = PoolLimits()


@dataclass(frozen=True)
class ApiSettings:
    """HTTP server settings, read from the environment.

    - RANGEPOOL_HOST: Host to bind to (default: 0.0.0.0)
    - RANGEPOOL_PORT: Port to bind to (default: 8000)
    - RANGEPOOL_DEBUG: Enable reload mode (default: false)
    """

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    @classmethod
    def from_env(cls) -> "ApiSettings":
        return cls(
            host=os.environ.get("RANGEPOOL_HOST", "0.0.0.0"),
            port=int(os.environ.get("RANGEPOOL_PORT", "8000")),
            debug=os.environ.get("RANGEPOOL_DEBUG", "false").lower() in ("true", "1", "yes"),
        )

"""Range pool - virtual-balance weighted AMM pool in Python."""

from rangepool.pool import PoolConfig, RangePool
from rangepool.queries import RangePoolQueries, SwapInfo

__version__ = "0.1.0"
__all__ = ["PoolConfig", "RangePool", "RangePoolQueries", "SwapInfo", "__version__"]

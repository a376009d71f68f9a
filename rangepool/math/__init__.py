"""Mathematical primitives for range pool calculations.

- Bfp: 18-decimal fixed-point arithmetic (Balancer-style)
"""

from rangepool.math.fixed_point import ONE_18, Bfp

__all__ = ["Bfp", "ONE_18"]

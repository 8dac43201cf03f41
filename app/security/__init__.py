"""
Admission control for inbound telemetry.
"""

from .rate_limiter import (
    FixedWindowRateLimiter,
    RateLimiter,
    SlidingWindowRateLimiter,
    WindowSnapshot,
    create_rate_limiter,
)

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimiter",
    "SlidingWindowRateLimiter",
    "WindowSnapshot",
    "create_rate_limiter",
]

"""Optional AI narrative layer over dashboard metrics."""

from .narrative import NarrativeService, build_system_prompt, parse_insights
from .rate_limit import RateLimitExceeded, SlidingWindowRateLimiter

__all__ = [
    "NarrativeService",
    "RateLimitExceeded",
    "SlidingWindowRateLimiter",
    "build_system_prompt",
    "parse_insights",
]

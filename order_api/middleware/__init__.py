"""API middleware for rate limiting and request processing."""

from .rate_limit import setup_rate_limiting, limiter

__all__ = [
    'setup_rate_limiting',
    'limiter',
]

"""API-layer dependency functions.

Re-exports the dependency factories from ``app.dependencies`` so that
endpoint modules only need to import from ``app.api.deps``.
"""

from app.dependencies import (
    # Service factories
    get_distribution_service,
    get_stats_service,
    # Cache / Redis
    get_cache_service,
    get_redis_client,
)

__all__ = [
    "get_distribution_service",
    "get_stats_service",
    "get_cache_service",
    "get_redis_client",
]

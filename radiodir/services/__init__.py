"""
Service layer infrastructure - resilience patterns for directory API calls.

Provides:
- ProviderRegistry: The set of interchangeable mirrors
- HealthProber: Races probes to find a healthy mirror on startup
- TTLCache: Bounded TTL cache for idempotent reads
- Query helpers: Parameter normalization and stable cache keys
- DirectoryClient: Failover client combining all of the above
"""

from radiodir.services.errors import (
    ServiceError,
    RequestTimeoutError,
    ProviderRequestError,
    ProviderNotFoundError,
)
from radiodir.services.providers import (
    Provider,
    ProviderKind,
    ProviderRegistry,
    default_providers,
)
from radiodir.services.cache import TTLCache, CacheEntry, CacheStats
from radiodir.services.query import cache_key, normalize_params, stable_serialize
from radiodir.services.prober import HealthProber
from radiodir.services.client import DirectoryClient, InitState

__all__ = [
    # Errors
    "ServiceError",
    "RequestTimeoutError",
    "ProviderRequestError",
    "ProviderNotFoundError",
    # Providers
    "Provider",
    "ProviderKind",
    "ProviderRegistry",
    "default_providers",
    # Cache
    "TTLCache",
    "CacheEntry",
    "CacheStats",
    # Query
    "cache_key",
    "normalize_params",
    "stable_serialize",
    # Prober
    "HealthProber",
    # Client
    "DirectoryClient",
    "InitState",
]

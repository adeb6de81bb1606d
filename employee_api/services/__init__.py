"""
Service layer - upstream access, caching and the employee directory.

Provides:
- BackoffPolicy: Retry decisions and jittered exponential delays
- ServiceClient: Async HTTP client with timeouts, retries and envelope decoding
- CacheManager: In-memory cache with full invalidation
- EmployeeDirectory: Read views and mutations over employee records
"""

from employee_api.services.errors import (
    ServiceError,
    DecodeError,
    RateLimitError,
    RequestTimeoutError,
    RetriesExhaustedError,
    ServiceUnavailableError,
    UpstreamStatusError,
)
from employee_api.services.backoff import BackoffConfig, BackoffPolicy
from employee_api.services.cache import CacheManager, CacheEntry, CacheResult
from employee_api.services.client import ServiceClient
from employee_api.services.directory import EmployeeDirectory

__all__ = [
    # Errors
    "ServiceError",
    "DecodeError",
    "RateLimitError",
    "RequestTimeoutError",
    "RetriesExhaustedError",
    "ServiceUnavailableError",
    "UpstreamStatusError",
    # Backoff
    "BackoffConfig",
    "BackoffPolicy",
    # Cache
    "CacheManager",
    "CacheEntry",
    "CacheResult",
    # Client
    "ServiceClient",
    # Directory
    "EmployeeDirectory",
]

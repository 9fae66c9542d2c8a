"""On-disk caching of Paymo API reads.

This package provides :class:`CacheStore`, a single JSON document of
TTL-stamped entries grouped by resource type, and :class:`CachedClient`,
which wraps any :class:`~paymo.client.PaymoAPI` so that reads are served
from the store and mutations invalidate it. Cache keys are derived by
:mod:`paymo.cache.keys`.

Caching is controlled by the ``cache`` section of the global configuration
(:class:`~paymo.models.CacheConfig`) and the ``--no-cache`` flag.
"""

from paymo.cache.cached_client import CachedClient
from paymo.cache.store import DEFAULT_TTL, FALLBACK_TTL, CacheStore

__all__ = ["CacheStore", "CachedClient", "DEFAULT_TTL", "FALLBACK_TTL"]

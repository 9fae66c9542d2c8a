"""Build the API client a command talks to.

Every CLI invocation opens its own :class:`~paymo.cache.CacheStore` and
passes it into a :class:`~paymo.cache.CachedClient`; nothing is kept in
module globals, so tests can point the store at a temporary file.
"""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Iterator, Optional

import httpx

from paymo.cache import CachedClient, CacheStore
from paymo.client.protocol import PaymoAPI
from paymo.client.sync_client import PaymoClient
from paymo.config import get_cache_path, resolve_api_key
from paymo.models import GlobalConfig
from paymo.output import debug, warning


def open_store(config: GlobalConfig, path: Optional[Path] = None) -> Optional[CacheStore]:
    """Open the on-disk cache, or return ``None`` if it cannot be used.

    A corrupt cache file is reset and reported as a warning; a cache
    directory that cannot be created only disables caching for this run.
    """
    try:
        path = path or get_cache_path()
        store = CacheStore.open(path, ttl_overrides=config.cache.ttl_overrides)
    except OSError as exc:
        warning(f"cache unavailable: {exc}")
        return None
    if store.recovered:
        warning(f"cache file {path} was corrupt and has been reset")
    return store


@contextmanager
def open_api(
    config: GlobalConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> Iterator[PaymoAPI]:
    """Yield a ready-to-use :class:`~paymo.client.PaymoAPI`.

    The HTTP client is wrapped with the cache unless ``config.cache.enabled``
    is false (``--no-cache``). The cache is flushed and the HTTP connection
    closed when the block exits, whether normally or by exception.

    Raises:
        ConfigError: If no API key can be resolved.
    """
    api_key = resolve_api_key(config)
    with ExitStack() as stack:
        client = stack.enter_context(PaymoClient(api_key, config.api, transport=transport))
        if not config.cache.enabled:
            debug("Cache disabled, calling the API directly")
            yield client
            return

        store = open_store(config)
        if store is None:
            yield client
            return
        stack.enter_context(store)
        yield CachedClient(client, store)

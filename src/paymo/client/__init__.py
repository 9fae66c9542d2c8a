"""Paymo API client module.

Provides the :class:`PaymoAPI` contract and its HTTP implementation,
:class:`PaymoClient`, which wraps :mod:`httpx` with basic auth, retry with
exponential backoff, rate-limit handling and typed error mapping.

:func:`open_api` is what commands use: it builds a ``PaymoClient`` and,
unless caching is disabled, wraps it in a
:class:`~paymo.cache.CachedClient` backed by the on-disk cache.

Example::

    from paymo.client import open_api

    with open_api(config) as api:
        me = api.get_me()
"""

from paymo.client.factory import open_api
from paymo.client.protocol import PaymoAPI
from paymo.client.sync_client import PaymoClient

__all__ = ["PaymoAPI", "PaymoClient", "open_api"]

"""paymo -- a command-line client for the Paymo time tracking API.

Every command talks to Paymo through a :class:`~paymo.client.PaymoAPI`.
By default that client is wrapped in a :class:`~paymo.cache.CachedClient`
so that repeated lookups (who am I, which projects and tasks exist) are
answered from a local JSON cache instead of the network.

Typical workflow::

    export PAYMO_API_KEY=...
    paymo sync            # warm the cache
    paymo cache status    # inspect it

Modules:
    app: Typer application and CLI entry point.
    cache: Cache store, key derivation and the caching client.
    client: The Paymo HTTP client and the client factory.
    config: XDG-aware configuration and credential resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    models: Pydantic models for API resources and configuration.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"

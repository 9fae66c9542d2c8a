"""Built-in CLI sub-commands for paymo.

* :mod:`~paymo.commands.cache` -- inspect, prune and clear the local cache.
* :mod:`~paymo.commands.sync` -- pre-fetch common data into the cache.

``cache`` is a :class:`typer.Typer` sub-application; ``sync`` is a plain
callback registered directly on the root app.
"""

from __future__ import annotations

import typer

from paymo.config import resolve_config
from paymo.models import GlobalConfig


def config_from_context(ctx: typer.Context) -> GlobalConfig:
    """Resolve the effective config using the global flags stored in ``ctx.obj``."""
    obj = ctx.obj or {}
    return resolve_config(
        cli_base_url=obj.get("base_url"),
        cli_no_cache=obj.get("no_cache", False),
    )

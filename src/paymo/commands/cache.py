"""Cache commands -- inspect and manage the local API cache.

Provides the ``paymo cache`` sub-command group. All three commands work on
the document at :func:`~paymo.config.get_cache_path` and never touch the
network.
"""

from __future__ import annotations

from pathlib import Path

import typer

from paymo.cache import CacheStore
from paymo.output import (
    OutputFormat,
    format_response,
    get_output,
    info,
    print_data,
    print_table,
    success,
    warning,
)

cache_app = typer.Typer(no_args_is_help=True)


def _open(path: Path) -> CacheStore:
    store = CacheStore.open(path)
    if store.recovered:
        warning(f"cache file {path} was corrupt and has been reset")
    return store


@cache_app.command("clear")
def cache_clear() -> None:
    """Clear all cached data.

    Example::

        paymo cache clear
    """
    from paymo.config import get_cache_path

    path = get_cache_path()
    if not path.exists():
        success("No cache to clear.")
        return

    with _open(path) as store:
        store.clear()
    success("Cache cleared.")


@cache_app.command("status")
def cache_status(ctx: typer.Context) -> None:
    """Show cache statistics.

    Prints the cache location, its size on disk and the number of entries
    per resource type (expired entries included).

    Example::

        paymo cache status
        paymo --json cache status
    """
    from paymo.commands import config_from_context
    from paymo.config import get_cache_path

    config = config_from_context(ctx)
    path = get_cache_path()
    as_json = get_output().format == OutputFormat.JSON

    if not path.exists():
        if as_json:
            format_response(
                {"enabled": config.cache.enabled, "entries": 0, "size_kb": 0, "path": str(path)}
            )
        else:
            info("Cache is empty (no cache file).")
        return

    with _open(path) as store:
        by_type = store.stats()
        size_kb = store.size_bytes() // 1024
    total = sum(by_type.values())

    if as_json:
        format_response(
            {
                "enabled": config.cache.enabled,
                "entries": total,
                "size_kb": size_kb,
                "path": str(path),
                "by_type": by_type,
            }
        )
        return

    print_data("Cache Status")
    print_data(f"  Path:    {path}")
    print_data(f"  Size:    {size_kb} KB")
    print_data(f"  Entries: {total}")
    if not config.cache.enabled:
        print_data("  (caching is disabled)")
    if by_type:
        rows = [[rt, str(count)] for rt, count in sorted(by_type.items())]
        print_table(["Type", "Entries"], rows, title="By type")


@cache_app.command("prune")
def cache_prune() -> None:
    """Remove expired entries from the cache.

    Example::

        paymo cache prune
    """
    from paymo.config import get_cache_path

    path = get_cache_path()
    if not path.exists():
        success("No cache to prune.")
        return

    with _open(path) as store:
        removed = store.prune()

    if get_output().format == OutputFormat.JSON:
        format_response({"pruned": removed})
    else:
        success(f"Pruned {removed} expired entries.")

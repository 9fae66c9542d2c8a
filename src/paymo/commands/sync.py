"""Sync command -- pre-populate the local cache from Paymo.

``paymo sync`` drops the cached buckets of each requested target and then
fetches it again through the caching client, so the next commands that
need the same data are answered locally.
"""

from __future__ import annotations

from typing import Callable, Optional

import typer

from paymo.client import PaymoAPI
from paymo.exceptions import InvalidUsageError
from paymo.output import OutputFormat, format_response, get_output, info

VALID_TARGETS = ("all", "me", "clients", "projects", "tasks")

CORE_TARGETS = ("me", "clients", "projects")
"""Targets synced when none are given."""

TARGET_CACHE_TYPES: dict[str, tuple[str, ...]] = {
    "me": ("me",),
    "clients": ("clients",),
    "projects": ("projects", "project", "project_by_name"),
    "tasks": ("tasks", "task", "task_by_name", "tasklists"),
}
"""Cache buckets invalidated before each target is fetched again."""


def _sync_me(api: PaymoAPI) -> int:
    api.get_me()
    return 1


_FETCHERS: dict[str, Callable[[PaymoAPI], int]] = {
    "me": _sync_me,
    "clients": lambda api: len(api.get_clients()),
    "projects": lambda api: len(api.get_projects()),
    "tasks": lambda api: len(api.get_tasks()),
}


def parse_targets(args: Optional[list[str]]) -> list[str]:
    """Validate sync targets and expand ``all``.

    Args:
        args: Targets as typed on the command line, possibly empty.

    Returns:
        The targets to sync, in order. No arguments means the core set.

    Raises:
        InvalidUsageError: If a target is not one of :data:`VALID_TARGETS`.
    """
    if not args:
        return list(CORE_TARGETS)
    for arg in args:
        if arg not in VALID_TARGETS:
            raise InvalidUsageError(
                f"unknown sync target '{arg}'. Valid targets: {', '.join(VALID_TARGETS)}"
            )
    if "all" in args:
        return ["me", "clients", "projects", "tasks"]
    return list(dict.fromkeys(args))


def sync_command(
    ctx: typer.Context,
    targets: Optional[list[str]] = typer.Argument(
        None, help="What to sync: all, me, clients, projects, tasks."
    ),
) -> None:
    """Sync Paymo data into the local cache.

    With no arguments, syncs core data (me, clients, projects).

    Example::

        paymo sync
        paymo sync all
        paymo sync projects clients
    """
    from paymo.cache import CachedClient
    from paymo.client import open_api
    from paymo.commands import config_from_context

    selected = parse_targets(targets)
    config = config_from_context(ctx)
    as_json = get_output().format == OutputFormat.JSON
    counts: dict[str, int] = {}

    with open_api(config) as api:
        if isinstance(api, CachedClient):
            types = [t for target in selected for t in TARGET_CACHE_TYPES[target]]
            api.store.invalidate_type(*types)

        for target in selected:
            try:
                counts[target] = _FETCHERS[target](api)
            except Exception:
                if not as_json:
                    info(f"Syncing {target}... failed")
                raise
            if not as_json:
                info(f"Syncing {target}... done ({counts[target]} items)")

    if as_json:
        format_response(counts)

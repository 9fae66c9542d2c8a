"""Deterministic cache keys for the list endpoints.

Each function maps an options model (or ``None``) to a readable,
order-stable key such as ``"project=12|user=3"``. ``None`` and an
all-default options value both map to :data:`ALL_KEY`; two values that
differ in any meaningful field map to different keys. Keys are not hashed
so that ``cache.json`` stays easy to inspect by hand.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from paymo.models import EntryListOptions, ProjectListOptions, TaskListOptions

ALL_KEY = "all"
ME_KEY = "me"
_SEP = "|"


def _join(parts: list[str]) -> str:
    return _SEP.join(parts) if parts else ALL_KEY


def _day(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def entity_key(entity_id: int) -> str:
    """Key for a single entity cached by id."""
    return str(entity_id)


def projects_key(opts: Optional[ProjectListOptions]) -> str:
    """Derive the ``projects`` bucket key for :meth:`get_projects`."""
    if opts is None:
        return ALL_KEY
    parts: list[str] = []
    if opts.active_only:
        parts.append("active=true")
    if opts.client_id > 0:
        parts.append(f"client={opts.client_id}")
    if opts.user_id > 0:
        parts.append(f"user={opts.user_id}")
    if opts.include_tasks:
        parts.append("inc_tasks")
    if opts.include_client:
        parts.append("inc_client")
    return _join(parts)


def tasks_key(opts: Optional[TaskListOptions]) -> str:
    """Derive the ``tasks`` bucket key for :meth:`get_tasks`.

    ``completed=true`` is only emitted when completed tasks are requested,
    since excluding them is the default.
    """
    if opts is None:
        return ALL_KEY
    parts: list[str] = []
    if opts.project_id > 0:
        parts.append(f"project={opts.project_id}")
    if opts.tasklist_id > 0:
        parts.append(f"tasklist={opts.tasklist_id}")
    if opts.user_id > 0:
        parts.append(f"user={opts.user_id}")
    if opts.include_completed:
        parts.append("completed=true")
    if opts.include_project:
        parts.append("inc_project")
    return _join(parts)


def entries_key(opts: Optional[EntryListOptions]) -> str:
    """Derive the ``entries`` bucket key for :meth:`get_entries`.

    Dates are keyed at day granularity.
    """
    if opts is None:
        return ALL_KEY
    parts: list[str] = []
    if opts.user_id > 0:
        parts.append(f"user={opts.user_id}")
    if opts.project_id > 0:
        parts.append(f"project={opts.project_id}")
    if opts.task_id > 0:
        parts.append(f"task={opts.task_id}")
    if opts.start_date is not None:
        parts.append(f"start={_day(opts.start_date)}")
    if opts.end_date is not None:
        parts.append(f"end={_day(opts.end_date)}")
    if opts.include_task:
        parts.append("inc_task")
    if opts.include_project:
        parts.append("inc_project")
    return _join(parts)


def tasklists_key(project_id: int) -> str:
    """Derive the ``tasklists`` bucket key for :meth:`get_task_lists`."""
    return f"project={project_id}"

"""Caching decorator for :class:`~paymo.client.PaymoAPI`.

:class:`CachedClient` implements the same operations as the client it
wraps. Reads go through the :class:`~paymo.cache.CacheStore` first and
only reach the API on a miss; mutations always reach the API and then drop
the cache buckets they may have made wrong.

When the API cannot be reached at all (a
:class:`~paymo.exceptions.ConnectionError_`), reads fall back to whatever is
cached, however old, so that the CLI keeps working offline. An
:class:`~paymo.exceptions.APIError` is a real answer from the server and is
never masked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from paymo.cache.keys import (
    ALL_KEY,
    ME_KEY,
    entity_key,
    entries_key,
    projects_key,
    tasklists_key,
    tasks_key,
)
from paymo.cache.store import CacheStore
from paymo.exceptions import CacheMiss, PaymoError, is_transport_error
from paymo.models import (
    CreateProjectRequest,
    CreateTaskRequest,
    CreateTimeEntryRequest,
    EntryListOptions,
    PaymoClientRecord,
    Project,
    ProjectListOptions,
    Task,
    TaskList,
    TaskListOptions,
    TimeEntry,
    UpdateTimeEntryRequest,
    User,
)
from paymo.output import debug

if TYPE_CHECKING:
    from paymo.client.protocol import PaymoAPI

T = TypeVar("T")

_MISSING = object()

_ENTRY_TYPES = ("entries", "entry", "active_entry")

INVALIDATIONS: dict[str, tuple[str, ...]] = {
    "create_project": ("projects",),
    "archive_project": ("projects", "project", "project_by_name"),
    "create_task": ("tasks",),
    "complete_task": ("tasks", "task", "task_by_name"),
    "create_entry": _ENTRY_TYPES,
    "update_entry": _ENTRY_TYPES,
    "delete_entry": _ENTRY_TYPES,
    "start_entry": _ENTRY_TYPES,
    "stop_entry": _ENTRY_TYPES,
}
"""Cache buckets dropped after each successful mutation."""


class CachedClient:
    """A :class:`~paymo.client.PaymoAPI` that reads through a :class:`CacheStore`.

    The store and the wrapped client are owned by the caller; closing them
    is the caller's job (see :func:`~paymo.client.open_api`).

    Args:
        inner: The client that actually talks to Paymo.
        store: The cache for this invocation.
    """

    def __init__(self, inner: PaymoAPI, store: CacheStore) -> None:
        self._inner = inner
        self._store = store

    @property
    def store(self) -> CacheStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    def get_me(self) -> User:
        return self._read_through("me", ME_KEY, User, self._inner.get_me)

    def validate_auth(self) -> None:
        self._inner.validate_auth()

    # ------------------------------------------------------------------ #
    # Projects
    # ------------------------------------------------------------------ #

    def get_projects(self, opts: Optional[ProjectListOptions] = None) -> list[Project]:
        projects = self._read_through(
            "projects",
            projects_key(opts),
            list[Project],
            lambda: self._inner.get_projects(opts),
        )
        for project in projects:
            self._index_project(project)
        return projects

    def get_project(self, project_id: int) -> Project:
        project = self._read_through(
            "project",
            entity_key(project_id),
            Project,
            lambda: self._inner.get_project(project_id),
        )
        self._index_project(project)
        return project

    def get_project_by_name(self, name: str) -> Project:
        """Resolve *name* through the cached projects before asking the API."""
        try:
            project_id = self._store.lookup_name("project", name.lower())
        except CacheMiss:
            pass
        else:
            debug(f"Name index hit: project '{name}' -> {project_id}")
            return self.get_project(project_id)

        project = self._inner.get_project_by_name(name)
        self._cache_project(project)
        return project

    def create_project(self, req: CreateProjectRequest) -> Project:
        project = self._inner.create_project(req)
        self._invalidate("create_project")
        self._cache_project(project)
        return project

    def archive_project(self, project_id: int) -> None:
        self._inner.archive_project(project_id)
        self._invalidate("archive_project")

    # ------------------------------------------------------------------ #
    # Tasks
    # ------------------------------------------------------------------ #

    def get_tasks(self, opts: Optional[TaskListOptions] = None) -> list[Task]:
        tasks = self._read_through(
            "tasks",
            tasks_key(opts),
            list[Task],
            lambda: self._inner.get_tasks(opts),
        )
        for task in tasks:
            self._index_task(task)
        return tasks

    def get_task(self, task_id: int) -> Task:
        task = self._read_through(
            "task",
            entity_key(task_id),
            Task,
            lambda: self._inner.get_task(task_id),
        )
        self._index_task(task)
        return task

    def get_task_by_name(self, project_id: int, name: str) -> Task:
        """Resolve *name* within *project_id* through the cached tasks first."""
        try:
            task_id = self._store.lookup_name("task", name.lower(), project_id)
        except CacheMiss:
            pass
        else:
            debug(f"Name index hit: task '{name}' in project {project_id} -> {task_id}")
            return self.get_task(task_id)

        task = self._inner.get_task_by_name(project_id, name)
        self._cache_task(task)
        return task

    def create_task(self, req: CreateTaskRequest) -> Task:
        task = self._inner.create_task(req)
        self._invalidate("create_task")
        self._cache_task(task)
        return task

    def complete_task(self, task_id: int) -> None:
        self._inner.complete_task(task_id)
        self._invalidate("complete_task")

    def get_task_lists(self, project_id: int) -> list[TaskList]:
        return self._read_through(
            "tasklists",
            tasklists_key(project_id),
            list[TaskList],
            lambda: self._inner.get_task_lists(project_id),
        )

    # ------------------------------------------------------------------ #
    # Time entries
    # ------------------------------------------------------------------ #

    def get_entries(self, opts: Optional[EntryListOptions] = None) -> list[TimeEntry]:
        return self._read_through(
            "entries",
            entries_key(opts),
            list[TimeEntry],
            lambda: self._inner.get_entries(opts),
        )

    def get_entry(self, entry_id: int) -> TimeEntry:
        return self._read_through(
            "entry",
            entity_key(entry_id),
            TimeEntry,
            lambda: self._inner.get_entry(entry_id),
        )

    def create_entry(self, req: CreateTimeEntryRequest) -> TimeEntry:
        entry = self._inner.create_entry(req)
        self._invalidate("create_entry")
        return entry

    def update_entry(self, entry_id: int, req: UpdateTimeEntryRequest) -> TimeEntry:
        entry = self._inner.update_entry(entry_id, req)
        self._invalidate("update_entry")
        return entry

    def delete_entry(self, entry_id: int) -> None:
        self._inner.delete_entry(entry_id)
        self._invalidate("delete_entry")

    def get_today_entries(self, user_id: int) -> list[TimeEntry]:
        return self._inner.get_today_entries(user_id)

    def get_active_entry(self, user_id: int) -> Optional[TimeEntry]:
        # Never cached, the running timer must always be live.
        return self._inner.get_active_entry(user_id)

    def start_entry(self, task_id: int, description: str = "") -> TimeEntry:
        entry = self._inner.start_entry(task_id, description)
        self._invalidate("start_entry")
        return entry

    def stop_entry(self, entry_id: int) -> TimeEntry:
        entry = self._inner.stop_entry(entry_id)
        self._invalidate("stop_entry")
        return entry

    # ------------------------------------------------------------------ #
    # Clients
    # ------------------------------------------------------------------ #

    def get_clients(self) -> list[PaymoClientRecord]:
        return self._read_through(
            "clients", ALL_KEY, list[PaymoClientRecord], self._inner.get_clients
        )

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _read_through(
        self,
        resource_type: str,
        key: str,
        as_type: Any,
        fetch: Callable[[], T],
    ) -> T:
        """Serve from cache, else fetch and store; fall back to stale data offline."""
        try:
            cached = self._store.get(resource_type, key, as_type)
        except CacheMiss:
            debug(f"Cache miss: {resource_type}/{key}")
        else:
            debug(f"Cache hit: {resource_type}/{key}")
            return cached

        try:
            result = fetch()
        except PaymoError as exc:
            if not is_transport_error(exc):
                raise
            return self._stale_or_raise(resource_type, key, as_type, exc)

        self._store.set(resource_type, key, result)
        return result

    def _stale_or_raise(
        self,
        resource_type: str,
        key: str,
        as_type: Any,
        exc: PaymoError,
    ) -> Any:
        try:
            stale = self._store.get_stale(resource_type, key, as_type)
        except CacheMiss:
            stale = _MISSING
        if stale is _MISSING:
            raise exc
        debug(f"API unreachable, serving stale {resource_type}/{key}: {exc}")
        return stale

    def _invalidate(self, operation: str) -> None:
        resource_types = INVALIDATIONS[operation]
        self._store.invalidate_type(*resource_types)
        debug(f"Cache invalidated after {operation}: {', '.join(resource_types)}")

    def _cache_project(self, project: Project) -> None:
        self._store.set("project", entity_key(project.id), project)
        self._index_project(project)

    def _cache_task(self, task: Task) -> None:
        self._store.set("task", entity_key(task.id), task)
        self._index_task(task)

    def _index_project(self, project: Project) -> None:
        self._store.index_name("project", project.name.lower(), project.id)

    def _index_task(self, task: Task) -> None:
        self._store.index_name("task", task.name.lower(), task.id, task.project_id)

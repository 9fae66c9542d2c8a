"""The resource-client contract shared by the HTTP client and the cache decorator.

:class:`PaymoAPI` lists every operation the CLI performs against Paymo.
:class:`~paymo.client.PaymoClient` implements it over HTTP and
:class:`~paymo.cache.CachedClient` implements it by wrapping another
``PaymoAPI``, so commands never know whether they talk to the cache.

Error contract: an implementation raises an
:class:`~paymo.exceptions.APIError` subclass when the server answered with
an error, and :class:`~paymo.exceptions.ConnectionError_` when the request
could not reach the server. The cache's stale fallback depends on that
distinction.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

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


@runtime_checkable
class PaymoAPI(Protocol):
    """Every Paymo operation used by the CLI."""

    # Auth
    def get_me(self) -> User: ...

    def validate_auth(self) -> None: ...

    # Projects
    def get_projects(self, opts: Optional[ProjectListOptions] = None) -> list[Project]: ...

    def get_project(self, project_id: int) -> Project: ...

    def get_project_by_name(self, name: str) -> Project: ...

    def create_project(self, req: CreateProjectRequest) -> Project: ...

    def archive_project(self, project_id: int) -> None: ...

    # Tasks
    def get_tasks(self, opts: Optional[TaskListOptions] = None) -> list[Task]: ...

    def get_task(self, task_id: int) -> Task: ...

    def get_task_by_name(self, project_id: int, name: str) -> Task: ...

    def create_task(self, req: CreateTaskRequest) -> Task: ...

    def complete_task(self, task_id: int) -> None: ...

    def get_task_lists(self, project_id: int) -> list[TaskList]: ...

    # Time entries
    def get_entries(self, opts: Optional[EntryListOptions] = None) -> list[TimeEntry]: ...

    def get_entry(self, entry_id: int) -> TimeEntry: ...

    def create_entry(self, req: CreateTimeEntryRequest) -> TimeEntry: ...

    def update_entry(self, entry_id: int, req: UpdateTimeEntryRequest) -> TimeEntry: ...

    def delete_entry(self, entry_id: int) -> None: ...

    def get_today_entries(self, user_id: int) -> list[TimeEntry]: ...

    def get_active_entry(self, user_id: int) -> Optional[TimeEntry]: ...

    def start_entry(self, task_id: int, description: str = "") -> TimeEntry: ...

    def stop_entry(self, entry_id: int) -> TimeEntry: ...

    # Clients
    def get_clients(self) -> list[PaymoClientRecord]: ...

"""Synchronous Paymo API client with auth, retry, rate limiting and error mapping.

This module provides :class:`PaymoClient`, the HTTP implementation of
:class:`~paymo.client.protocol.PaymoAPI`. It wraps :class:`httpx.Client`
and layers on:

- **Auth** -- the API key is sent as the basic-auth user name with a dummy
  password, which is how Paymo accepts API keys.
- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Rate limiting** -- reads the ``X-Ratelimit-*`` headers and waits for
  the decay period once the remaining budget hits zero.
- **Typed errors** -- error statuses become
  :class:`~paymo.exceptions.APIError` subclasses; network failures become
  :class:`~paymo.exceptions.ConnectionError_`. The cache layer relies on
  that split to decide when stale data may be served.

Paymo wraps every response in a collection envelope (``{"projects": [...]}``
even for a single project); the resource methods unwrap it and return
:mod:`paymo.models` instances.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter

from paymo.exceptions import (
    ConnectionError_,
    NotFoundError,
    ServerError,
    api_error_for_status,
)
from paymo.models import (
    ApiConfig,
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
from paymo.output import debug, warning

T = TypeVar("T")

_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
_INSECURE_OK = ("https://", "http://localhost", "http://127.0.0.1")


class PaymoClient:
    """Synchronous HTTP client for the Paymo API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        api_key: Paymo API key.
        config: Connection settings (base URL, timeout, retries, SSL verify).
        transport: Optional httpx transport, used by tests to serve canned
            responses through :class:`httpx.MockTransport`.

    Example::

        with PaymoClient(api_key, config.api) as client:
            projects = client.get_projects(ProjectListOptions(active_only=True))
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[ApiConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._config = config or ApiConfig()
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._base_url = self._config.base_url.rstrip("/")
        self._rate_remaining: Optional[int] = None
        self._rate_reset: float = 0.0

        if not self._base_url.startswith(_INSECURE_OK):
            warning(
                f"base URL {self._base_url!r} does not use HTTPS. "
                "Credentials may be transmitted insecurely."
            )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> PaymoClient:
        self._client = httpx.Client(
            base_url=self._base_url + "/",
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            auth=httpx.BasicAuth(self._api_key, "x"),
            headers={"Accept": "application/json"},
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Low-level request
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: Path relative to the base URL, e.g. ``"projects/12"``.
            params: Query parameters.
            json_body: JSON-serialisable body.

        Returns:
            The decoded JSON body, or ``None`` for an empty response.

        Raises:
            APIError: A subclass matching the error status.
            ConnectionError_: On network / timeout errors after all retries.
        """
        self._wait_for_rate_limit()
        response = self._execute_with_retry(method, path.lstrip("/"), params, json_body)
        self._update_rate_limit(response)
        self._map_response_error(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(
                f"invalid JSON in response to {method} {path}",
                status_code=response.status_code,
            ) from exc

    def _execute_with_retry(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]],
        json_body: Any,
    ) -> httpx.Response:
        """Execute the HTTP request with exponential-backoff retry.

        Retries on 5xx status codes and connection / timeout errors up to
        ``max_retries`` times. The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        max_retries = self._config.max_retries
        kwargs: dict[str, Any] = {"method": method, "url": path, "params": params}
        if json_body is not None:
            kwargs["json"] = json_body

        for attempt in range(max_retries + 1):
            try:
                response = self._client.request(**kwargs)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(delay)
                continue
            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        message = ""
        details: Optional[dict[str, Any]] = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            details = body
            msg = body.get("message")
            if isinstance(msg, str):
                message = msg

        raise api_error_for_status(status, message, details)

    def _update_rate_limit(self, response: httpx.Response) -> None:
        remaining = response.headers.get("X-Ratelimit-Remaining")
        if remaining is not None and remaining.isdigit():
            self._rate_remaining = int(remaining)
        decay = response.headers.get("X-Ratelimit-Decay-Period")
        if decay is not None and decay.isdigit():
            self._rate_reset = time.monotonic() + int(decay)

    def _wait_for_rate_limit(self) -> None:
        if self._rate_remaining != 0:
            return
        wait = self._rate_reset - time.monotonic()
        if wait > 0:
            debug(f"Rate limit reached, waiting {wait:.1f}s")
            time.sleep(wait)

    # ------------------------------------------------------------------ #
    # Auth
    # ------------------------------------------------------------------ #

    def get_me(self) -> User:
        """Return the user the API key belongs to."""
        data = self.request("GET", "me")
        return _first(data, "users", User, "no user found")

    def validate_auth(self) -> None:
        """Raise :class:`~paymo.exceptions.AuthError` if the API key is rejected."""
        self.get_me()

    # ------------------------------------------------------------------ #
    # Projects
    # ------------------------------------------------------------------ #

    def get_projects(self, opts: Optional[ProjectListOptions] = None) -> list[Project]:
        params: dict[str, Any] = {}
        if opts is not None:
            clauses = []
            if opts.active_only:
                clauses.append("active=true")
            if opts.client_id > 0:
                clauses.append(f"client_id={opts.client_id}")
            if opts.user_id > 0:
                clauses.append(f"users in ({opts.user_id})")
            _set_where(params, clauses)

            includes = []
            if opts.include_tasks:
                includes.append("tasklists.tasks")
            if opts.include_client:
                includes.append("client")
            _set_include(params, includes)

        data = self.request("GET", "projects", params=params)
        return _all(data, "projects", Project)

    def get_project(self, project_id: int) -> Project:
        data = self.request(
            "GET", f"projects/{project_id}", params={"include": "tasklists.tasks,client"}
        )
        return _first(data, "projects", Project, "project not found")

    def get_project_by_name(self, name: str) -> Project:
        """Return the first project whose name contains *name* (case-insensitive)."""
        params = {"where": f'name like "%{_sanitize(name)}%"'}
        data = self.request("GET", "projects", params=params)
        return _first(data, "projects", Project, "project not found")

    def create_project(self, req: CreateProjectRequest) -> Project:
        data = self.request("POST", "projects", json_body=_body(req))
        return _first(data, "projects", Project, "no project returned", status_code=500)

    def archive_project(self, project_id: int) -> None:
        self.request("PUT", f"projects/{project_id}", json_body={"active": False})

    # ------------------------------------------------------------------ #
    # Tasks
    # ------------------------------------------------------------------ #

    def get_tasks(self, opts: Optional[TaskListOptions] = None) -> list[Task]:
        """List tasks. Completed tasks are left out unless explicitly requested."""
        opts = opts or TaskListOptions()
        params: dict[str, Any] = {}
        clauses = []
        if opts.project_id > 0:
            clauses.append(f"project_id={opts.project_id}")
        if opts.tasklist_id > 0:
            clauses.append(f"tasklist_id={opts.tasklist_id}")
        if not opts.include_completed:
            clauses.append("complete=false")
        if opts.user_id > 0:
            clauses.append(f"users in ({opts.user_id})")
        _set_where(params, clauses)
        if opts.include_project:
            params["include"] = "project"

        data = self.request("GET", "tasks", params=params)
        return _all(data, "tasks", Task)

    def get_task(self, task_id: int) -> Task:
        data = self.request("GET", f"tasks/{task_id}", params={"include": "project"})
        return _first(data, "tasks", Task, "task not found")

    def get_task_by_name(self, project_id: int, name: str) -> Task:
        """Return the first task in *project_id* whose name contains *name*."""
        params = {"where": f'project_id={project_id} and name like "%{_sanitize(name)}%"'}
        data = self.request("GET", "tasks", params=params)
        return _first(data, "tasks", Task, "task not found")

    def create_task(self, req: CreateTaskRequest) -> Task:
        data = self.request("POST", "tasks", json_body=_body(req))
        return _first(data, "tasks", Task, "no task returned", status_code=500)

    def complete_task(self, task_id: int) -> None:
        self.request("PUT", f"tasks/{task_id}", json_body={"complete": True})

    def get_task_lists(self, project_id: int) -> list[TaskList]:
        data = self.request("GET", "tasklists", params={"where": f"project_id={project_id}"})
        return _all(data, "tasklists", TaskList)

    # ------------------------------------------------------------------ #
    # Time entries
    # ------------------------------------------------------------------ #

    def get_entries(self, opts: Optional[EntryListOptions] = None) -> list[TimeEntry]:
        params: dict[str, Any] = {}
        if opts is not None:
            clauses = []
            if opts.user_id > 0:
                clauses.append(f"user_id={opts.user_id}")
            if opts.project_id > 0:
                clauses.append(f"project_id={opts.project_id}")
            if opts.task_id > 0:
                clauses.append(f"task_id={opts.task_id}")
            if opts.start_date is not None:
                clauses.append(f'start_time>="{_utc(opts.start_date)}"')
            if opts.end_date is not None:
                clauses.append(f'start_time<="{_utc(opts.end_date)}"')
            _set_where(params, clauses)

            includes = []
            if opts.include_task:
                includes.append("task")
            if opts.include_project:
                includes.append("task.project")
            _set_include(params, includes)

        data = self.request("GET", "entries", params=params)
        return _all(data, "entries", TimeEntry)

    def get_entry(self, entry_id: int) -> TimeEntry:
        data = self.request("GET", f"entries/{entry_id}")
        return _first(data, "entries", TimeEntry, "entry not found")

    def create_entry(self, req: CreateTimeEntryRequest) -> TimeEntry:
        data = self.request("POST", "entries", json_body=_body(req))
        return _first(data, "entries", TimeEntry, "no entry returned", status_code=500)

    def update_entry(self, entry_id: int, req: UpdateTimeEntryRequest) -> TimeEntry:
        data = self.request("PUT", f"entries/{entry_id}", json_body=_body(req))
        return _first(data, "entries", TimeEntry, "no entry returned", status_code=500)

    def delete_entry(self, entry_id: int) -> None:
        self.request("DELETE", f"entries/{entry_id}")

    def get_today_entries(self, user_id: int) -> list[TimeEntry]:
        """Return the user's entries for the current local day, with task and project."""
        start = datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
        return self.get_entries(
            EntryListOptions(
                user_id=user_id,
                start_date=start,
                end_date=start + timedelta(days=1),
                include_task=True,
                include_project=True,
            )
        )

    def get_active_entry(self, user_id: int) -> Optional[TimeEntry]:
        """Return the user's running entry (no end time), or ``None``."""
        params = {
            "where": f'user_id={user_id} and end_time=""',
            "include": "task.project",
        }
        data = self.request("GET", "entries", params=params)
        entries = _all(data, "entries", TimeEntry)
        return entries[0] if entries else None

    def start_entry(self, task_id: int, description: str = "") -> TimeEntry:
        """Start a timer: an entry with a start time and no end time."""
        req = CreateTimeEntryRequest(
            task_id=task_id,
            start_time=_utc(datetime.now(timezone.utc)),
            description=description or None,
        )
        return self.create_entry(req)

    def stop_entry(self, entry_id: int) -> TimeEntry:
        """Stop a running timer by setting its end time to now."""
        req = UpdateTimeEntryRequest(end_time=_utc(datetime.now(timezone.utc)))
        return self.update_entry(entry_id, req)

    # ------------------------------------------------------------------ #
    # Clients
    # ------------------------------------------------------------------ #

    def get_clients(self) -> list[PaymoClientRecord]:
        data = self.request("GET", "clients")
        return _all(data, "clients", PaymoClientRecord)


# ------------------------------------------------------------------ #
# Module helpers
# ------------------------------------------------------------------ #


def _all(data: Any, envelope: str, model: type[T]) -> list[T]:
    items = data.get(envelope, []) if isinstance(data, dict) else []
    return TypeAdapter(list[model]).validate_python(items or [])  # type: ignore[valid-type]


def _first(
    data: Any,
    envelope: str,
    model: type[T],
    missing: str,
    status_code: int = 404,
) -> T:
    items = _all(data, envelope, model)
    if not items:
        if status_code == 404:
            raise NotFoundError(missing, status_code=404)
        raise ServerError(missing, status_code=status_code)
    return items[0]


def _body(req: BaseModel) -> dict[str, Any]:
    return req.model_dump(mode="json", exclude_none=True)


def _set_where(params: dict[str, Any], clauses: list[str]) -> None:
    if clauses:
        params["where"] = " and ".join(clauses)


def _set_include(params: dict[str, Any], includes: list[str]) -> None:
    if includes:
        params["include"] = ",".join(includes)


def _sanitize(name: str) -> str:
    """Strip characters that would break out of a quoted ``where`` literal."""
    for ch in ('"', "\\", "'"):
        name = name.replace(ch, "")
    return name


def _utc(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(_TIME_FORMAT)

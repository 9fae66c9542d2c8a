"""Canonical Pydantic models shared across all paymo modules.

This is the single source of truth for data shapes in the project. The
models fall into four groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ApiConfig`, :class:`CacheConfig` and :class:`GlobalConfig`.

**Resource models** -- entities returned by the Paymo API and stored in the
local cache:
    :class:`User`, :class:`Project`, :class:`PaymoClientRecord`,
    :class:`TaskList`, :class:`Task`, and :class:`TimeEntry`.

**Request models** -- JSON bodies for mutating calls:
    :class:`CreateProjectRequest`, :class:`CreateTaskRequest`,
    :class:`CreateTimeEntryRequest`, and :class:`UpdateTimeEntryRequest`.

**List options** -- filters for the list endpoints, also the input of
:mod:`paymo.cache.keys`:
    :class:`ProjectListOptions`, :class:`TaskListOptions`, and
    :class:`EntryListOptions`.

All models use Pydantic v2. Resource models ignore fields the API adds that
are not declared here, so a newer server never breaks cache decoding.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Config ---


class ApiConfig(BaseModel):
    """Connection settings for the Paymo API."""

    base_url: str = Field(
        default="https://app.paymoapp.com/api", description="API base URL"
    )
    api_key_source: str = Field(
        default="env:PAYMO_API_KEY",
        description="Credential source: env:VAR or file:/path",
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=3, description="Max retry attempts")


class CacheConfig(BaseModel):
    """Local response cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable the local cache")
    ttl_overrides: dict[str, int] = Field(
        default_factory=dict,
        description="Per resource type TTL in seconds, e.g. {'entries': 60}",
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/paymo/config.json``.

    Loaded by :func:`~paymo.config.load_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or
    CLI flags. See :func:`~paymo.config.resolve_config`.
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Resources ---


class _Resource(BaseModel):
    model_config = ConfigDict(extra="ignore")


class User(_Resource):
    """The authenticated Paymo user (``/me``)."""

    id: int
    name: str = ""
    email: str = ""
    type: str = ""
    active: bool = True
    timezone: str = ""
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class Project(_Resource):
    """A Paymo project."""

    id: int
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[int] = None
    active: bool = True
    billable: bool = False
    budget_hours: Optional[float] = None
    price_per_hour: Optional[float] = None
    color: Optional[str] = None
    users: list[int] = Field(default_factory=list)
    managers: list[int] = Field(default_factory=list)
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class PaymoClientRecord(_Resource):
    """A Paymo client (the customer a project is billed to).

    Named to avoid confusion with the HTTP client classes.
    """

    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    active: bool = True
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class TaskList(_Resource):
    """A task list grouping tasks inside a project."""

    id: int
    name: str
    project_id: int
    seq: int = 0
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class Task(_Resource):
    """A Paymo task. ``project_id`` is the parent used by name lookups."""

    id: int
    name: str
    code: Optional[str] = None
    project_id: int
    tasklist_id: int = 0
    description: Optional[str] = None
    complete: bool = False
    billable: bool = False
    due_date: Optional[str] = None
    users: list[int] = Field(default_factory=list)
    priority: Optional[int] = None
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class TimeEntry(_Resource):
    """A time entry. A running timer has no ``end_time``."""

    id: int
    task_id: int
    user_id: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: int = Field(default=0, description="Duration in seconds")
    description: Optional[str] = None
    billable: bool = False
    billed: bool = False
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None
    task: Optional[Task] = None
    project: Optional[Project] = None


# --- Requests ---


class CreateProjectRequest(BaseModel):
    """Body of ``POST /projects``."""

    name: str
    client_id: Optional[int] = None
    description: Optional[str] = None
    billable: bool = False
    budget_hours: Optional[float] = None
    price_per_hour: Optional[float] = None


class CreateTaskRequest(BaseModel):
    """Body of ``POST /tasks``."""

    name: str
    project_id: int
    tasklist_id: Optional[int] = None
    description: Optional[str] = None
    billable: bool = False
    due_date: Optional[str] = None


class CreateTimeEntryRequest(BaseModel):
    """Body of ``POST /entries``. Omitting ``end_time`` starts a timer."""

    task_id: int
    start_time: str
    end_time: Optional[str] = None
    duration: Optional[int] = None
    description: Optional[str] = None


class UpdateTimeEntryRequest(BaseModel):
    """Body of ``PUT /entries/{id}``. Unset fields are left unchanged."""

    task_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    description: Optional[str] = None


# --- List options ---


class ProjectListOptions(BaseModel):
    """Filters for :meth:`~paymo.client.PaymoAPI.get_projects`."""

    active_only: bool = False
    client_id: int = 0
    user_id: int = 0
    include_tasks: bool = False
    include_client: bool = False


class TaskListOptions(BaseModel):
    """Filters for :meth:`~paymo.client.PaymoAPI.get_tasks`.

    Completed tasks are excluded unless ``include_completed`` is set.
    """

    project_id: int = 0
    tasklist_id: int = 0
    user_id: int = 0
    include_completed: bool = False
    include_project: bool = False


class EntryListOptions(BaseModel):
    """Filters for :meth:`~paymo.client.PaymoAPI.get_entries`."""

    user_id: int = 0
    project_id: int = 0
    task_id: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    include_task: bool = False
    include_project: bool = False

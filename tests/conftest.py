"""Shared test fixtures for paymo.

Provides isolated config/cache directories, output state management, a
controllable clock for the cache store, an in-memory :class:`FakePaymoAPI`
and a CLI runner. These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Optional

import pytest

from paymo.exceptions import NotFoundError
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
from paymo.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config or cache. Clears all PAYMO_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("paymo.config._is_xdg_platform", lambda: True)

    for var in ["PAYMO_API_KEY", "PAYMO_BASE_URL", "PAYMO_NO_CACHE", "NO_COLOR"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def verbose_output() -> OutputManager:
    """Install a verbose, colourless OutputManager so debug lines reach stderr."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """A settable epoch clock for :class:`~paymo.cache.CacheStore`."""

    def __init__(self, now: float = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "cache.json"


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


class FakePaymoAPI:
    """In-memory :class:`~paymo.client.PaymoAPI` that counts calls.

    ``calls`` counts invocations per method name. Setting ``fail_with`` to
    an exception instance makes every subsequent call raise it.
    """

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.fail_with: Optional[Exception] = None
        self.me = User(id=1, name="Ada Lovelace", email="ada@example.com")
        self.projects = [
            Project(id=10, name="Website Redesign", active=True, client_id=100),
            Project(id=11, name="Mobile App", active=True, client_id=101),
        ]
        self.tasks = [
            Task(id=20, name="Design mockups", project_id=10),
            Task(id=21, name="Implement API", project_id=11),
        ]
        self.tasklists = [TaskList(id=30, name="Backlog", project_id=10)]
        self.entries = [
            TimeEntry(id=40, task_id=20, user_id=1, description="kickoff", duration=3600),
        ]
        self.clients = [
            PaymoClientRecord(id=100, name="Acme"),
            PaymoClientRecord(id=101, name="Globex"),
        ]
        self.active: Optional[TimeEntry] = None
        self._next_id = 1000

    def _call(self, name: str) -> None:
        self.calls[name] += 1
        if self.fail_with is not None:
            raise self.fail_with

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # Auth

    def get_me(self) -> User:
        self._call("get_me")
        return self.me

    def validate_auth(self) -> None:
        self._call("validate_auth")

    # Projects

    def get_projects(self, opts: Optional[ProjectListOptions] = None) -> list[Project]:
        self._call("get_projects")
        if opts is not None and opts.active_only:
            return [p for p in self.projects if p.active]
        return list(self.projects)

    def get_project(self, project_id: int) -> Project:
        self._call("get_project")
        for project in self.projects:
            if project.id == project_id:
                return project
        raise NotFoundError("project not found", status_code=404)

    def get_project_by_name(self, name: str) -> Project:
        self._call("get_project_by_name")
        for project in self.projects:
            if name.lower() in project.name.lower():
                return project
        raise NotFoundError(f"project '{name}' not found", status_code=404)

    def create_project(self, req: CreateProjectRequest) -> Project:
        self._call("create_project")
        project = Project(id=self._new_id(), name=req.name, active=True)
        self.projects.append(project)
        return project

    def archive_project(self, project_id: int) -> None:
        self._call("archive_project")
        self.projects = [
            p.model_copy(update={"active": False}) if p.id == project_id else p
            for p in self.projects
        ]

    # Tasks

    def get_tasks(self, opts: Optional[TaskListOptions] = None) -> list[Task]:
        self._call("get_tasks")
        opts = opts or TaskListOptions()
        tasks = self.tasks
        if opts.project_id:
            tasks = [t for t in tasks if t.project_id == opts.project_id]
        if not opts.include_completed:
            tasks = [t for t in tasks if not t.complete]
        return list(tasks)

    def get_task(self, task_id: int) -> Task:
        self._call("get_task")
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise NotFoundError("task not found", status_code=404)

    def get_task_by_name(self, project_id: int, name: str) -> Task:
        self._call("get_task_by_name")
        for task in self.tasks:
            if task.project_id == project_id and name.lower() in task.name.lower():
                return task
        raise NotFoundError(f"task '{name}' not found", status_code=404)

    def create_task(self, req: CreateTaskRequest) -> Task:
        self._call("create_task")
        task = Task(id=self._new_id(), name=req.name, project_id=req.project_id)
        self.tasks.append(task)
        return task

    def complete_task(self, task_id: int) -> None:
        self._call("complete_task")
        self.tasks = [
            t.model_copy(update={"complete": True}) if t.id == task_id else t
            for t in self.tasks
        ]

    def get_task_lists(self, project_id: int) -> list[TaskList]:
        self._call("get_task_lists")
        return [tl for tl in self.tasklists if tl.project_id == project_id]

    # Time entries

    def get_entries(self, opts: Optional[EntryListOptions] = None) -> list[TimeEntry]:
        self._call("get_entries")
        return list(self.entries)

    def get_entry(self, entry_id: int) -> TimeEntry:
        self._call("get_entry")
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        raise NotFoundError("entry not found", status_code=404)

    def create_entry(self, req: CreateTimeEntryRequest) -> TimeEntry:
        self._call("create_entry")
        entry = TimeEntry(id=self._new_id(), task_id=req.task_id, description=req.description)
        self.entries.append(entry)
        return entry

    def update_entry(self, entry_id: int, req: UpdateTimeEntryRequest) -> TimeEntry:
        self._call("update_entry")
        return self.get_entry(entry_id)

    def delete_entry(self, entry_id: int) -> None:
        self._call("delete_entry")
        self.entries = [e for e in self.entries if e.id != entry_id]

    def get_today_entries(self, user_id: int) -> list[TimeEntry]:
        self._call("get_today_entries")
        return list(self.entries)

    def get_active_entry(self, user_id: int) -> Optional[TimeEntry]:
        self._call("get_active_entry")
        return self.active

    def start_entry(self, task_id: int, description: str = "") -> TimeEntry:
        self._call("start_entry")
        self.active = TimeEntry(id=self._new_id(), task_id=task_id, description=description)
        return self.active

    def stop_entry(self, entry_id: int) -> TimeEntry:
        self._call("stop_entry")
        stopped = self.active or self.get_entry(entry_id)
        self.active = None
        return stopped

    # Clients

    def get_clients(self) -> list[PaymoClientRecord]:
        self._call("get_clients")
        return list(self.clients)


@pytest.fixture
def fake_api() -> FakePaymoAPI:
    return FakePaymoAPI()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

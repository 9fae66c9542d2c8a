"""Tests for cache key derivation."""

from __future__ import annotations

from datetime import datetime

from paymo.cache.keys import (
    ALL_KEY,
    entity_key,
    entries_key,
    projects_key,
    tasklists_key,
    tasks_key,
)
from paymo.models import EntryListOptions, ProjectListOptions, TaskListOptions


class TestProjectsKey:
    def test_none_is_all(self) -> None:
        assert projects_key(None) == ALL_KEY

    def test_default_options_is_all(self) -> None:
        assert projects_key(ProjectListOptions()) == ALL_KEY

    def test_fields_in_fixed_order(self) -> None:
        opts = ProjectListOptions(
            active_only=True, client_id=5, user_id=3, include_tasks=True, include_client=True
        )
        assert projects_key(opts) == "active=true|client=5|user=3|inc_tasks|inc_client"

    def test_distinct_filters_give_distinct_keys(self) -> None:
        assert projects_key(ProjectListOptions(client_id=5)) != projects_key(
            ProjectListOptions(user_id=5)
        )


class TestTasksKey:
    def test_none_and_default_share_all(self) -> None:
        assert tasks_key(None) == ALL_KEY
        assert tasks_key(TaskListOptions()) == ALL_KEY

    def test_completed_only_when_requested(self) -> None:
        assert tasks_key(TaskListOptions(project_id=12)) == "project=12"
        assert (
            tasks_key(TaskListOptions(project_id=12, include_completed=True))
            == "project=12|completed=true"
        )

    def test_all_fields(self) -> None:
        opts = TaskListOptions(
            project_id=1, tasklist_id=2, user_id=3, include_completed=True, include_project=True
        )
        assert tasks_key(opts) == "project=1|tasklist=2|user=3|completed=true|inc_project"

    def test_non_positive_ids_are_ignored(self) -> None:
        assert tasks_key(TaskListOptions(project_id=0, user_id=-1)) == ALL_KEY


class TestEntriesKey:
    def test_none_is_all(self) -> None:
        assert entries_key(None) == ALL_KEY
        assert entries_key(EntryListOptions()) == ALL_KEY

    def test_dates_use_day_granularity(self) -> None:
        morning = EntryListOptions(user_id=3, start_date=datetime(2024, 3, 1, 8, 0))
        evening = EntryListOptions(user_id=3, start_date=datetime(2024, 3, 1, 22, 30))
        assert entries_key(morning) == "user=3|start=2024-03-01"
        assert entries_key(morning) == entries_key(evening)

    def test_all_fields(self) -> None:
        opts = EntryListOptions(
            user_id=1,
            project_id=2,
            task_id=3,
            start_date=datetime(2024, 1, 1),
            end_date=datetime(2024, 1, 31),
            include_task=True,
            include_project=True,
        )
        assert entries_key(opts) == (
            "user=1|project=2|task=3|start=2024-01-01|end=2024-01-31|inc_task|inc_project"
        )

    def test_deterministic(self) -> None:
        opts = EntryListOptions(project_id=7, end_date=datetime(2024, 5, 5))
        assert entries_key(opts) == entries_key(opts.model_copy())


def test_entity_key() -> None:
    assert entity_key(42) == "42"


def test_tasklists_key() -> None:
    assert tasklists_key(12) == "project=12"

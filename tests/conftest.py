"""Shared test fixtures for the agenda engine tests."""

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure the repository root is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.agenda.config import AgendaConfig
from pkg.agenda.ordering import SortClock
from pkg.agenda.planner import AgendaPlanner
from pkg.agenda.schema import Task
from pkg.agenda.store import MemoryStorage

MONDAY = date(2024, 1, 1)


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


def make_task(task_id, day="2024-01-01", name=None, **kwargs):
    return Task(id=task_id, name=name or task_id, date=day, **kwargs)


@pytest.fixture
def clock():
    return SortClock(FakeClock())


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def planner(storage, clock):
    """Planner over an empty collection, anchored on Monday 2024-01-01."""
    storage.data["calendar_tasks_v1"] = [
        {"id": "placeholder", "name": "x", "date": "2023-12-01", "done": True},
    ]
    p = AgendaPlanner(
        storage,
        config=AgendaConfig(search_defer_ms=10_000),
        today=lambda: MONDAY,
        clock=clock,
    )
    p.load()
    storage.saves.clear()
    return p

"""Tests for drag-to-reschedule."""
import pytest

from conftest import FakeClock, make_task
from pkg.agenda.ordering import SortClock
from pkg.agenda.scheduling import InvalidDragTarget, reschedule, resolve_drop


class TestResolveDrop:

    def test_valid_payload(self):
        assert resolve_drop({"taskId": "a"}, {"dateKey": "2024-01-03"}) == ("a", "2024-01-03")

    @pytest.mark.parametrize("active,over", [
        (None, {"dateKey": "2024-01-03"}),
        ({"taskId": "a"}, None),
        ({}, {"dateKey": "2024-01-03"}),
        ({"taskId": "  "}, {"dateKey": "2024-01-03"}),
        ({"taskId": "a"}, {"dateKey": ""}),
        ({"taskId": "a"}, {"dateKey": "2024-02-30"}),
        ({"taskId": "a"}, {"dateKey": "3/1/2024"}),
        ({"taskId": 7}, {"dateKey": "2024-01-03"}),
    ])
    def test_unresolvable_payloads(self, active, over):
        with pytest.raises(InvalidDragTarget):
            resolve_drop(active, over)


class TestReschedule:

    def setup_method(self):
        self.fake = FakeClock(1_000)
        self.clock = SortClock(self.fake)
        self.tasks = [
            make_task("a", day="2024-01-01", sort_order=self.clock.next()),
            make_task("b", day="2024-01-03", sort_order=self.clock.next()),
        ]

    def test_moves_and_appends(self):
        result = reschedule(self.tasks, "a", "2024-01-03", self.clock)
        moved = next(t for t in result if t.id == "a")
        assert moved.date == "2024-01-03"
        assert moved.sort_order > max(t.sort_order for t in self.tasks)

    def test_lands_after_existing_tasks_in_target_day(self):
        self.fake.now = 5_000
        result = reschedule(self.tasks, "a", "2024-01-03", self.clock)
        day = sorted((t for t in result if t.date == "2024-01-03"), key=lambda t: t.sort_order)
        assert [t.id for t in day] == ["b", "a"]

    def test_same_day_is_noop(self):
        assert reschedule(self.tasks, "a", "2024-01-01", self.clock) is self.tasks

    def test_unknown_task_is_noop(self):
        assert reschedule(self.tasks, "zzz", "2024-01-05", self.clock) is self.tasks

    def test_other_tasks_keep_identity(self):
        result = reschedule(self.tasks, "a", "2024-01-05", self.clock)
        assert result[1] is self.tasks[1]
        assert self.tasks[0].date == "2024-01-01"

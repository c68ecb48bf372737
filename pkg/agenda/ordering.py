"""
Manual ordering of tasks (sortOrder).

New tasks and rescheduled tasks get a fresh timestamp, which sorts them
after everything already in the view. Dragging inside one list renumbers
the visible tasks 0..n-1 in their new order.
"""
import time
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .extractor import fold
from .schema import Task


class SortClock:
    """Millisecond timestamps, strictly increasing per clock instance."""

    def __init__(self, now_ms: Optional[Callable[[], int]] = None):
        self._now_ms = now_ms or (lambda: int(time.time() * 1000))
        self._last: Optional[int] = None

    def next(self) -> int:
        value = int(self._now_ms())
        if self._last is not None and value <= self._last:
            value = self._last + 1
        self._last = value
        return value

    @property
    def last(self) -> Optional[int]:
        return self._last


def sort_key(task: Task) -> Tuple[bool, float, str]:
    """Order inside a day bucket or flat list: sortOrder, unset last, then name."""
    has_order = task.sort_order is not None
    return (not has_order, task.sort_order if has_order else 0, fold(task.name))


def sort_tasks(tasks: Sequence[Task]) -> List[Task]:
    return sorted(tasks, key=sort_key)


def move_to_index(visible_ids: Sequence[str], active_id: str, new_index: int) -> List[str]:
    """Remove active_id and reinsert it at new_index (clamped)."""
    ids = list(visible_ids)
    ids.remove(active_id)
    new_index = max(0, min(new_index, len(ids)))
    ids.insert(new_index, active_id)
    return ids


def renumber(tasks: List[Task], ordered_ids: Sequence[str]) -> List[Task]:
    """
    Give each task in ordered_ids sortOrder = its index.

    Returns a new list; tasks outside ordered_ids keep their object
    and their sortOrder.
    """
    positions: Dict[str, int] = {task_id: i for i, task_id in enumerate(ordered_ids)}
    return [
        replace(task, sort_order=positions[task.id]) if task.id in positions else task
        for task in tasks
    ]


def reorder(
    tasks: List[Task],
    visible_ids: Sequence[str],
    active_id: str,
    over_id: str,
) -> List[Task]:
    """
    Drop active_id onto over_id's position within one visible list.

    No-op (same list object back) when the ids are equal or either one
    is not part of the visible list.
    """
    if active_id == over_id:
        return tasks
    ids = list(visible_ids)
    if active_id not in ids or over_id not in ids:
        return tasks
    next_ids = move_to_index(ids, active_id, ids.index(over_id))
    return renumber(tasks, next_ids)

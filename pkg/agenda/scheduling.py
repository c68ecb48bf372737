"""
Drag-to-reschedule between agenda day buckets.

The drag layer hands over two opaque payloads: the data attached to the
dragged card ({"taskId": ...}) and the data attached to the bucket it
was dropped on ({"dateKey": ...}). A valid drop moves the task to that
day and appends it after the day's existing tasks.
"""
from dataclasses import replace
from typing import Any, List, Mapping, Optional, Tuple

from .ordering import SortClock
from .schema import Task, is_date_key


class InvalidDragTarget(Exception):
    """Raised when a drop cannot be resolved to a task id and a day."""
    pass


def resolve_drop(
    active: Optional[Mapping[str, Any]],
    over: Optional[Mapping[str, Any]],
) -> Tuple[str, str]:
    """
    Extract (task_id, date_key) from the drag payloads.

    Raises InvalidDragTarget if either side is missing, blank, or the
    date key is not a calendar day.
    """
    task_id = (active or {}).get("taskId")
    date_key = (over or {}).get("dateKey")
    if not isinstance(task_id, str) or not task_id.strip():
        raise InvalidDragTarget("Drag source carries no task id")
    if not isinstance(date_key, str) or not date_key.strip():
        raise InvalidDragTarget("Drop target carries no date key")
    if not is_date_key(date_key):
        raise InvalidDragTarget(f"Drop target date key is not a day: {date_key!r}")
    return task_id, date_key


def reschedule(
    tasks: List[Task],
    task_id: str,
    date_key: str,
    clock: SortClock,
) -> List[Task]:
    """
    Move task_id to date_key with a fresh sortOrder.

    Returns the same list object when nothing changes (unknown task, or
    already on that day).
    """
    current = next((t for t in tasks if t.id == task_id), None)
    if current is None or current.date == date_key:
        return tasks
    moved = replace(current, date=date_key, sort_order=clock.next())
    return [moved if t.id == task_id else t for t in tasks]

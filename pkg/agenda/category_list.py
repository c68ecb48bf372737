"""
Flat, date-agnostic list of one category's pending tasks.

Shown instead of the agenda while exactly one category chip is selected.
Ordering is the same as inside a day bucket.
"""
from typing import Sequence, Tuple

from .agenda import ProjectionCache, matches_search, normalize_search
from .ordering import sort_key
from .schema import Task


def project_category_list(
    tasks: Sequence[Task],
    category_id: str,
    search: str = "",
) -> Tuple[Task, ...]:
    term = normalize_search(search)
    selected = [
        task for task in tasks
        if not task.done
        and category_id in task.category_ids
        and matches_search(task, term)
    ]
    return tuple(sorted(selected, key=sort_key))


def cached_category_list(
    cache: ProjectionCache,
    tasks: Sequence[Task],
    category_id: str,
    search: str = "",
) -> Tuple[Task, ...]:
    """Memoized project_category_list()."""
    term = normalize_search(search)
    return cache.get_or_build(
        "category_list",
        (category_id, term),
        tasks,
        lambda: project_category_list(tasks, category_id, term),
    )

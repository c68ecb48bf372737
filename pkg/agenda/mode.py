"""
View mode: rolling agenda vs. single-category flat list.

- All categories agenda: day buckets for the whole window (initial state)
- Single category list: one category's tasks, ignoring dates

Switching modes never touches task data.
"""
from enum import Enum
from typing import Iterable, List, Optional


class ViewMode(Enum):
    """Which projection is rendered."""
    ALL_CATEGORIES_AGENDA = "agenda"
    SINGLE_CATEGORY_LIST = "category_list"


class ViewModeManager:
    """Tracks the category filter and derives the view mode from it."""

    def __init__(self, category_filter: Optional[Iterable[str]] = None):
        """Initialize with a (possibly persisted) category filter."""
        self.category_filter: List[str] = list(category_filter or [])

    @property
    def mode(self) -> ViewMode:
        if len(self.category_filter) == 1:
            return ViewMode.SINGLE_CATEGORY_LIST
        return ViewMode.ALL_CATEGORIES_AGENDA

    @property
    def selected_category_id(self) -> Optional[str]:
        """The active single category, or None outside category list mode."""
        if self.mode == ViewMode.SINGLE_CATEGORY_LIST:
            return self.category_filter[0]
        return None

    def select(self, category_ids: Iterable[str]) -> ViewMode:
        """Replace the filter. Exactly one id means category list mode."""
        self.category_filter = [c for c in category_ids if c]
        return self.mode

    def toggle(self, category_id: str) -> ViewMode:
        """Chip click: select this category alone, or clear it if already selected."""
        if self.category_filter == [category_id]:
            return self.clear()
        return self.select([category_id])

    def clear(self) -> ViewMode:
        self.category_filter = []
        return self.mode

    def today(self) -> ViewMode:
        """The "today" action always returns to the agenda."""
        return self.clear()

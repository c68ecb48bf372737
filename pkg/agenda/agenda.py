"""
Rolling N-day agenda.

build_agenda() is pure: anchor day, window length, task collection and
search term in, one DaySection per day out. Every day of the window is
present even when empty; tasks dated outside the window never appear.

ProjectionCache memoizes projections on (inputs, collection identity) so
re-running on every search keystroke is cheap. Callers must replace the
collection list on mutation (never mutate it in place) for identity to
track content.
"""
import re
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from .config import MAX_WINDOW_LENGTH
from .extractor import fold
from .ordering import sort_key
from .schema import DaySection, Task, format_date_key


_MARKUP_RE = re.compile(r"<[^>]+>")


def normalize_search(term: Optional[str]) -> str:
    """Folded, trimmed search term ("" = no filtering)."""
    return fold(term or "").strip()


def strip_markup(value: str) -> str:
    return _MARKUP_RE.sub(" ", value or "")


def search_haystack(task: Task) -> str:
    """Everything a search term is matched against, folded."""
    parts = [
        task.name,
        task.link,
        task.location,
        strip_markup(task.description_html),
        " ".join(s.title for s in task.subtasks),
    ]
    return fold(" ".join(p for p in parts if p))


def matches_search(task: Task, term: str) -> bool:
    """term must already be normalized."""
    if not term:
        return True
    return term in search_haystack(task)


def normalize_anchor(anchor: date) -> date:
    """Midnight of the anchor day."""
    if isinstance(anchor, datetime):
        return anchor.date()
    return anchor


def window_keys(anchor: date, days: int) -> List[Tuple[str, date]]:
    """(dateKey, date) for anchor .. anchor+days-1; days clamped to 1..30."""
    start = normalize_anchor(anchor)
    count = max(1, min(MAX_WINDOW_LENGTH, int(days)))
    result = []
    for offset in range(count):
        day = start + timedelta(days=offset)
        result.append((format_date_key(day), day))
    return result


def build_agenda(
    anchor: date,
    days: int,
    tasks: Sequence[Task],
    search: str = "",
) -> Tuple[DaySection, ...]:
    """Bucket pending tasks into the agenda window, ordered within each day."""
    term = normalize_search(search)
    keys = window_keys(anchor, days)
    wanted = {key for key, _ in keys}

    buckets: Dict[str, List[Task]] = {key: [] for key in wanted}
    for task in tasks:
        if task.done or task.date not in wanted:
            continue
        if not matches_search(task, term):
            continue
        buckets[task.date].append(task)

    return tuple(
        DaySection(
            date_key=key,
            date=day,
            tasks=tuple(sorted(buckets[key], key=sort_key)),
        )
        for key, day in keys
    )


class ProjectionCache:
    """
    Small LRU memo for view projections.

    Entries are keyed on the caller's hashable inputs plus the identity of
    the task collection; the collection is held so its id cannot be reused
    while the entry lives.
    """

    def __init__(self, max_entries: int = 8):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[Hashable, ...], Tuple[Any, Any]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get_or_build(
        self,
        name: str,
        params: Tuple[Hashable, ...],
        tasks: Sequence[Task],
        build: Callable[[], Any],
    ) -> Any:
        key = (name, params, id(tasks))
        entry = self._entries.get(key)
        if entry is not None and entry[0] is tasks:
            self._entries.move_to_end(key)
            self.hits += 1
            return entry[1]

        self.misses += 1
        result = build()
        self._entries[key] = (tasks, result)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return result

    def agenda(
        self,
        anchor: date,
        days: int,
        tasks: Sequence[Task],
        search: str = "",
    ) -> Tuple[DaySection, ...]:
        """Memoized build_agenda()."""
        start = normalize_anchor(anchor)
        term = normalize_search(search)
        return self.get_or_build(
            "agenda",
            (start, int(days), term),
            tasks,
            lambda: build_agenda(start, days, tasks, term),
        )

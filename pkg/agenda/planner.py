"""
AgendaPlanner: the one place that owns agenda state.

Holds the task collection, categories, category filter (view mode),
window length, anchor day and search input; applies every mutation
synchronously and hands whole collections to the storage gateway.

Projections are computed by the pure builders with state passed in
explicitly; the planner never lets them read globals.

Events (subscribe(event, callback)):
  tasks_changed      tasks=<list>
  task_completed     task=<Task>, notice=<CompletionNotice>
  view_mode_changed  mode=<ViewMode>
"""
import logging
import time
import uuid
from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .agenda import ProjectionCache
from .category_list import cached_category_list
from .config import (
    AgendaConfig,
    STORAGE_AGENDA_DAYS_COUNT,
    STORAGE_CATEGORIES,
    STORAGE_CATEGORY_FILTER,
    STORAGE_COMPLETED_TASKS,
    STORAGE_TASKS,
    normalize_window_length,
)
from .deferred import DeferredValue
from .extractor import extract_inline_date
from .mode import ViewMode, ViewModeManager
from .ordering import SortClock, reorder
from .scheduling import InvalidDragTarget, reschedule, resolve_drop
from .schema import (
    Category,
    CompletionNotice,
    DaySection,
    MalformedStoredData,
    Task,
    categories_from_payload,
    format_date_key,
    is_date_key,
    tasks_from_payload,
)
from .seed import create_seed_tasks, default_categories, should_replace_with_seed
from .store import UserStorage

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS = 50


def make_notice_id() -> str:
    """Sortable unique notification ID (ms timestamp + random hex)."""
    ts = int(time.time() * 1000)
    return f"notif-{ts}-{uuid.uuid4().hex[:8]}"


class AgendaPlanner:
    """Agenda state owner: mutations, projections and persistence."""

    def __init__(
        self,
        storage: UserStorage,
        config: Optional[AgendaConfig] = None,
        today: Optional[Callable[[], date]] = None,
        clock: Optional[SortClock] = None,
    ):
        self.storage = storage
        self.config = config or AgendaConfig()
        self._today = today or date.today
        self.clock = clock or SortClock()

        self.tasks: List[Task] = []
        self.categories: List[Category] = []
        self.notifications: List[CompletionNotice] = []
        self.view = ViewModeManager()
        self.window_days = normalize_window_length(self.config.default_window_days)
        self.anchor: date = self._today()
        self.search: DeferredValue[str] = DeferredValue(
            "", delay_secs=self.config.search_defer_ms / 1000.0
        )
        self.cache = ProjectionCache()
        self.subscribers: Dict[str, list] = {}

    # ── events ─────────────────────────────────────────────────

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        self.subscribers.setdefault(event_type, []).append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        for callback in self.subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

    # ── loading ────────────────────────────────────────────────

    def load(self) -> None:
        """Restore all state from storage, seeding defaults where nothing usable is stored."""
        self._load_tasks()
        self._load_categories()
        self._load_filter()
        self._load_window_days()
        self._load_notifications()

    def _load_tasks(self) -> None:
        payload = self.storage.load(STORAGE_TASKS)
        if not should_replace_with_seed(payload):
            try:
                self.tasks = tasks_from_payload(payload)
                logger.info(f"Loaded {len(self.tasks)} tasks")
                return
            except MalformedStoredData as e:
                logger.warning(f"Discarding stored tasks: {e}")
                self.storage.discard(STORAGE_TASKS)
        self.tasks = create_seed_tasks(self._today())
        logger.info(f"Seeded {len(self.tasks)} sample tasks")
        self._persist_tasks()

    def _load_categories(self) -> None:
        payload = self.storage.load(STORAGE_CATEGORIES)
        if payload:
            try:
                self.categories = categories_from_payload(payload)
                return
            except MalformedStoredData as e:
                logger.warning(f"Discarding stored categories: {e}")
                self.storage.discard(STORAGE_CATEGORIES)
        self.categories = default_categories()
        self._persist_categories()

    def _load_filter(self) -> None:
        payload = self.storage.load(STORAGE_CATEGORY_FILTER)
        if payload is None:
            return
        if isinstance(payload, list) and all(isinstance(c, str) for c in payload):
            self.view.select(payload)
            return
        logger.warning("Discarding stored category filter: not a list of ids")
        self.storage.discard(STORAGE_CATEGORY_FILTER)

    def _load_window_days(self) -> None:
        payload = self.storage.load(STORAGE_AGENDA_DAYS_COUNT)
        if payload is not None:
            self.window_days = normalize_window_length(payload)

    def _load_notifications(self) -> None:
        payload = self.storage.load(STORAGE_COMPLETED_TASKS)
        if payload is None:
            return
        try:
            if not isinstance(payload, list):
                raise MalformedStoredData("Notification feed must be a list")
            self.notifications = [CompletionNotice.from_dict(n) for n in payload]
        except MalformedStoredData as e:
            logger.warning(f"Discarding stored notifications: {e}")
            self.storage.discard(STORAGE_COMPLETED_TASKS)
            self.notifications = []

    # ── persistence ────────────────────────────────────────────

    def _persist_tasks(self) -> None:
        self.storage.save(STORAGE_TASKS, [t.to_dict() for t in self.tasks])

    def _persist_categories(self) -> None:
        self.storage.save(STORAGE_CATEGORIES, [c.to_dict() for c in self.categories])

    def _persist_filter(self) -> None:
        self.storage.save(STORAGE_CATEGORY_FILTER, list(self.view.category_filter))

    def _persist_notifications(self) -> None:
        self.storage.save(STORAGE_COMPLETED_TASKS, [n.to_dict() for n in self.notifications])

    def _set_tasks(self, tasks: List[Task]) -> bool:
        """Install a new collection (never mutate in place). Returns False if unchanged."""
        if tasks is self.tasks:
            return False
        self.tasks = tasks
        self._persist_tasks()
        self._emit("tasks_changed", tasks=tasks)
        return True

    def close(self) -> None:
        """Push pending writes out. Call on shutdown."""
        self.storage.flush()

    # ── projections ────────────────────────────────────────────

    @property
    def mode(self) -> ViewMode:
        return self.view.mode

    @property
    def today(self) -> date:
        return self._today()

    def sections(self) -> Tuple[DaySection, ...]:
        """Agenda day sections; empty while in category list mode."""
        if self.mode != ViewMode.ALL_CATEGORIES_AGENDA:
            return ()
        return self.cache.agenda(self.anchor, self.window_days, self.tasks, self.search.deferred)

    def category_list(self) -> Tuple[Task, ...]:
        """Flat list for the selected category; empty while in agenda mode."""
        category_id = self.view.selected_category_id
        if category_id is None:
            return ()
        return cached_category_list(self.cache, self.tasks, category_id, self.search.deferred)

    def visible_ids(self, date_key: Optional[str] = None) -> List[str]:
        """Ids in display order for the current flat list, or one day bucket."""
        if self.mode == ViewMode.SINGLE_CATEGORY_LIST:
            return [t.id for t in self.category_list()]
        for section in self.sections():
            if section.date_key == date_key:
                return [t.id for t in section.tasks]
        return []

    def get_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    # ── task mutations ─────────────────────────────────────────

    def add_inline(self, raw_title: str, date_key: Optional[str] = None) -> Optional[Task]:
        """
        Create a task from an add-row.

        A date or weekday token in the title wins over date_key. Without
        either, the date is today in category list mode and the anchor day
        in the agenda. A date_key that is not a valid day key is ignored.
        Returns None for an empty title.
        """
        parsed = extract_inline_date(raw_title, self._today())
        title = parsed.cleaned_title.strip()
        if not title:
            return None

        category_id = self.view.selected_category_id
        if parsed.resolved_date is not None:
            target = format_date_key(parsed.resolved_date)
        elif date_key and is_date_key(date_key):
            target = date_key
        elif category_id is not None:
            target = format_date_key(self._today())
        else:
            target = format_date_key(self.anchor)

        order = self.clock.next()
        task = Task(
            id=f"cal-{order}",
            name=title,
            date=target,
            sort_order=order,
            category_ids=[category_id] if category_id else [],
            extra={
                "startTime": "",
                "endTime": "",
                "reminder": "none",
                "repeat": "none",
                "visibility": "private",
                "notification": "app",
                "allDay": False,
            },
        )
        self._set_tasks(self.tasks + [task])
        logger.debug(f"Added {task.id} on {task.date}")
        return task

    def upsert_task(self, task: Task) -> bool:
        """Full-edit save: replace by id, or prepend a new task. Tasks with a bad date are rejected."""
        if not is_date_key(task.date):
            logger.warning(f"Rejecting {task.id}: invalid date {task.date!r}")
            return False
        if self.get_task(task.id) is None:
            return self._set_tasks([task] + self.tasks)
        return self._set_tasks([task if t.id == task.id else t for t in self.tasks])

    def remove_task(self, task_id: str) -> bool:
        if self.get_task(task_id) is None:
            return False
        return self._set_tasks([t for t in self.tasks if t.id != task_id])

    def toggle_done(self, task_id: str, done: bool) -> bool:
        """Mark a task done/undone; completing one records a notification."""
        task = self.get_task(task_id)
        if task is None or task.done == done:
            return False
        updated = replace(task, done=done)
        self._set_tasks([updated if t.id == task_id else t for t in self.tasks])
        if done:
            notice = CompletionNotice(id=make_notice_id(), task_id=task.id, task_name=task.name)
            self.notifications = [notice] + self.notifications[:MAX_NOTIFICATIONS - 1]
            self._persist_notifications()
            self._emit("task_completed", task=updated, notice=notice)
        return True

    def reorder(self, active_id: str, over_id: str, date_key: Optional[str] = None) -> bool:
        """Drag within the flat category list, or within the day date_key."""
        visible = self.visible_ids(date_key)
        return self._set_tasks(reorder(self.tasks, visible, active_id, over_id))

    def on_drag_end(
        self,
        active: Optional[Mapping[str, Any]],
        over: Optional[Mapping[str, Any]],
    ) -> bool:
        """Drop of a card onto a day bucket. Unresolvable drops are ignored."""
        try:
            task_id, date_key = resolve_drop(active, over)
        except InvalidDragTarget as e:
            logger.debug(f"Ignoring drop: {e}")
            return False
        return self._set_tasks(reschedule(self.tasks, task_id, date_key, self.clock))

    # ── view state ─────────────────────────────────────────────

    def _after_filter_change(self, previous: ViewMode) -> ViewMode:
        self._persist_filter()
        if self.mode != previous:
            self._emit("view_mode_changed", mode=self.mode)
        return self.mode

    def select_categories(self, category_ids: List[str]) -> ViewMode:
        previous = self.mode
        self.view.select(category_ids)
        return self._after_filter_change(previous)

    def toggle_category(self, category_id: str) -> ViewMode:
        previous = self.mode
        self.view.toggle(category_id)
        return self._after_filter_change(previous)

    def clear_filter(self) -> ViewMode:
        previous = self.mode
        self.view.clear()
        return self._after_filter_change(previous)

    def go_today(self) -> ViewMode:
        """Clear the filter and anchor the agenda on today."""
        previous = self.mode
        self.view.today()
        self.anchor = self._today()
        return self._after_filter_change(previous)

    def set_anchor(self, day: date) -> None:
        self.anchor = day

    def shift_anchor(self, days: int) -> None:
        self.anchor = self.anchor + timedelta(days=days)

    def set_window_days(self, value: Any) -> int:
        self.window_days = normalize_window_length(value)
        self.storage.save(STORAGE_AGENDA_DAYS_COUNT, self.window_days)
        return self.window_days

    def set_search(self, text: str) -> None:
        """Update the search box; the agenda follows on the deferred copy."""
        self.search.set(text)

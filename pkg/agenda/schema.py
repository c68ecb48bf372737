"""
Task and category schema for the agenda engine.

Stored blobs keep the camelCase keys the web client writes
(sortOrder, categoryIds, descriptionHtml), so a task read from storage
and written back is byte-compatible with what other clients expect.

Date keys are always "YYYY-MM-DD", zero-padded, and always a real
calendar day.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional, List, Dict, Any, Tuple


DATE_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

# Keys handled explicitly by Task; everything else is carried in Task.extra
_TASK_KEYS = (
    "id", "name", "date", "sortOrder", "categoryIds", "done",
    "link", "location", "descriptionHtml", "subtasks",
)


class MalformedStoredData(ValueError):
    """Raised when a cached or remote payload does not have the expected shape."""
    pass


def format_date_key(value: date) -> str:
    """Canonical day key for a date (or datetime, time part ignored)."""
    if isinstance(value, datetime):
        value = value.date()
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(value: str) -> date:
    """
    Parse a canonical day key.

    Raises MalformedStoredData for anything that is not a zero-padded,
    existing calendar day.
    """
    if not isinstance(value, str):
        raise MalformedStoredData(f"Date key must be a string, got {type(value).__name__}")
    match = DATE_KEY_RE.match(value)
    if not match:
        raise MalformedStoredData(f"Invalid date key: {value!r}")
    year, month, day = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise MalformedStoredData(f"Not a calendar day: {value!r}")


def is_date_key(value: Any) -> bool:
    try:
        parse_date_key(value)
    except MalformedStoredData:
        return False
    return True


def _require(data: Dict[str, Any], key: str, kind: type, label: str) -> Any:
    value = data.get(key)
    if not isinstance(value, kind):
        raise MalformedStoredData(f"{label}: field '{key}' must be {kind.__name__}")
    return value


def _optional_str(data: Dict[str, Any], key: str, label: str) -> str:
    """Missing or null reads as ""; anything else must already be a string."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedStoredData(f"{label}: field '{key}' must be str")
    return value


@dataclass
class Subtask:
    """Checklist item shown under a task."""
    id: str
    title: str
    done: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "done": self.done}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subtask":
        if not isinstance(data, dict):
            raise MalformedStoredData("Subtask must be an object")
        return cls(
            id=str(data.get("id", "")),
            title=str(data.get("title", "")),
            done=bool(data.get("done", False)),
        )


@dataclass
class Task:
    """One agenda task."""

    # Identity
    id: str
    name: str

    # Scheduling
    date: str                                  # "YYYY-MM-DD"
    sort_order: Optional[float] = None         # meaningful only inside one view
    category_ids: List[str] = field(default_factory=list)  # 0 or 1 entries
    done: bool = False

    # Display fields (searched, never interpreted)
    link: str = ""
    location: str = ""
    description_html: str = ""
    subtasks: List[Subtask] = field(default_factory=list)

    # Stored keys this engine does not own (times, reminder, repeat, ...)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def category_id(self) -> Optional[str]:
        """Effective category: first entry or None."""
        return self.category_ids[0] if self.category_ids else None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the stored JSON shape."""
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "categoryIds": list(self.category_ids),
            "done": self.done,
            "link": self.link,
            "location": self.location,
            "descriptionHtml": self.description_html,
            "subtasks": [s.to_dict() for s in self.subtasks],
        })
        if self.sort_order is not None:
            data["sortOrder"] = self.sort_order
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Deserialize from the stored JSON shape. Raises MalformedStoredData."""
        if not isinstance(data, dict):
            raise MalformedStoredData("Task must be an object")

        task_id = _require(data, "id", str, "Task")
        label = f"Task {task_id}"
        name = data.get("name", "")
        if not isinstance(name, str):
            raise MalformedStoredData(f"{label}: field 'name' must be str")
        date_key = _require(data, "date", str, label)
        parse_date_key(date_key)

        sort_order = data.get("sortOrder")
        if sort_order is not None and (
            isinstance(sort_order, bool) or not isinstance(sort_order, (int, float))
        ):
            raise MalformedStoredData(f"{label}: field 'sortOrder' must be a number")

        category_ids = data.get("categoryIds") or []
        if not isinstance(category_ids, list):
            raise MalformedStoredData(f"{label}: field 'categoryIds' must be a list")

        link, location, description_html = (
            _optional_str(data, key, label) for key in ("link", "location", "descriptionHtml")
        )

        subtasks = data.get("subtasks") or []
        if not isinstance(subtasks, list):
            raise MalformedStoredData(f"{label}: field 'subtasks' must be a list")

        return cls(
            id=task_id,
            name=name,
            date=date_key,
            sort_order=sort_order,
            # The UI only ever assigns one category
            category_ids=[str(c) for c in category_ids[:1]],
            done=bool(data.get("done", False)),
            link=link,
            location=location,
            description_html=description_html,
            subtasks=[Subtask.from_dict(s) for s in subtasks],
            extra={k: v for k, v in data.items() if k not in _TASK_KEYS},
        )


@dataclass
class Category:
    """Task category; color is a theme token ("primary", "info") or a legacy hex."""
    id: str
    name: str
    color: str = "primary"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        if not isinstance(data, dict):
            raise MalformedStoredData("Category must be an object")
        return cls(
            id=_require(data, "id", str, "Category"),
            name=str(data.get("name", "")),
            color=str(data.get("color") or "primary"),
        )


@dataclass(frozen=True)
class DaySection:
    """One day of the agenda window and its pending tasks, in display order."""
    date_key: str
    date: date
    tasks: Tuple[Task, ...] = ()


@dataclass
class CompletionNotice:
    """Entry in the completed-tasks notification feed."""
    id: str
    task_id: str
    task_name: str
    completed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "taskId": self.task_id,
            "taskName": self.task_name,
            "completedAt": self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompletionNotice":
        if not isinstance(data, dict):
            raise MalformedStoredData("Notification must be an object")
        return cls(
            id=str(data.get("id", "")),
            task_id=str(data.get("taskId", "")),
            task_name=str(data.get("taskName", "")),
            completed_at=str(data.get("completedAt", "")),
        )


def tasks_from_payload(payload: Any) -> List[Task]:
    """Deserialize a stored task collection. Raises MalformedStoredData."""
    if not isinstance(payload, list):
        raise MalformedStoredData("Task collection must be a list")
    return [Task.from_dict(item) for item in payload]


def categories_from_payload(payload: Any) -> List[Category]:
    """Deserialize a stored category set. Raises MalformedStoredData."""
    if not isinstance(payload, list):
        raise MalformedStoredData("Category set must be a list")
    return [Category.from_dict(item) for item in payload]

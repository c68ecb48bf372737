# Agenda engine — configuration
# Override storage endpoint, cache path and timings via config.yaml.

import logging
import os
import sys
import yaml
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Optional

CONFIG_PATH = Path(__file__).parent / "config.yaml"

# Storage keys owned by the agenda engine
STORAGE_TASKS = "calendar_tasks_v1"
STORAGE_CATEGORIES = "calendar_categories_v1"
STORAGE_CATEGORY_FILTER = "sc_calendar_category_filter"
STORAGE_AGENDA_DAYS_COUNT = "sc_tasks_agenda_days_count"
STORAGE_COMPLETED_TASKS = "sc_completed_tasks_notifications"

WINDOW_LENGTHS = (7, 15, 30)
DEFAULT_WINDOW_LENGTH = 15
MAX_WINDOW_LENGTH = 30

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

logger = logging.getLogger(__name__)


def normalize_window_length(value: Any) -> int:
    """
    Coerce a stored window-length preference to 7, 15 or 30.

    Non-numeric values and anything outside the three presets fall back
    to the default (15).
    """
    if isinstance(value, bool):
        return DEFAULT_WINDOW_LENGTH
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return DEFAULT_WINDOW_LENGTH
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return DEFAULT_WINDOW_LENGTH
    clamped = max(1, min(MAX_WINDOW_LENGTH, int(parsed)))
    if clamped not in WINDOW_LENGTHS:
        return DEFAULT_WINDOW_LENGTH
    return clamped


@dataclass
class AgendaConfig:
    """Runtime configuration for the agenda engine."""

    # Remote blob store (None = local cache only)
    storage_url: Optional[str] = None
    storage_token_env: str = "AGENDA_STORAGE_TOKEN"
    request_timeout: float = 5.0

    # Local cache
    cache_path: str = "~/.local/share/agenda/cache.db"

    # Behavior: persistence and search responsiveness
    debounce_ms: int = 250
    search_defer_ms: int = 120

    # Agenda defaults
    default_window_days: int = DEFAULT_WINDOW_LENGTH
    locale_name: str = "pt-BR"

    def resolve(self):
        """Expand ~ and normalise presets."""
        self.cache_path = str(Path(self.cache_path).expanduser())
        self.default_window_days = normalize_window_length(self.default_window_days)
        if self.storage_url:
            self.storage_url = self.storage_url.rstrip("/")

    @property
    def storage_token(self) -> Optional[str]:
        return os.environ.get(self.storage_token_env) or None

    @classmethod
    def load(cls, path: Optional[str] = None) -> "AgendaConfig":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
                cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
            except Exception as e:
                logger.warning(f"Cannot read config {cfg_path}, using defaults: {e}")
                cfg = cls()
        else:
            cfg = cls()
        cfg.resolve()
        return cfg


def configure_logging(level: int = logging.INFO) -> None:
    """Stdout logging with the shared format."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

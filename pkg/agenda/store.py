"""
Persistence gateway for agenda state.

Whole collections are stored as JSON blobs under string keys:
  - MemoryStorage  - in-process fake (tests)
  - LocalCache     - synchronous SQLite key/value cache, survives reloads
  - RemoteStorage  - per-user blob store over HTTP (GET/PUT /api/storage/<key>)
  - SyncedStorage  - cache first for writes, remote debounced; remote first for reads

Every failure is swallowed at this boundary: load() returns None and
save() returns False. Callers treat None as "no prior state".
"""
import copy
import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from .config import AgendaConfig
from .deferred import Debouncer

logger = logging.getLogger(__name__)


class UserStorage(ABC):
    """Key/value blob storage scoped to the current user."""

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Stored JSON value, or None when absent or unreadable."""

    @abstractmethod
    def save(self, key: str, data: Any) -> bool:
        """Best-effort upsert. Returns False on failure, never raises."""

    @abstractmethod
    def discard(self, key: str) -> None:
        """Drop a (corrupted) entry."""

    def flush(self) -> None:
        """Push out anything still pending. No-op for synchronous backends."""


class MemoryStorage(UserStorage):
    """In-memory fake. Values are deep-copied in and out, like a real round-trip."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = copy.deepcopy(initial or {})
        self.saves: List[Tuple[str, Any]] = []
        self.fail_saves = False

    def load(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self.data.get(key))

    def save(self, key: str, data: Any) -> bool:
        if self.fail_saves:
            return False
        snapshot = copy.deepcopy(data)
        self.data[key] = snapshot
        self.saves.append((key, snapshot))
        return True

    def discard(self, key: str) -> None:
        self.data.pop(key, None)

    def saves_for(self, key: str) -> List[Any]:
        return [data for k, data in self.saves if k == key]


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class LocalCache(UserStorage):
    """SQLite-backed string-keyed JSON cache."""

    def __init__(self, db_path: str = None):
        """Initialize cache and create the table if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "agenda" / "cache.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS user_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def get_raw(self, key: str) -> Optional[str]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM user_storage WHERE key = ?", (key,)
                ).fetchone()
            return row["value"] if row else None
        except sqlite3.Error as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    def set_raw(self, key: str, value: str) -> bool:
        try:
            with _connect(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO user_storage (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, value, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    def remove(self, key: str) -> None:
        try:
            with _connect(self.db_path) as conn:
                conn.execute("DELETE FROM user_storage WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            logger.warning(f"Cache delete failed for {key}: {e}")

    def load(self, key: str) -> Optional[Any]:
        """Parsed value; a corrupted entry is removed and reported as absent."""
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Discarding corrupted cache entry {key}")
            self.remove(key)
            return None

    def save(self, key: str, data: Any) -> bool:
        try:
            payload = json.dumps(data, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cannot serialize {key}: {e}")
            return False
        return self.set_raw(key, payload)

    def discard(self, key: str) -> None:
        self.remove(key)


class RemoteStorage(UserStorage):
    """HTTP client for the per-user blob store."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/api/storage/{quote(key, safe='')}"

    def load(self, key: str) -> Optional[Any]:
        try:
            r = self.session.get(self.url_for(key), timeout=self.timeout)
            if not r.ok:
                logger.warning(f"Remote load {key} -> HTTP {r.status_code}")
                return None
            body = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Remote load {key} failed: {e}")
            return None
        if not isinstance(body, dict):
            return None
        return body.get("data")

    def save(self, key: str, data: Any) -> bool:
        try:
            r = self.session.put(self.url_for(key), json={"data": data}, timeout=self.timeout)
        except (requests.RequestException, TypeError, ValueError) as e:
            logger.warning(f"Remote save {key} failed: {e}")
            return False
        if not r.ok:
            logger.warning(f"Remote save {key} -> HTTP {r.status_code}")
            return False
        return True

    def discard(self, key: str) -> None:
        # The remote copy is overwritten by the next save instead
        pass


class SyncedStorage(UserStorage):
    """
    Local cache + remote store.

    Reads try the remote first and mirror a hit into the cache; on a miss
    (or an empty list) the cache answers. Writes land in the cache
    synchronously and reach the remote through a per-key debouncer, so only
    the newest snapshot is sent.
    """

    def __init__(
        self,
        local: LocalCache,
        remote: Optional[RemoteStorage] = None,
        debouncer: Optional[Debouncer] = None,
    ):
        self.local = local
        self.remote = remote
        self.debouncer = debouncer or Debouncer(0.25)

    def load(self, key: str) -> Optional[Any]:
        if self.remote is not None:
            data = self.remote.load(key)
            # An empty remote list does not override what the cache holds
            if data is not None and data != []:
                self.local.save(key, data)
                return data
        return self.local.load(key)

    def save(self, key: str, data: Any) -> bool:
        snapshot = copy.deepcopy(data)
        saved = self.local.save(key, snapshot)
        if self.remote is not None:
            remote = self.remote
            self.debouncer.call(key, lambda: remote.save(key, snapshot))
        return saved

    def discard(self, key: str) -> None:
        self.local.discard(key)

    def flush(self) -> None:
        self.debouncer.flush()


def build_storage(config: AgendaConfig) -> SyncedStorage:
    """Storage stack for a loaded config."""
    local = LocalCache(config.cache_path)
    remote = None
    if config.storage_url:
        remote = RemoteStorage(
            config.storage_url,
            token=config.storage_token,
            timeout=config.request_timeout,
        )
    else:
        logger.info("No storage_url configured, running on the local cache only")
    return SyncedStorage(local, remote, Debouncer(config.debounce_ms / 1000.0))

"""
Tests for the persistence gateway.

Covers:
    - MemoryStorage: fake semantics (copies, save log)
    - LocalCache   : SQLite round-trip, corrupted entries discarded
    - RemoteStorage: HTTP envelope, every failure swallowed
    - SyncedStorage: remote-first reads, cache-first debounced writes
    - build_storage: config wiring
"""
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from pkg.agenda.config import AgendaConfig
from pkg.agenda.deferred import Debouncer
from pkg.agenda.store import (
    LocalCache,
    MemoryStorage,
    RemoteStorage,
    SyncedStorage,
    build_storage,
)


@pytest.fixture
def cache(tmp_path):
    return LocalCache(str(tmp_path / "cache.db"))


def _response(ok=True, status=200, body=None, bad_json=False):
    r = MagicMock()
    r.ok = ok
    r.status_code = status
    if bad_json:
        r.json.side_effect = ValueError("not json")
    else:
        r.json.return_value = body
    return r


def _remote(session=None):
    session = session or MagicMock()
    session.headers = {}
    return RemoteStorage("https://store.example/", token="tok", timeout=2, session=session), session


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# MemoryStorage
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestMemoryStorage:

    def test_roundtrip_is_a_copy(self):
        store = MemoryStorage()
        data = [{"id": "a"}]
        assert store.save("k", data)
        data[0]["id"] = "changed"
        assert store.load("k") == [{"id": "a"}]

    def test_missing_key_is_none(self):
        assert MemoryStorage().load("nope") is None

    def test_save_log_and_discard(self):
        store = MemoryStorage()
        store.save("k", 1)
        store.save("k", 2)
        store.save("other", 3)
        assert store.saves_for("k") == [1, 2]
        store.discard("k")
        assert store.load("k") is None

    def test_failing_saves(self):
        store = MemoryStorage()
        store.fail_saves = True
        assert store.save("k", 1) is False
        assert store.load("k") is None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LocalCache
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestLocalCache:

    def test_save_and_load(self, cache):
        assert cache.save("calendar_tasks_v1", [{"id": "a", "name": "Reunião"}])
        assert cache.load("calendar_tasks_v1") == [{"id": "a", "name": "Reunião"}]

    def test_overwrite(self, cache):
        cache.save("k", [1])
        cache.save("k", [2])
        assert cache.load("k") == [2]

    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "c.db")
        LocalCache(path).save("k", {"x": 1})
        assert LocalCache(path).load("k") == {"x": 1}

    def test_corrupted_entry_discarded(self, cache):
        cache.set_raw("k", "{not json")
        assert cache.load("k") is None
        assert cache.get_raw("k") is None

    def test_unserializable_value_rejected(self, cache):
        assert cache.save("k", {"when": object()}) is False
        assert cache.load("k") is None

    def test_discard(self, cache):
        cache.save("k", 1)
        cache.discard("k")
        assert cache.load("k") is None

    def test_creates_parent_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "dir" / "cache.db"
            LocalCache(str(path)).save("k", 1)
            assert path.exists()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# RemoteStorage
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestRemoteStorage:

    def test_url_quotes_key(self):
        remote, _ = _remote()
        assert remote.url_for("a b/c") == "https://store.example/api/storage/a%20b%2Fc"

    def test_bearer_token_header(self):
        _, session = _remote()
        assert session.headers["Authorization"] == "Bearer tok"

    def test_load_unwraps_data(self):
        remote, session = _remote()
        session.get.return_value = _response(body={"data": [{"id": "a"}]})
        assert remote.load("calendar_tasks_v1") == [{"id": "a"}]
        session.get.assert_called_once_with(
            "https://store.example/api/storage/calendar_tasks_v1", timeout=2
        )

    @pytest.mark.parametrize("response", [
        _response(ok=False, status=401),
        _response(bad_json=True),
        _response(body=["not", "an", "envelope"]),
        _response(body={"data": None}),
    ])
    def test_load_failures_return_none(self, response):
        remote, session = _remote()
        session.get.return_value = response
        assert remote.load("k") is None

    def test_load_network_error_returns_none(self):
        remote, session = _remote()
        session.get.side_effect = requests.ConnectionError("down")
        assert remote.load("k") is None

    def test_save_sends_envelope(self):
        remote, session = _remote()
        session.put.return_value = _response()
        assert remote.save("k", [1, 2])
        session.put.assert_called_once_with(
            "https://store.example/api/storage/k", json={"data": [1, 2]}, timeout=2
        )

    def test_save_failures_return_false(self):
        remote, session = _remote()
        session.put.return_value = _response(ok=False, status=500)
        assert remote.save("k", 1) is False
        session.put.side_effect = requests.Timeout("slow")
        assert remote.save("k", 1) is False


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# SyncedStorage
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestSyncedStorage:

    def test_remote_hit_mirrored_into_cache(self, cache):
        remote = MagicMock()
        remote.load.return_value = [{"id": "r"}]
        synced = SyncedStorage(cache, remote, Debouncer(60))
        assert synced.load("k") == [{"id": "r"}]
        assert cache.load("k") == [{"id": "r"}]

    def test_remote_miss_falls_back_to_cache(self, cache):
        cache.save("k", [{"id": "local"}])
        remote = MagicMock()
        remote.load.return_value = None
        synced = SyncedStorage(cache, remote, Debouncer(60))
        assert synced.load("k") == [{"id": "local"}]

    def test_empty_remote_list_falls_back_to_cache(self, cache):
        cache.save("k", [{"id": "local"}])
        remote = MagicMock()
        remote.load.return_value = []
        synced = SyncedStorage(cache, remote, Debouncer(60))
        assert synced.load("k") == [{"id": "local"}]
        assert cache.load("k") == [{"id": "local"}]

    def test_local_only(self, cache):
        synced = SyncedStorage(cache)
        assert synced.save("k", 5)
        assert synced.load("k") == 5

    def test_write_is_local_now_and_remote_debounced(self, cache):
        remote = MagicMock()
        synced = SyncedStorage(cache, remote, Debouncer(60))
        synced.save("k", [1])
        assert cache.load("k") == [1]
        remote.save.assert_not_called()
        synced.flush()
        remote.save.assert_called_once_with("k", [1])

    def test_newer_write_supersedes_pending(self, cache):
        remote = MagicMock()
        synced = SyncedStorage(cache, remote, Debouncer(60))
        synced.save("k", [1])
        synced.save("k", [1, 2])
        synced.save("other", "x")
        synced.flush()
        assert remote.save.call_count == 2
        sent = {c.args[0]: c.args[1] for c in remote.save.call_args_list}
        assert sent == {"k": [1, 2], "other": "x"}

    def test_snapshot_taken_at_save_time(self, cache):
        remote = MagicMock()
        synced = SyncedStorage(cache, remote, Debouncer(60))
        data = [1]
        synced.save("k", data)
        data.append(2)
        synced.flush()
        remote.save.assert_called_once_with("k", [1])

    def test_remote_failure_not_surfaced(self, cache):
        remote = MagicMock()
        remote.save.side_effect = RuntimeError("boom")
        synced = SyncedStorage(cache, remote, Debouncer(60))
        assert synced.save("k", 1)
        synced.flush()
        assert cache.load("k") == 1

    def test_discard_only_touches_cache(self, cache):
        remote = MagicMock()
        synced = SyncedStorage(cache, remote, Debouncer(60))
        cache.save("k", 1)
        synced.discard("k")
        assert cache.load("k") is None
        remote.discard.assert_not_called()


def test_build_storage_local_only(tmp_path):
    cfg = AgendaConfig(cache_path=str(tmp_path / "c.db"))
    storage = build_storage(cfg)
    assert storage.remote is None
    assert storage.debouncer.delay_secs == 0.25


def test_build_storage_with_remote(tmp_path, monkeypatch):
    monkeypatch.setenv("AGENDA_STORAGE_TOKEN", "secret")
    cfg = AgendaConfig(cache_path=str(tmp_path / "c.db"), storage_url="https://s.example", debounce_ms=100)
    storage = build_storage(cfg)
    assert isinstance(storage.remote, RemoteStorage)
    assert storage.remote.session.headers["Authorization"] == "Bearer secret"
    assert storage.debouncer.delay_secs == 0.1

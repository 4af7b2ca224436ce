"""
Tests for PersistedOnboardingStore and its channels.
"""

import json
from datetime import datetime, timedelta, timezone

from onboarding.storage import (
    STORAGE_KEY,
    JsonFileStorage,
    MemoryStorage,
    PersistedOnboardingStore,
)


class FailingStorage:
    """Channel that throws on every call (quota exceeded, private mode)."""

    def get_item(self, key):
        raise OSError("storage disabled")

    def set_item(self, key, value):
        raise OSError("quota exceeded")

    def remove_item(self, key):
        raise OSError("storage disabled")


class TestSaveLoad:

    def test_round_trip(self, store):
        store.save({"goal": "grow_followers", "platforms": ["instagram"]})

        assert store.load() == {"goal": "grow_followers", "platforms": ["instagram"]}

    def test_empty_store_loads_empty(self, store):
        assert store.load() == {}

    def test_save_writes_both_channels(self, store, session_storage, local_storage):
        store.save({"name": "Dana"})

        assert session_storage.get_item(STORAGE_KEY) == local_storage.get_item(STORAGE_KEY)

    def test_primary_preferred(self, store, session_storage, local_storage):
        store.save({"goal": "old"})
        session_storage.set_item(STORAGE_KEY, json.dumps({"data": {"goal": "new"}}))

        assert store.load() == {"goal": "new"}

    def test_fallback_resyncs_primary(self, store, session_storage):
        store.save({"goal": "grow_followers"})
        session_storage.remove_item(STORAGE_KEY)

        assert store.load() == {"goal": "grow_followers"}
        assert session_storage.get_item(STORAGE_KEY) is not None

    def test_clear_removes_everywhere(self, store, session_storage, local_storage):
        store.save({"goal": "grow_followers"})
        store.clear()

        assert session_storage.get_item(STORAGE_KEY) is None
        assert local_storage.get_item(STORAGE_KEY) is None
        assert store.load() == {}

    def test_corrupt_payload_discarded(self, store, session_storage):
        session_storage.set_item(STORAGE_KEY, "{not json")

        assert store.load() == {}

    def test_unexpected_shape_discarded(self, store, session_storage):
        session_storage.set_item(STORAGE_KEY, json.dumps(["a", "b"]))

        assert store.load() == {}


class TestUnavailableChannels:

    def test_failing_primary_uses_fallback(self, local_storage):
        store = PersistedOnboardingStore(primary=FailingStorage(), fallback=local_storage)

        assert store.save({"goal": "grow_followers"}) is True
        assert store.load() == {"goal": "grow_followers"}

    def test_all_channels_failing(self):
        store = PersistedOnboardingStore(primary=FailingStorage(), fallback=FailingStorage())

        assert store.save({"goal": "grow_followers"}) is False
        assert store.load() == {}
        store.clear()

    def test_no_channels(self):
        store = PersistedOnboardingStore()

        assert store.save({"goal": "grow_followers"}) is False
        assert store.load() == {}


class TestExpiry:

    def _stored_at(self, channel, saved_at):
        channel.set_item(STORAGE_KEY, json.dumps({
            "data": {"goal": "grow_followers"},
            "saved_at": saved_at.isoformat(),
        }))

    def test_no_ttl_never_expires(self, session_storage):
        store = PersistedOnboardingStore(primary=session_storage)
        self._stored_at(session_storage, datetime.now(timezone.utc) - timedelta(days=365))

        assert store.load() == {"goal": "grow_followers"}

    def test_expired_data_cleared(self, session_storage):
        store = PersistedOnboardingStore(primary=session_storage, ttl=timedelta(hours=1))
        self._stored_at(session_storage, datetime.now(timezone.utc) - timedelta(hours=2))

        assert store.load() == {}
        assert session_storage.get_item(STORAGE_KEY) is None

    def test_fresh_data_kept(self, session_storage):
        store = PersistedOnboardingStore(primary=session_storage, ttl=timedelta(hours=1))
        store.save({"goal": "grow_followers"})

        assert store.load() == {"goal": "grow_followers"}


class TestJsonFileStorage:

    def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "onboarding.json"
        JsonFileStorage(path).set_item("k", "v")

        assert JsonFileStorage(path).get_item("k") == "v"

    def test_missing_file(self, tmp_path):
        assert JsonFileStorage(tmp_path / "absent.json").get_item("k") is None

    def test_remove_item(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "onboarding.json")
        storage.set_item("k", "v")
        storage.set_item("other", "x")
        storage.remove_item("k")

        assert storage.get_item("k") is None
        assert storage.get_item("other") == "x"

    def test_as_fallback_channel(self, tmp_path):
        path = tmp_path / "onboarding.json"
        PersistedOnboardingStore(primary=MemoryStorage(), fallback=JsonFileStorage(path)).save(
            {"name": "Dana"}
        )

        # New process: empty session storage, same file
        store = PersistedOnboardingStore(primary=MemoryStorage(), fallback=JsonFileStorage(path))
        assert store.load() == {"name": "Dana"}

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "onboarding.json"
        path.write_text("{not json", encoding="utf-8")

        assert JsonFileStorage(path).get_item("k") is None

    def test_corrupt_file_overwritten_on_save(self, tmp_path):
        path = tmp_path / "onboarding.json"
        path.write_text("{not json", encoding="utf-8")
        PersistedOnboardingStore(primary=MemoryStorage(), fallback=JsonFileStorage(path)).save(
            {"goal": "grow"}
        )

        store = PersistedOnboardingStore(primary=MemoryStorage(), fallback=JsonFileStorage(path))
        assert store.load() == {"goal": "grow"}

    def test_non_object_file_can_be_cleared(self, tmp_path):
        path = tmp_path / "onboarding.json"
        path.write_text("[1, 2]", encoding="utf-8")
        storage = JsonFileStorage(path)

        storage.remove_item("k")
        storage.set_item("k", "v")

        assert storage.get_item("k") == "v"
        assert not (tmp_path / "onboarding.json.tmp").exists()

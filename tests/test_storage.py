"""
Tests for the storage collaborator backends.
"""

import json
import os

import pytest

from budget_tracker.services.storage import (
    CorruptDataError,
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    StorageError,
    StorageKey,
)


class TestStorageKeys:

    def test_key_values(self):
        """The four fixed keys the engine persists under."""
        assert [key.value for key in StorageKey] == [
            "ledger",
            "savings-goals",
            "subscriptions",
            "scheduled-income",
        ]

    def test_interface_is_abstract(self):
        with pytest.raises(TypeError):
            KeyValueStorage()


class TestInMemoryStorage:
    """Tests for the dictionary-backed storage."""

    def test_absent_key_loads_as_empty_sequence(self):
        storage = InMemoryStorage()
        assert storage.load(StorageKey.LEDGER) is None
        assert storage.load_sequence(StorageKey.LEDGER) == []

    def test_save_and_load(self):
        storage = InMemoryStorage()
        storage.save(StorageKey.SUBSCRIPTIONS, [{"name": "Netflix"}])
        assert storage.load(StorageKey.SUBSCRIPTIONS) == [{"name": "Netflix"}]
        assert storage.keys() == ["subscriptions"]

    def test_save_replaces_previous_value(self):
        storage = InMemoryStorage()
        storage.save(StorageKey.LEDGER, [1])
        storage.save(StorageKey.LEDGER, [2, 3])
        assert storage.load_sequence(StorageKey.LEDGER) == [2, 3]

    def test_accepts_string_keys(self):
        storage = InMemoryStorage({"savings-goals": []})
        assert storage.load(StorageKey.SAVINGS_GOALS) == []

    def test_loaded_value_is_a_copy(self):
        storage = InMemoryStorage()
        storage.save(StorageKey.LEDGER, [{"a": 1}])
        storage.load(StorageKey.LEDGER)[0]["a"] = 2
        assert storage.load(StorageKey.LEDGER) == [{"a": 1}]

    def test_unserializable_value_raises(self):
        storage = InMemoryStorage()
        with pytest.raises(StorageError, match="not JSON serializable"):
            storage.save(StorageKey.LEDGER, [object()])

    def test_non_list_value_is_corrupt(self):
        storage = InMemoryStorage({"ledger": {"not": "a list"}})
        with pytest.raises(CorruptDataError, match="Expected a JSON array"):
            storage.load_sequence(StorageKey.LEDGER)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            InMemoryStorage({"bills": []})


class TestJsonFileStorage:
    """Tests for the file-backed storage."""

    def test_absent_file_loads_as_empty(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        assert storage.load(StorageKey.LEDGER) is None
        assert storage.load_sequence(StorageKey.LEDGER) == []

    def test_save_writes_one_file_per_key(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.save(StorageKey.SCHEDULED_INCOME, [{"description": "Salary"}])

        path = tmp_path / "scheduled-income.json"
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == [{"description": "Salary"}]
        assert storage.load(StorageKey.SCHEDULED_INCOME) == [{"description": "Salary"}]

    def test_creates_missing_directory(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "nested" / "data")
        storage.save(StorageKey.LEDGER, [])
        assert (tmp_path / "nested" / "data" / "ledger.json").exists()

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.save(StorageKey.LEDGER, [1, 2, 3])
        storage.save(StorageKey.LEDGER, [4])
        assert sorted(os.listdir(tmp_path)) == ["ledger.json"]

    def test_invalid_json_is_corrupt(self, tmp_path):
        (tmp_path / "ledger.json").write_text("{not json", encoding="utf-8")
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(CorruptDataError):
            storage.load(StorageKey.LEDGER)

    def test_invalid_utf8_is_corrupt(self, tmp_path):
        (tmp_path / "ledger.json").write_bytes(b"[\xff\xfe]")
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(CorruptDataError) as exc_info:
            storage.load(StorageKey.LEDGER)
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_corrupt_data_is_a_storage_error(self):
        assert issubclass(CorruptDataError, StorageError)

    def test_unserializable_value_raises(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        with pytest.raises(StorageError):
            storage.save(StorageKey.LEDGER, [{1, 2}])
        assert not (tmp_path / "ledger.json").exists()

    def test_transient_write_error_is_retried(self, tmp_path, monkeypatch):
        """A single OSError during replace is retried and the write succeeds."""
        storage = JsonFileStorage(tmp_path)
        real_replace = os.replace
        calls = {"count": 0}

        def flaky_replace(src, dst):
            calls["count"] += 1
            if calls["count"] == 1:
                raise OSError("disk busy")
            return real_replace(src, dst)

        monkeypatch.setattr(os, "replace", flaky_replace)
        storage.save(StorageKey.LEDGER, [1])

        assert calls["count"] == 2
        assert storage.load(StorageKey.LEDGER) == [1]

    def test_persistent_write_error_raises_storage_error(self, tmp_path, monkeypatch):
        storage = JsonFileStorage(tmp_path)

        def broken_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr(os, "replace", broken_replace)
        with pytest.raises(StorageError, match="Could not write") as exc_info:
            storage.save(StorageKey.LEDGER, [1])
        assert isinstance(exc_info.value.__cause__, OSError)
        assert os.listdir(tmp_path) == []

    def test_data_dir_defaults_to_settings(self, tmp_path, monkeypatch):
        from budget_tracker.config import get_settings

        monkeypatch.setenv("BUDGET_STORAGE_DATA_DIR", str(tmp_path))
        get_settings.cache_clear()
        try:
            storage = JsonFileStorage()
            assert storage.data_dir == tmp_path
        finally:
            get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Unit tests for cache models and JSON document storage."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from storyvoice.cache.models import CacheEntry
from storyvoice.cache.storage import CacheStorage, write_json_atomic
from storyvoice.errors import CorruptStoreError, PersistenceError


class TestCacheEntry:
    """Test CacheEntry serialization."""

    def test_to_dict_uses_store_value_field(self) -> None:
        """Test that the value lands under the store's field name."""
        entry = CacheEntry(key="abc", value="voice-1", created_at=1700000000000)

        assert entry.to_dict("voiceId") == {
            "voiceId": "voice-1",
            "createdAt": 1700000000000,
        }

    def test_from_dict_restores_entry(self) -> None:
        """Test that an entry body is read back with its key."""
        entry = CacheEntry.from_dict(
            "k", {"narrationUrl": "/uploads/n.mp3", "createdAt": 5}, "narrationUrl"
        )

        assert entry == CacheEntry(key="k", value="/uploads/n.mp3", created_at=5)

    def test_created_at_defaults_to_now(self) -> None:
        """Test that new entries are stamped in milliseconds."""
        entry = CacheEntry(key="k", value="v")

        # Milliseconds since epoch, not seconds
        assert entry.created_at > 1_600_000_000_000

    def test_from_dict_missing_value_field(self) -> None:
        """Test that a body without the value field is rejected."""
        with pytest.raises(KeyError):
            CacheEntry.from_dict("k", {"createdAt": 1}, "voiceId")


class TestCacheStorage:
    """Test CacheStorage load/save behaviour."""

    def test_load_missing_file_returns_empty(self, tmp_path: Path) -> None:
        """Test that an absent document is an empty store, not an error."""
        storage = CacheStorage(tmp_path / "voice-cache.json", "voiceId")

        assert storage.load() == {}

    def test_save_then_load_roundtrip(self, tmp_path: Path) -> None:
        """Test that a fresh storage reads back what was saved."""
        path = tmp_path / "voice-cache.json"
        entries = {
            "h1": CacheEntry(key="h1", value="voice-1", created_at=1),
            "h2": CacheEntry(key="h2", value="voice-2", created_at=2),
        }

        CacheStorage(path, "voiceId").save(entries)
        loaded = CacheStorage(path, "voiceId").load()

        assert loaded == entries

    def test_saved_document_layout(self, tmp_path: Path) -> None:
        """Test the on-disk JSON shape."""
        path = tmp_path / "narration-cache.json"
        CacheStorage(path, "narrationUrl").save(
            {"s:n:0": CacheEntry(key="s:n:0", value="/uploads/a.mp3", created_at=9)}
        )

        assert json.loads(path.read_text()) == {
            "s:n:0": {"narrationUrl": "/uploads/a.mp3", "createdAt": 9}
        }

    def test_invalid_json_raises_corrupt_store(self, tmp_path: Path) -> None:
        """Test that unparsable content is reported as corrupt."""
        path = tmp_path / "voice-cache.json"
        path.write_text("{not json")

        with pytest.raises(CorruptStoreError, match="not valid JSON"):
            CacheStorage(path, "voiceId").load()

    def test_non_utf8_bytes_raise_corrupt_store(self, tmp_path: Path) -> None:
        """Test that undecodable bytes are reported as corrupt, not a crash."""
        path = tmp_path / "voice-cache.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(CorruptStoreError, match="not valid JSON"):
            CacheStorage(path, "voiceId").load()

    def test_non_object_document_raises_corrupt_store(self, tmp_path: Path) -> None:
        """Test that a JSON array is not accepted as a store."""
        path = tmp_path / "voice-cache.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(CorruptStoreError, match="must be a JSON object"):
            CacheStorage(path, "voiceId").load()

    def test_malformed_entry_raises_corrupt_store(self, tmp_path: Path) -> None:
        """Test that an entry without the value field is reported as corrupt."""
        path = tmp_path / "voice-cache.json"
        path.write_text(json.dumps({"h1": {"createdAt": 1}}))

        with pytest.raises(CorruptStoreError, match="malformed entry"):
            CacheStorage(path, "voiceId").load()

    def test_write_failure_raises_persistence_error(self, tmp_path: Path) -> None:
        """Test that I/O failures surface as PersistenceError."""
        storage = CacheStorage(tmp_path / "voice-cache.json", "voiceId")

        with patch(
            "storyvoice.cache.storage.write_json_atomic",
            side_effect=OSError("No space left on device"),
        ):
            with pytest.raises(PersistenceError, match="No space left"):
                storage.save({"h": CacheEntry(key="h", value="v", created_at=1)})


class TestWriteJsonAtomic:
    """Test the replace-on-write helper."""

    def test_overwrites_existing_document(self, tmp_path: Path) -> None:
        """Test that the target is fully replaced."""
        path = tmp_path / "doc.json"
        path.write_text('{"old": true, "padding": "' + "x" * 100 + '"}')

        write_json_atomic(path, {"new": True})

        assert json.loads(path.read_text()) == {"new": True}

    def test_leaves_no_temp_files(self, tmp_path: Path) -> None:
        """Test that only the target remains after a write."""
        path = tmp_path / "doc.json"

        write_json_atomic(path, {"a": 1})

        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_failed_serialization_keeps_old_document(self, tmp_path: Path) -> None:
        """Test that a failed write neither corrupts the target nor leaks temp files."""
        path = tmp_path / "doc.json"
        path.write_text('{"old": true}')

        with pytest.raises(TypeError):
            write_json_atomic(path, {"bad": object()})

        assert json.loads(path.read_text()) == {"old": True}
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """Test that missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "doc.json"

        write_json_atomic(path, {})

        assert path.exists()

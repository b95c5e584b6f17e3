"""Tests for the content-addressed blob store."""

from pathlib import Path
from unittest.mock import patch

import pytest

from prompt_version.errors import StorageIOError, StoreCorruptionError
from prompt_version.hashing import hash_content
from prompt_version.storage.content_store import ContentStore


@pytest.fixture
def objects_dir(tmp_path: Path) -> Path:
    path = tmp_path / "objects"
    path.mkdir()
    return path


@pytest.fixture
def store(objects_dir: Path) -> ContentStore:
    return ContentStore(objects_dir)


class TestPut:
    def test_put_returns_sha256_and_writes_blob(self, store, objects_dir):
        content_hash = store.put("Translate to German.\n")

        assert content_hash == hash_content("Translate to German.\n")
        assert (objects_dir / content_hash).read_bytes() == b"Translate to German.\n"

    def test_put_is_idempotent(self, store, objects_dir):
        first = store.put("same content")
        mtime = (objects_dir / first).stat().st_mtime_ns

        with patch("prompt_version.storage.content_store.tempfile.mkstemp") as mkstemp:
            second = store.put("same content")
            mkstemp.assert_not_called()

        assert first == second
        assert (objects_dir / first).stat().st_mtime_ns == mtime
        assert len(list(objects_dir.iterdir())) == 1

    def test_put_leaves_no_temp_files(self, store, objects_dir):
        store.put("one")
        store.put("two")
        names = sorted(p.name for p in objects_dir.iterdir())
        assert names == sorted([hash_content("one"), hash_content("two")])

    def test_put_requires_existing_directory(self, tmp_path):
        missing = ContentStore(tmp_path / "not-created")
        with pytest.raises(StorageIOError):
            missing.put("content")
        assert not (tmp_path / "not-created").exists()


class TestGet:
    def test_round_trip_preserves_exact_text(self, store):
        content = "line one\r\nline two\n\nünïcödé ✓\n"
        assert store.get(store.put(content)) == content

    def test_missing_hash_returns_none(self, store):
        assert store.get(hash_content("never stored")) is None

    def test_exists(self, store):
        content_hash = store.put("present")
        assert store.exists(content_hash)
        assert not store.exists(hash_content("absent"))

    def test_invalid_utf8_is_corruption(self, store, objects_dir):
        content_hash = hash_content("x")
        (objects_dir / content_hash).write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(StoreCorruptionError):
            store.get(content_hash)

    def test_tampered_blob_is_corruption(self, store, objects_dir):
        content_hash = store.put("original")
        (objects_dir / content_hash).write_text("tampered", encoding="utf-8")
        with pytest.raises(StoreCorruptionError):
            store.get(content_hash)

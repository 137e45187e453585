"""
Tests for the cleanup service.
"""
import os
import time

import pytest

from app.services.cleanup import cleanup_stale_temp_files
from app.storage.exceptions import StorageError
from tests.helpers import byte_stream


def _make_temp_file(storage, name: str, age_seconds: float) -> None:
    storage.temp_path.mkdir(parents=True, exist_ok=True)
    path = storage.temp_path / name
    path.write_bytes(b"partial data")
    modified_at = time.time() - age_seconds
    os.utime(path, (modified_at, modified_at))


@pytest.mark.asyncio
async def test_cleanup_removes_only_stale_temp_files(storage):
    """Test stale partial writes are removed and fresh ones kept."""
    stale = "a" * 32 + ".part"
    fresh = "b" * 32 + ".part"
    _make_temp_file(storage, stale, age_seconds=7200)
    _make_temp_file(storage, fresh, age_seconds=10)

    removed = await cleanup_stale_temp_files(storage, max_age_seconds=3600)

    assert removed == 1
    assert not (storage.temp_path / stale).exists()
    assert (storage.temp_path / fresh).exists()


@pytest.mark.asyncio
async def test_cleanup_leaves_stored_objects(storage):
    """Test cleanup never touches committed objects."""
    key = await storage.put(byte_stream(b"keep me"), "keep.txt")
    _make_temp_file(storage, "c" * 32 + ".part", age_seconds=7200)

    removed = await cleanup_stale_temp_files(storage, max_age_seconds=3600)

    assert removed == 1
    assert await storage.read(key) == b"keep me"


@pytest.mark.asyncio
async def test_cleanup_without_temp_directory(storage):
    """Test cleanup on a backend that has never written anything."""
    assert await cleanup_stale_temp_files(storage, max_age_seconds=0) == 0


@pytest.mark.asyncio
async def test_list_temp_files(storage):
    """Test temp file listing reports name and modification time."""
    name = "d" * 32 + ".part"
    _make_temp_file(storage, name, age_seconds=100)
    (storage.temp_path / "readme.txt").write_bytes(b"should be ignored")

    temp_files = await storage.list_temp_files()

    assert [temp_file.name for temp_file in temp_files] == [name]
    assert time.time() - temp_files[0].modified_at >= 99


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["../1760871234567-cat.png", "readme.txt", "x.part"])
async def test_remove_temp_file_rejects_other_names(storage, name):
    """Test only temp file names can be removed through the temp API."""
    with pytest.raises(StorageError):
        await storage.remove_temp_file(name)

"""
Local filesystem storage implementation.

This module provides a local filesystem implementation of the storage backend
with async file operations. Objects live directly in the base directory under
their storage key; partial writes live in ``<base_path>/.tmp`` and are moved
into place with an atomic rename once complete.
"""
import asyncio
import mimetypes
import os
import re
import stat
import uuid
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os

from app.config import settings
from app.logging_config import setup_logging
from app.storage.base import ObjectInfo, StorageBackend, StoredObject, TempFileInfo
from app.storage.exceptions import (
    DeleteFailedError,
    FileSizeExceededError,
    ObjectNotFoundError,
    StorageError,
    WriteFailedError,
)
from app.storage.keys import KeyAllocator, display_name_from_key, is_valid_key, key_allocator

logger = setup_logging()

TEMP_DIR_NAME = ".tmp"
TEMP_SUFFIX = ".part"
TEMP_NAME_PATTERN = re.compile(r"^[0-9a-f]{32}\.part$")
CHUNK_SIZE = 64 * 1024  # 64KB
DEFAULT_CONTENT_TYPE = "application/octet-stream"
MAX_COMMIT_ATTEMPTS = 16

# Refuse to open symbolic links where the platform supports it
_OPEN_FLAGS_NOFOLLOW = getattr(os, "O_NOFOLLOW", 0)


def _open_nofollow(path: str, flags: int) -> int:
    return os.open(path, flags | _OPEN_FLAGS_NOFOLLOW)


class LocalStorageBackend(StorageBackend):
    """
    Local filesystem storage with async operations.

    Layout:
    <base_path>/<timestamp>-<name>     stored objects
    <base_path>/.tmp/<random>.part     writes in progress

    Objects are committed with os.link() within one filesystem, so readers
    never observe a partially written object and no per-key lock is needed.
    """

    def __init__(
        self,
        base_path: str | None = None,
        max_size_bytes: int | None = None,
        allocator: KeyAllocator | None = None,
    ):
        """
        Initialize local storage backend.

        Args:
            base_path: Base directory for file storage (default from config)
            max_size_bytes: Maximum object size in bytes (default from config)
            allocator: Key allocator (default is the process-wide allocator)
        """
        self.base_path = Path(base_path or settings.STORAGE_BASE_PATH)
        self.temp_path = self.base_path / TEMP_DIR_NAME
        self.max_size_bytes = (
            max_size_bytes if max_size_bytes is not None else settings.MAX_UPLOAD_SIZE_BYTES
        )
        self.allocator = allocator or key_allocator

    async def put(
        self,
        file_stream: AsyncIterator[bytes],
        display_name: str,
    ) -> str:
        """
        Stream file to a temporary file, then link it into place.

        Args:
            file_stream: Async iterator yielding file chunks
            display_name: Untrusted, client-supplied file name

        Returns:
            Storage key of the new object

        Raises:
            FileSizeExceededError: If the stream exceeds max_size_bytes
            WriteFailedError: If the write or commit fails
        """
        key = self.allocator.allocate(display_name)
        temp_path = self.temp_path / f"{uuid.uuid4().hex}{TEMP_SUFFIX}"
        total_size = 0

        try:
            self._ensure_directories()

            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in file_stream:
                    total_size += len(chunk)

                    # Check size limit against actual bytes, not the declared size
                    if total_size > self.max_size_bytes:
                        raise FileSizeExceededError(total_size, self.max_size_bytes)

                    await f.write(chunk)

                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())

            key = await self._commit(temp_path, key, display_name)

        except OSError as e:
            logger.error(
                f"Failed to write object {key!r} via {temp_path}: {str(e)}",
                exc_info=True,
            )
            raise WriteFailedError(display_name, e) from e

        finally:
            # After a commit the temp name is only a second link to the object
            self._discard_temp(temp_path)

        logger.info(f"Stored object {key!r} ({total_size} bytes)")
        return key

    async def get(self, key: str) -> StoredObject:
        """
        Open an object for streaming.

        The file is opened before this method returns, so a concurrent
        delete cannot truncate the read.

        Args:
            key: Storage key

        Returns:
            StoredObject streaming the object's bytes in 64KB chunks

        Raises:
            ObjectNotFoundError: If the key is unsafe or no object exists
        """
        file_path = self._resolve(key)

        try:
            f = await aiofiles.open(file_path, "rb", opener=_open_nofollow)
        except FileNotFoundError:
            raise ObjectNotFoundError(key) from None
        except OSError as e:
            # Symlinks, directories and unreadable entries are not objects
            logger.warning(f"Refusing to open {file_path}: {str(e)}")
            raise ObjectNotFoundError(key) from None

        file_stat = os.fstat(f.fileno())
        if not stat.S_ISREG(file_stat.st_mode):
            await f.close()
            raise ObjectNotFoundError(key)

        display_name = display_name_from_key(key)
        content_type = mimetypes.guess_type(display_name)[0] or DEFAULT_CONTENT_TYPE

        return StoredObject(
            key=key,
            display_name=display_name,
            size_bytes=file_stat.st_size,
            content_type=content_type,
            stream=self._iter_file(f),
            close=f.close,
        )

    def exists(self, key: str) -> bool:
        """
        Check if an object exists.

        Args:
            key: Storage key

        Returns:
            True if the key is safe and names a regular file
        """
        if not is_valid_key(key):
            return False
        file_path = self.base_path / key
        return file_path.is_file() and not file_path.is_symlink()

    async def delete(self, key: str) -> None:
        """
        Delete an object from storage.

        Args:
            key: Storage key

        Raises:
            ObjectNotFoundError: If the key is unsafe or no object exists
            DeleteFailedError: If removal fails
        """
        file_path = self._resolve(key)

        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError:
            raise ObjectNotFoundError(key) from None
        except OSError as e:
            logger.error(f"Failed to delete {file_path}: {str(e)}", exc_info=True)
            raise DeleteFailedError(key, e) from e

        logger.info(f"Deleted object {key!r}")

    async def list_objects(self) -> list[ObjectInfo]:
        """
        List stored objects.

        Only regular files whose names are valid keys are returned. The
        temporary area, subdirectories and symbolic links are skipped.

        Returns:
            ObjectInfo entries sorted by key (arrival order)
        """
        if not self.base_path.is_dir():
            return []

        objects = []

        with os.scandir(self.base_path) as entries:
            for entry in entries:
                if not is_valid_key(entry.name):
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue

                try:
                    size = entry.stat(follow_symlinks=False).st_size
                except FileNotFoundError:
                    # Deleted while scanning
                    continue

                objects.append(
                    ObjectInfo(
                        key=entry.name,
                        display_name=display_name_from_key(entry.name),
                        size_bytes=size,
                    )
                )

        objects.sort(key=lambda info: info.key)
        return objects

    async def list_temp_files(self) -> list[TempFileInfo]:
        """
        List partial writes in the temporary area.

        Returns:
            TempFileInfo for every ``.part`` file
        """
        if not self.temp_path.is_dir():
            return []

        temp_files = []

        for temp_file in self.temp_path.glob(f"*{TEMP_SUFFIX}"):
            try:
                modified_at = temp_file.stat().st_mtime
            except FileNotFoundError:
                # Committed or discarded while scanning
                continue
            temp_files.append(TempFileInfo(name=temp_file.name, modified_at=modified_at))

        return temp_files

    async def remove_temp_file(self, name: str) -> None:
        """
        Remove one temporary file.

        Args:
            name: Temporary file name from list_temp_files()

        Raises:
            StorageError: If name is not a temporary file name
        """
        if not TEMP_NAME_PATTERN.match(name):
            raise StorageError(f"Not a temporary file name: {name!r}")

        try:
            await aiofiles.os.remove(self.temp_path / name)
        except FileNotFoundError:
            # Already committed or removed
            pass

    def _resolve(self, key: str) -> Path:
        """
        Map a key to its file path, failing closed on unsafe keys.

        Args:
            key: Untrusted storage key

        Returns:
            Path inside base_path

        Raises:
            ObjectNotFoundError: If the key is not a well-formed storage key
        """
        if not is_valid_key(key):
            logger.warning(f"Rejected unsafe storage key: {key!r}")
            raise ObjectNotFoundError(key)
        return self.base_path / key

    async def _commit(self, temp_path: Path, key: str, display_name: str) -> str:
        """
        Link a finished temporary file into place under a free key.

        os.link() fails on an existing name, so an object stored by another
        process (or before a clock step backwards) is never replaced. A taken
        key is retried with the next allocated timestamp.

        Args:
            temp_path: Fully written and fsynced temporary file
            key: First key to try
            display_name: Untrusted, client-supplied file name

        Returns:
            The key the object was committed under

        Raises:
            FileExistsError: If every attempted key is taken
            OSError: If linking fails for any other reason
        """
        for _ in range(MAX_COMMIT_ATTEMPTS):
            try:
                await aiofiles.os.link(temp_path, self.base_path / key)
                return key
            except FileExistsError:
                logger.warning(f"Storage key {key!r} already taken, allocating another")
                key = self.allocator.allocate(display_name)

        raise FileExistsError(f"No free storage key for {display_name!r}")

    def _ensure_directories(self) -> None:
        """Ensure the base and temporary directories exist."""
        self.temp_path.mkdir(parents=True, exist_ok=True)

    def _discard_temp(self, temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove partial file {temp_path}: {str(e)}")

    @staticmethod
    async def _iter_file(f) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await f.read(CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            await f.close()

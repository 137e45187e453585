"""
Abstract base class for storage backends.

This module defines the interface that all storage backends must implement.
A backend exclusively owns its namespace: objects are created by put(),
removed by delete(), and never modified in between.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable


@dataclass
class ObjectInfo:
    """Listing entry for a stored object."""
    key: str
    display_name: str
    size_bytes: int


@dataclass
class StoredObject:
    """An opened stored object, ready to stream.

    close() releases the underlying handle whether or not the stream was
    consumed; calling it more than once is safe.
    """
    key: str
    display_name: str
    size_bytes: int
    content_type: str
    stream: AsyncIterator[bytes]
    close: Callable[[], Awaitable[None]]


@dataclass
class TempFileInfo:
    """A partial write left in the backend's temporary area."""
    name: str
    modified_at: float


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    All storage implementations must implement these methods. Keys are
    always generated by the backend, never taken from the client on write.
    """

    @abstractmethod
    async def put(
        self,
        file_stream: AsyncIterator[bytes],
        display_name: str,
    ) -> str:
        """
        Store a byte stream under a newly allocated key.

        The write is atomic: either the complete stream is visible under the
        returned key or nothing is.

        Args:
            file_stream: Async iterator yielding file chunks
            display_name: Untrusted, client-supplied file name

        Returns:
            Storage key of the new object

        Raises:
            FileSizeExceededError: If the stream exceeds the maximum size
            WriteFailedError: If the backing store fails
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> StoredObject:
        """
        Open a stored object for reading.

        Args:
            key: Storage key returned by put()

        Returns:
            StoredObject whose stream yields the object's bytes

        Raises:
            ObjectNotFoundError: If the key is unsafe or no object exists
        """
        pass

    async def read(self, key: str) -> bytes:
        """
        Read a whole object into memory.

        Raises:
            ObjectNotFoundError: If the key is unsafe or no object exists
        """
        stored = await self.get(key)
        return b"".join([chunk async for chunk in stored.stream])

    @abstractmethod
    def exists(self, key: str) -> bool:
        """
        Check if an object exists.

        Args:
            key: Storage key

        Returns:
            True if the key is safe and an object is stored under it
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Delete a stored object.

        Args:
            key: Storage key

        Raises:
            ObjectNotFoundError: If the key is unsafe or no object exists
            DeleteFailedError: If the backing store fails
        """
        pass

    @abstractmethod
    async def list_objects(self) -> list[ObjectInfo]:
        """
        List stored objects in arrival order.

        Computed fresh on every call.

        Returns:
            ObjectInfo entries for every object currently stored
        """
        pass

    # Temporary area maintenance

    @abstractmethod
    async def list_temp_files(self) -> list[TempFileInfo]:
        """
        List partial writes in the temporary area.

        Returns:
            TempFileInfo for every temporary file
        """
        pass

    @abstractmethod
    async def remove_temp_file(self, name: str) -> None:
        """
        Remove one temporary file.

        Args:
            name: Name as returned by list_temp_files()

        Raises:
            StorageError: If the name is not a temporary file name
        """
        pass

"""
File upload service.

This module composes the upload policy and the storage backend: metadata is
validated first, and only an accepted upload reaches storage.
"""
from dataclasses import dataclass
from typing import AsyncIterator

from app.logging_config import setup_logging
from app.storage.base import StorageBackend
from app.storage.exceptions import FileSizeExceededError, NoFileProvidedError
from app.storage.validation import SNIFF_LENGTH, UploadPolicy, normalize_content_type

logger = setup_logging()


@dataclass
class UploadResult:
    """Outcome of a successful upload."""
    key: str
    display_name: str
    content_type: str
    size_bytes: int


class _MeteredStream:
    """Async iterator that counts bytes and enforces the policy size limit."""

    def __init__(self, stream: AsyncIterator[bytes], max_size_bytes: int):
        self._stream = stream
        self._max_size_bytes = max_size_bytes
        self.total_size = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        chunk = await self._stream.__anext__()
        self.total_size += len(chunk)
        if self.total_size > self._max_size_bytes:
            raise FileSizeExceededError(self.total_size, self._max_size_bytes)
        return chunk


async def peek_stream(
    stream: AsyncIterator[bytes],
    size: int,
) -> tuple[bytes, AsyncIterator[bytes]]:
    """
    Read the first bytes of a stream without losing them.

    Args:
        stream: Source stream
        size: Number of leading bytes wanted (fewer if the stream is shorter)

    Returns:
        (head, replay) where replay yields the whole original stream
    """
    iterator = stream.__aiter__()
    buffered = []
    buffered_size = 0

    while buffered_size < size:
        try:
            chunk = await iterator.__anext__()
        except StopAsyncIteration:
            break
        buffered.append(chunk)
        buffered_size += len(chunk)

    async def replay():
        for chunk in buffered:
            yield chunk
        async for chunk in iterator:
            yield chunk

    return b"".join(buffered)[:size], replay()


async def store_upload(
    storage: StorageBackend,
    policy: UploadPolicy,
    file_stream: AsyncIterator[bytes],
    display_name: str | None,
    content_type: str | None,
    size_bytes: int | None = None,
) -> UploadResult:
    """
    Validate an upload and persist it.

    Validation runs before storage is touched. When the client did not
    declare a size, the limit is enforced on the actual bytes while
    streaming, and storage discards the partial write on overflow.

    Args:
        storage: Storage backend
        policy: Upload policy
        file_stream: Async iterator yielding file chunks
        display_name: Client-supplied file name
        content_type: Client-declared MIME type
        size_bytes: Client-declared size, if known

    Returns:
        UploadResult with the generated storage key

    Raises:
        NoFileProvidedError: If no file name was supplied
        FileSizeExceededError: If the upload is too large
        UnsupportedContentTypeError: If the type is not allowed
        ContentTypeMismatchError: If sniffing is enabled and the bytes disagree
        WriteFailedError: If storage fails
    """
    if not display_name:
        raise NoFileProvidedError()

    # Unknown size is checked as 0 here and metered below
    policy.check(size_bytes or 0, content_type)

    if policy.sniff_content:
        head, file_stream = await peek_stream(file_stream, SNIFF_LENGTH)
        policy.verify_content(head, content_type)

    metered = _MeteredStream(file_stream.__aiter__(), policy.max_size_bytes)
    key = await storage.put(metered, display_name)

    return UploadResult(
        key=key,
        display_name=display_name,
        content_type=normalize_content_type(content_type),
        size_bytes=metered.total_size,
    )

"""Shared helpers for building upload streams in tests."""
import os
from pathlib import Path

from tests.constants import PNG_SIGNATURE


async def byte_stream(data: bytes, chunk_size: int = 64 * 1024):
    """Yield data in chunks, like an upload arriving over the network."""
    for offset in range(0, len(data), chunk_size):
        yield data[offset:offset + chunk_size]


async def failing_stream(data: bytes, error: Exception):
    """Yield data once, then fail as a dropped connection would."""
    yield data
    raise error


def png_bytes(size: int = 1024) -> bytes:
    """Return `size` bytes starting with the PNG signature."""
    return PNG_SIGNATURE + bytes(i % 251 for i in range(size - len(PNG_SIGNATURE)))


def open_handles(path: Path) -> int:
    """Count this process's open descriptors on path (Linux only)."""
    target = str(path.resolve())
    count = 0
    for fd in os.listdir("/proc/self/fd"):
        try:
            if os.readlink(f"/proc/self/fd/{fd}") == target:
                count += 1
        except OSError:
            continue
    return count

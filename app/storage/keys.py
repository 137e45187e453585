"""
Storage key derivation.

This module turns untrusted, client-supplied file names into safe storage
keys. Keys use the timestamped policy: a fixed-width millisecond timestamp
followed by the sanitized display name, e.g. ``1760871234567-cat.png``.
Timestamps are issued by a monotonic allocator, so two uploads with the same
display name never share a key.
"""
import re
import threading
import time
from typing import Callable

# Allowed characters in a stored name: [0-9a-zA-Z._-]
UNSAFE_CHARS_PATTERN = re.compile(r"[^A-Za-z0-9._-]")
PATH_SEPARATOR_PATTERN = re.compile(r"[\\/]")
DOT_RUN_PATTERN = re.compile(r"\.{2,}")

TIMESTAMP_WIDTH = 13
MAX_KEY_LENGTH = 255
MAX_NAME_LENGTH = MAX_KEY_LENGTH - TIMESTAMP_WIDTH - 1
MAX_EXTENSION_LENGTH = 16
DEFAULT_NAME = "file"

KEY_PATTERN = re.compile(rf"^(\d{{{TIMESTAMP_WIDTH}}})-(.+)$")


def sanitize_filename(name: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Map an arbitrary client string to a filesystem-safe name.

    Rules:
    - Only the final path component is kept (both ``/`` and ``\\`` split)
    - Null bytes and other non-printable characters are dropped
    - Characters outside [0-9a-zA-Z._-] become ``_``
    - Runs of dots collapse to one, leading dots are stripped
    - Length is bounded, keeping the extension where possible

    Args:
        name: Untrusted display name
        max_length: Maximum length of the result

    Returns:
        Sanitized name, never empty

    Examples:
        >>> sanitize_filename("../../etc/passwd")
        'passwd'
        >>> sanitize_filename("my report (1).pdf")
        'my_report__1_.pdf'
    """
    name = PATH_SEPARATOR_PATTERN.split(name or "")[-1]
    name = "".join(ch for ch in name if ch.isprintable())
    name = UNSAFE_CHARS_PATTERN.sub("_", name)

    if len(name) > max_length:
        stem, dot, extension = name.rpartition(".")
        if dot and stem and len(extension) <= MAX_EXTENSION_LENGTH:
            name = stem[: max_length - len(extension) - 1] + "." + extension
        else:
            name = name[:max_length]

    name = DOT_RUN_PATTERN.sub(".", name).lstrip(".")
    return name or DEFAULT_NAME


def is_valid_key(key: str) -> bool:
    """
    Check that a key is exactly what the store would have generated.

    A key is valid only if sanitizing it is a no-op and it carries the
    timestamp prefix. Anything else (separators, ``..``, control bytes,
    dot-prefixed names) is rejected.

    Args:
        key: Candidate storage key, typically from a URL path

    Returns:
        True if the key is safe to resolve against the storage directory
    """
    if not key or len(key) > MAX_KEY_LENGTH:
        return False
    if sanitize_filename(key, max_length=MAX_KEY_LENGTH) != key:
        return False
    return KEY_PATTERN.match(key) is not None


def display_name_from_key(key: str) -> str:
    """Return the sanitized display name part of a key."""
    match = KEY_PATTERN.match(key)
    return match.group(2) if match else key


class KeyAllocator:
    """Thread-safe allocator of strictly increasing millisecond timestamps."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_timestamp(self) -> int:
        with self._lock:
            now = int(self._clock() * 1000)
            # Clock did not move (or went backwards): keep strictly increasing
            if now <= self._last:
                now = self._last + 1
            self._last = now
            return now

    def allocate(self, display_name: str) -> str:
        """
        Build a new storage key for a display name.

        Args:
            display_name: Untrusted, client-supplied file name

        Returns:
            Storage key of the form ``<timestamp>-<sanitized name>``
        """
        timestamp = self.next_timestamp()
        return f"{timestamp:0{TIMESTAMP_WIDTH}d}-{sanitize_filename(display_name)}"


# Shared by every backend instance in the process
key_allocator = KeyAllocator()

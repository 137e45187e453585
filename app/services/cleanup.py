"""
Cleanup service for abandoned partial writes.

A crash between opening a temporary file and renaming it into place leaves a
``.part`` file behind. This module removes such files once they are old
enough that no live upload can still own them.
"""
import time

from app.config import settings
from app.dependencies.storage import get_storage
from app.logging_config import setup_logging
from app.storage.base import StorageBackend
from app.storage.exceptions import StorageError

logger = setup_logging()


async def cleanup_stale_temp_files(
    storage: StorageBackend | None = None,
    max_age_seconds: int | None = None,
    now: float | None = None,
) -> int:
    """
    Remove temporary files older than max_age_seconds.

    Should be run at startup and may be run periodically.

    Args:
        storage: Optional storage backend. If not provided, uses get_storage().
        max_age_seconds: Age threshold (default from config)
        now: Current time as a Unix timestamp (default: time.time())

    Returns:
        Number of temporary files removed
    """
    if storage is None:
        storage = get_storage()
    if max_age_seconds is None:
        max_age_seconds = settings.TEMP_FILE_MAX_AGE_SECONDS
    if now is None:
        now = time.time()

    temp_files = await storage.list_temp_files()
    logger.info(f"Found {len(temp_files)} temporary files")

    removed = 0
    for temp_file in temp_files:
        if now - temp_file.modified_at < max_age_seconds:
            continue

        try:
            await storage.remove_temp_file(temp_file.name)
            removed += 1
        except (StorageError, OSError) as e:
            logger.error(f"Failed to remove temporary file {temp_file.name}: {str(e)}")

    logger.info(f"Cleaned up {removed} stale temporary files")
    return removed

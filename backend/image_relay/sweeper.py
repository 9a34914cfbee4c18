"""
Retention Sweeper

Deletes stored images whose last-modified time is more than 24 hours old.
Runs as a background task after each successful upload; it never reports
back to the request that triggered it.
"""

import os
import time
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Fixed retention window: 24 hours
RETENTION_SECONDS = 24 * 60 * 60


class RetentionSweeper:
    """
    Removes expired files from the storage directory.

    Sweeps are not serialized. Two overlapping sweeps may race on the same
    file; the loser sees it already gone and moves on.
    """

    def __init__(self, image_dir: Path):
        self.image_dir = Path(image_dir)

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Scan the storage directory once and delete expired files.

        Args:
            now: Reference time as epoch seconds (defaults to current time)

        Returns:
            Number of files removed.
        """
        now = time.time() if now is None else now

        try:
            entries = list(os.scandir(self.image_dir))
        except OSError as e:
            logger.error(f"[Sweeper] Error cleaning up old images: {e}")
            return 0

        removed = 0
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    continue

                age = now - entry.stat(follow_symlinks=False).st_mtime
                if age > RETENTION_SECONDS:
                    os.unlink(entry.path)
                    removed += 1
                    logger.info(f"[Sweeper] Deleted old image: {entry.name}")
            except FileNotFoundError:
                # Removed by a concurrent sweep or by hand
                logger.debug(f"[Sweeper] Already gone: {entry.name}")
            except OSError as e:
                logger.warning(f"[Sweeper] Error checking file {entry.name}: {e}")

        if removed:
            logger.info(f"[Sweeper] Removed {removed} expired images")
        return removed

    def run_detached(self) -> None:
        """Background entry point; failures are logged and never raised."""
        try:
            self.sweep()
        except Exception:
            logger.exception("[Sweeper] Sweep failed")

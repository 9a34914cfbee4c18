"""
Upload Store

Writes uploaded image bytes to the storage directory under a content-derived
name and hands back the public path they are served from.

File naming:
    <md5 hex>-<epoch ms>.<ext>     e.g. 9e107d9d372bb6826bd81d3542a419d6-1718000000000.png
"""

import os
import re
import time
import hashlib
import logging
import tempfile
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

from .errors import BadRequest, InternalError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"
PUBLIC_PREFIX = "/images"

_UNSAFE_EXT_CHARS = re.compile(r"[^a-z0-9+.\-]")


@dataclass
class StoredImage:
    """Result of a successful upload."""
    filename: str
    path: Path
    size_bytes: int

    @property
    def url(self) -> str:
        """Relative path the static endpoint serves this file from."""
        return f"{PUBLIC_PREFIX}/{self.filename}"


class ImageStore:
    """
    Stores uploaded images as flat files.

    The directory listing is the only record of what has been stored; there
    is no metadata file.
    """

    def __init__(self, image_dir: Path):
        self.image_dir = Path(image_dir)

    def ensure_dir(self) -> None:
        """Create the storage directory if it doesn't exist."""
        self.image_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"[ImageStore] Storage directory: {self.image_dir}")

    @staticmethod
    def fingerprint(data: bytes) -> str:
        """128-bit hex digest used to name the file (not an integrity check)."""
        return hashlib.md5(data).hexdigest()

    @staticmethod
    def extension_for(content_type: Optional[str]) -> str:
        """
        Derive a file extension from the subtype of a content type.

        image/png -> png, image/svg+xml -> svg+xml, missing -> jpg
        """
        if not content_type or not content_type.strip():
            return DEFAULT_EXTENSION

        media_type = content_type.split(";")[0].strip().lower()
        _, _, subtype = media_type.partition("/")
        ext = _UNSAFE_EXT_CHARS.sub("", subtype).strip(".")
        return ext or DEFAULT_EXTENSION

    def _make_filename(self, data: bytes, content_type: Optional[str]) -> str:
        image_id = f"{self.fingerprint(data)}-{int(time.time() * 1000)}"
        return f"{image_id}.{self.extension_for(content_type)}"

    def save(self, data: bytes, content_type: Optional[str] = None) -> StoredImage:
        """
        Write an uploaded image to disk.

        The bytes go to a temporary file in the same directory first and are
        then renamed into place, so a file never appears half-written under
        its final name.

        Raises:
            BadRequest: data is empty
            InternalError: the file could not be written
        """
        if not data:
            logger.info("[ImageStore] No image data received")
            raise BadRequest("No image data provided")

        filename = self._make_filename(data, content_type)
        final_path = self.image_dir / filename

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".upload-", suffix=".part", dir=self.image_dir)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, final_path)
        except OSError as e:
            logger.error(f"[ImageStore] Failed to save {filename}: {e}")
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
                except OSError as cleanup_error:
                    logger.warning(f"[ImageStore] Could not remove temp file {tmp_path}: {cleanup_error}")
            raise InternalError() from e

        logger.info(f"[ImageStore] Saved image to {final_path} ({len(data)} bytes)")
        return StoredImage(filename=filename, path=final_path, size_bytes=len(data))

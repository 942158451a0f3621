"""Disk storage for uploaded images.

Files are written to a single flat directory (``uploads/`` by default) that
is expected to exist already. Names are generated, never taken from the
client:

  * ``timestamp`` — ``<epoch-ms><ext>``; on collision the millisecond value
    is bumped until a free name is found
  * ``uuid``      — ``<uuid4 hex><ext>``
"""
import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from .schemas import StoredFile

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


def file_extension(filename: str) -> str:
    """Return the extension of *filename* including the dot, case preserved.

    Examples:
        >>> file_extension("photo.JPG")
        '.JPG'
        >>> file_extension("archive.tar.gz")
        '.gz'
        >>> file_extension("README")
        ''
    """
    return Path(filename).suffix


class UploadStorageService:
    """Writes uploaded files to the upload directory."""

    _instance: Optional["UploadStorageService"] = None
    _upload_dir: str = "uploads"
    _naming: str = "timestamp"

    def __init__(self, upload_dir: Optional[str] = None, naming: Optional[str] = None):
        if upload_dir:
            self._upload_dir = upload_dir
        if naming:
            self._naming = naming

    @classmethod
    def get_instance(
        cls, upload_dir: Optional[str] = None, naming: Optional[str] = None
    ) -> "UploadStorageService":
        """Get or create the singleton instance."""
        if cls._instance is None:
            cls._instance = cls(upload_dir, naming)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    @property
    def upload_dir(self) -> Path:
        return Path(self._upload_dir)

    def _open_exclusive(self, ext: str) -> Tuple[Path, BinaryIO]:
        """Create a new, not previously existing file and open it for writing.

        Raises:
            FileNotFoundError: If the upload directory does not exist.
        """
        if self._naming == "uuid":
            path = self.upload_dir / f"{uuid.uuid4().hex}{ext}"
            return path, path.open("xb")

        stamp = epoch_ms()
        while True:
            path = self.upload_dir / f"{stamp}{ext}"
            try:
                return path, path.open("xb")
            except FileExistsError:
                logger.debug("Name %s taken, trying next millisecond", path.name)
                stamp += 1

    def save(
        self,
        filename: str,
        stream: BinaryIO,
        content_type: Optional[str] = None,
    ) -> StoredFile:
        """Copy *stream* into a freshly named file in the upload directory.

        Args:
            filename: Original filename as sent by the client (only its
                extension is used).
            stream: Readable binary stream with the file content.
            content_type: Declared MIME type, recorded for logging only.

        Returns:
            StoredFile describing what was written.
        """
        path, fh = self._open_exclusive(file_extension(filename))
        with fh:
            shutil.copyfileobj(stream, fh)
            size_bytes = fh.tell()

        stored = StoredFile(
            filename=path.name,
            path=str(path),
            original_filename=filename,
            content_type=content_type or "application/octet-stream",
            size_bytes=size_bytes,
        )
        logger.info(f"Saved file: {path} ({size_bytes} bytes) from {filename!r}")
        return stored

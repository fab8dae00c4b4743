"""
Temporary storage for uploaded import files.

An upload lives on disk between the analyze and execute steps of one import
workflow and is deleted once the import has run.
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from talent_import.core.config import settings
from talent_import.domain.imports.processors.tabular_reader import detect_file_type

logger = logging.getLogger(__name__)


class UploadNotFoundError(FileNotFoundError):
    """Raised when a file id does not refer to a stored upload."""


class UploadStore:
    def __init__(self, base_dir: Optional[str] = None, max_size_mb: Optional[int] = None):
        self.base_dir = Path(base_dir or settings.upload_dir).resolve()
        self.max_bytes = (max_size_mb or settings.upload_max_file_size_mb) * 1024 * 1024

    def validate(self, file_content: bytes, filename: str) -> str:
        """
        Check the type and size of an upload without reading its content.

        Returns:
            The file type the reader will use

        Raises:
            FileStructureError: If the file type is unsupported
            ValueError: If the file exceeds the size limit
        """
        file_type = detect_file_type(filename)
        if len(file_content) > self.max_bytes:
            raise ValueError(
                f"File is {len(file_content) / (1024 * 1024):.1f} MB; the limit is {self.max_bytes // (1024 * 1024)} MB"
            )
        return file_type

    def save(self, file_content: bytes, filename: str) -> str:
        """Persist an upload and return its file id (``<uuid><extension>``)."""
        self.validate(file_content, filename)

        extension = Path(filename).suffix.lower()
        file_id = f"{uuid.uuid4().hex}{extension}"
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.path_for(file_id).write_bytes(file_content)
        logger.info("Stored upload %s (%s, %d bytes)", file_id, filename, len(file_content))
        return file_id

    def path_for(self, file_id: str) -> Path:
        """Resolve a file id inside the upload directory, rejecting path traversal."""
        safe_name = os.path.basename(file_id or "")
        if not safe_name or safe_name != file_id:
            raise ValueError("Invalid file ID")
        path = (self.base_dir / safe_name).resolve()
        if path.parent != self.base_dir:
            raise ValueError("Invalid file ID")
        return path

    def load(self, file_id: str) -> bytes:
        path = self.path_for(file_id)
        if not path.is_file():
            raise UploadNotFoundError(f"Upload not found: {file_id}")
        return path.read_bytes()

    def release(self, file_id: str) -> None:
        """Delete an upload; a missing file is not an error."""
        try:
            self.path_for(file_id).unlink()
            logger.info("Released upload %s", file_id)
        except FileNotFoundError:
            logger.debug("Upload %s already removed", file_id)
        except OSError as e:
            logger.warning("Could not remove upload %s: %s", file_id, e)

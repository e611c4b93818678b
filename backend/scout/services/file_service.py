"""
Knowledge Scout Backend - File Storage Service
==============================================

What:  Validates uploaded documents and stores them on disk.
How:   Extension and size checks, then an async write to a date-organized
       directory under a UUID filename.
Who:   DocumentService during upload, reprocess and delete.

Directory Structure:
    uploads/
    └── 2025/
        └── 01/
            └── 15/
                ├── a1b2c3d4-....pdf
                └── e5f6g7h8-....txt

Attack vectors prevented:
    - Path traversal: stored names contain no user input
    - DoS via large files: size limit checked before writing
    - Filename collision: UUID names
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from scout.exceptions import FileStorageError, PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

# Extension → canonical MIME type
ALLOWED_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
}


class FileService:

    def __init__(self, storage_root: str, max_upload_size: int):
        self.storage_root = Path(storage_root).resolve()
        self.max_upload_size = max_upload_size
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> Tuple[str, str]:
        """
        Returns:
            (extension, canonical MIME type)

        Raises:
            ValidationError if the extension is not supported.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_TYPES:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_TYPES))}"
                ),
                field="document",
                context={"extension": ext, "allowed": sorted(ALLOWED_TYPES)},
            )
        return ext, ALLOWED_TYPES[ext]

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="Uploaded file is empty", field="document")
        if size > self.max_upload_size:
            raise PayloadTooLargeError(limit=self.max_upload_size, context={"actual_size": size})

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            FileStorageError if the path escapes the storage root.
        """
        path = (self.storage_root / relative_path).resolve()
        if self.storage_root not in path.parents:
            raise FileStorageError(
                message="Invalid storage path",
                context={"relative_path": relative_path},
            )
        return path

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write content under a fresh name.

        Returns:
            Relative path from the storage root (stored on the Document row).
        """
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded document. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def read_file(self, relative_path: str) -> bytes:
        path = self.resolve(relative_path)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise FileStorageError(
                message="Stored document could not be read",
                context={"path": str(path), "os_error": str(e)},
            ) from e

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        declared_type: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Complete validation and storage pipeline.

        Validation order (cheapest first):
            1. Extension
            2. Size
            3. Write to disk

        `declared_type` (the multipart part's content type) is only logged
        when it disagrees with the extension; browsers send
        application/octet-stream for many text formats.

        Returns:
            (relative_path, mime_type)
        """
        ext, mime_type = self.validate_extension(filename)
        self.validate_size(len(content))

        if declared_type and declared_type.split(";")[0].strip() not in (
            mime_type,
            "application/octet-stream",
        ):
            logger.info(
                "Upload %s declared %s, stored as %s", filename, declared_type, mime_type
            )

        relative_path = await self.store_file(content, ext)
        return relative_path, mime_type

    async def cleanup_file(self, relative_path: str) -> None:
        """
        Best-effort removal of a stored file. Errors are logged, not raised:
        the database row is already gone and a leftover file is harmless.
        """
        try:
            path = self.resolve(relative_path)
            if path.exists():
                os.remove(path)
                logger.info("Removed stored file: %s", path.name)
        except (OSError, FileStorageError) as e:
            logger.warning("Failed to remove stored file %s: %s", relative_path, e)

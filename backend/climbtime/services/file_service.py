"""
ClimbTime Backend - File Storage Service
==========================================

What:  Validation, storage and lookup of uploaded profile and banner images.
Who:   routes/profile.py (PUT /api/profile) and routes/files.py (serving).
When:  Only when a profile update carries an actual file; data URLs sent by
       the profile editor are stored on the user row as-is.

Checks, cheapest first:
    1. Extension in {.png, .jpg, .jpeg}
    2. Size under settings.max_file_size
    3. Declared content type is an image type we accept
    4. UUID filename in a date-organized directory (no user input in the path)

Directory Structure:
    storage/
    └── profile/
        └── 2024/01/15/a1b2c3d4-....jpg
    └── banner/
        └── 2024/01/15/e5f6g7h8-....png
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from climbtime.config import settings
from climbtime.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

UPLOAD_CATEGORIES = {"profile", "banner"}

PUBLIC_PREFIX = "/api/files/"


class FileService:
    """
    Manages upload validation, storage and safe path resolution.

    Lifecycle of an uploaded file:
        1. Route reads the UploadFile → FileService.validate_and_store()
        2. Extension, size and content-type checks
        3. Bytes written to <storage_root>/<category>/YYYY/MM/DD/<uuid><ext>
        4. Public URL (/api/files/<relative path>) stored on the user row
        5. On a later failure in the same request: cleanup_file()
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'unknown'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, actual_size: int) -> None:
        max_mb = settings.max_file_size / (1024 * 1024)
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")
        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_content_type(self, content_type: Optional[str]) -> None:
        """
        Check the content type declared by the client.

        A missing content type is accepted (some clients omit it for file
        parts) and the extension check stands on its own.
        """
        if not content_type:
            return
        mime = content_type.split(";")[0].strip().lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="file",
                context={"content_type": mime, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )

    def _generate_storage_path(self, category: str, extension: str) -> Tuple[Path, str]:
        """
        Returns: (absolute_path, relative_path_from_storage_root)
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{category}/{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    async def store_file(self, content: bytes, category: str, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk with async I/O.

        Raises:
            FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(category, extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Best-effort removal of a stored file.

        Failures are logged and swallowed: a leftover file is not a
        user-facing error.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        category: str = "profile",
    ) -> Tuple[str, str]:
        """
        Complete validation and storage pipeline.

        Returns: (absolute_path, public_url)
        """
        if category not in UPLOAD_CATEGORIES:
            raise ValueError(f"Unknown upload category: {category}")

        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        self.validate_content_type(content_type)

        absolute_path, relative_path = await self.store_file(content, category, ext)
        return absolute_path, self.public_url(relative_path)

    @staticmethod
    def public_url(relative_path: str) -> str:
        return f"{PUBLIC_PREFIX}{relative_path}"

    def resolve(self, file_path: str) -> Path:
        """
        Map a /api/files/<file_path> request onto the storage directory.

        Raises:
            ValidationError: the path escapes the storage root (../ tricks)
            NotFoundError: no such file
        """
        full_path = (self.storage_root / file_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            logger.warning("Rejected file path outside storage root: %s", file_path)
            raise ValidationError(message="Invalid file path")

        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=file_path)
        return full_path


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()

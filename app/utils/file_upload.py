# app/utils/file_upload.py

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile

from app.core.config import settings
from app.services.events import StoredFileReleased

logger = logging.getLogger(__name__)

# Allowed file extensions
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB


class FileStorageService:
    """Stores uploaded media under UUID names and releases it by relative path."""

    def __init__(self, base_storage_path: str = "storage"):
        """
        Args:
            base_storage_path: Base directory for file storage (relative to project root)
        """
        self.base_storage_path = Path(base_storage_path)

    def _get_file_extension(self, filename: str) -> str:
        return Path(filename).suffix.lower()

    def _validate_image(self, file: UploadFile) -> None:
        if not file.filename:
            raise HTTPException(status_code=400, detail="No filename provided")

        extension = self._get_file_extension(file.filename)
        if extension not in ALLOWED_IMAGE_EXTENSIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}",
            )

    def _resolve(self, relative_path: str) -> Optional[Path]:
        """Absolute path inside the storage root, or None for paths escaping it."""
        root = self.base_storage_path.resolve()
        file_path = (root / relative_path).resolve()
        if root not in file_path.parents:
            return None
        return file_path

    async def save_image(self, file: UploadFile, folder: str = "voices") -> str:
        """
        Save an uploaded image with UUID naming.

        Returns:
            Relative path for database storage (e.g. 'voices/uuid.jpg')

        Raises:
            HTTPException: If file validation fails or save fails
        """
        self._validate_image(file)

        try:
            contents = await file.read()
        finally:
            await file.seek(0)

        if len(contents) > MAX_IMAGE_SIZE:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds maximum allowed size of {MAX_IMAGE_SIZE // (1024 * 1024)}MB",
            )
        if not contents:
            raise HTTPException(status_code=400, detail="Empty file uploaded")

        uuid_filename = f"{uuid.uuid4()}{self._get_file_extension(file.filename)}"
        folder_path = self.base_storage_path / folder
        folder_path.mkdir(parents=True, exist_ok=True)

        try:
            with open(folder_path / uuid_filename, "wb") as f:
                f.write(contents)
        except OSError as e:
            logger.error(f"Failed to store {uuid_filename}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Error saving file")

        return f"{folder}/{uuid_filename}"

    def delete(self, relative_path: str) -> bool:
        """
        Delete a stored file. Failures are logged, never raised.

        Returns:
            True if a file was removed, False otherwise
        """
        file_path = self._resolve(relative_path)
        if file_path is None:
            logger.warning(f"Refusing to delete path outside storage: {relative_path}")
            return False
        try:
            if file_path.is_file():
                file_path.unlink()
                logger.info(f"Released stored file {relative_path}")
                return True
            return False
        except OSError as e:
            logger.error(f"Storage cleanup failed for {relative_path}: {e}")
            return False


# Create a singleton instance
file_storage_service = FileStorageService(settings.upload_dir)


def release_stored_file(event: StoredFileReleased) -> None:
    file_storage_service.delete(event.path)

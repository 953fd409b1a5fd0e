"""
Upload Service

Stores composer media on local disk under the uploads directory and
maps ``/uploads/`` URLs back to files for re-hosting.
"""

import random
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import structlog
from fastapi import UploadFile

from unisocial.config.settings import Settings, get_settings
from unisocial.integrations.media_host import guess_mime_type
from unisocial.utils.error_handling import ValidationError

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".mp4", ".mov", ".avi", ".webm"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".webm"}
CHUNK_SIZE = 1024 * 1024

LOCAL_HOSTS = {"localhost", "127.0.0.1"}


class UploadService:
    """Local media storage."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.upload_dir = Path(self.settings.upload_dir)
        self.max_bytes = self.settings.max_upload_size_mb * 1024 * 1024
        self.logger = structlog.get_logger(__name__)

    def public_url(self, filename: str) -> str:
        return f"{self.settings.base_url.rstrip('/')}/uploads/{filename}"

    @staticmethod
    def stored_name(original_name: str) -> str:
        ext = Path(original_name).suffix.lower()
        return f"{int(time.time() * 1000)}-{random.randint(0, 999999):06d}{ext}"

    def validate(self, files: List[UploadFile]) -> None:
        if not files:
            raise ValidationError("upload_no_files", field="files")
        if len(files) > self.settings.max_upload_files:
            raise ValidationError(
                "upload_too_many",
                field="files",
                params={"max_files": self.settings.max_upload_files},
            )
        for upload in files:
            if Path(upload.filename or "").suffix.lower() not in ALLOWED_EXTENSIONS:
                raise ValidationError("upload_invalid_type", field="files", extra={"filename": upload.filename})

    async def save(self, files: List[UploadFile]) -> List[Dict[str, Any]]:
        """
        Validate and store uploaded files.

        Returns:
            One descriptor per file, ready to be sent back as ``mediaItems``
        """
        self.validate(files)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        saved: List[Dict[str, Any]] = []
        written: List[Path] = []
        try:
            for upload in files:
                original_name = upload.filename or "upload"
                filename = self.stored_name(original_name)
                path = self.upload_dir / filename
                size = await self._write(upload, path)
                written.append(path)

                ext = path.suffix.lower()
                saved.append({
                    "filename": filename,
                    "originalName": original_name,
                    "size": size,
                    "mimetype": upload.content_type or guess_mime_type(original_name),
                    "url": self.public_url(filename),
                    "type": "video" if ext in VIDEO_EXTENSIONS else "image",
                })
        except ValidationError:
            for path in written:
                path.unlink(missing_ok=True)
            raise

        self.logger.info("Files uploaded", count=len(saved))
        return saved

    async def _write(self, upload: UploadFile, path: Path) -> int:
        size = 0
        with path.open("wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                size += len(chunk)
                if size > self.max_bytes:
                    out.close()
                    path.unlink(missing_ok=True)
                    raise ValidationError(
                        "upload_too_large",
                        field="files",
                        params={"max_mb": self.settings.max_upload_size_mb},
                    )
                out.write(chunk)
        return size

    def local_path(self, url: str) -> Optional[Path]:
        """
        The stored file behind a URL served by this server, if any.

        Only URLs on this server's base URL or a localhost host are local.
        """
        parsed = urlparse(url)
        base = urlparse(self.settings.base_url)
        if parsed.netloc != base.netloc and parsed.hostname not in LOCAL_HOSTS:
            return None
        if not parsed.path.startswith("/uploads/"):
            return None

        filename = Path(parsed.path).name
        path = self.upload_dir / filename
        return path if path.is_file() else None

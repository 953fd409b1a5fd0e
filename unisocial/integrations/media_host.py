"""
Public Media Host Integration

Late fetches media by URL, so files uploaded to this server must be
re-hosted somewhere publicly reachable first. catbox.moe accepts
anonymous uploads and answers with the public URL as plain text.
"""

import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

import httpx

from unisocial.config.settings import get_settings
from unisocial.integrations.http import VendorClient
from unisocial.utils.error_handling import ExternalServiceError


class MediaHostError(ExternalServiceError):
    service_name = "MediaHost"


MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".webm": "video/webm",
}


def guess_mime_type(filename: str) -> str:
    ext = Path(filename).suffix.lower()
    return MIME_TYPES.get(ext) or mimetypes.guess_type(filename)[0] or "application/octet-stream"


class MediaHostClient(VendorClient):
    """Anonymous file upload to catbox.moe."""

    service = "media_host"
    error_class = MediaHostError

    def __init__(
        self,
        upload_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        super().__init__(upload_url or settings.media_host_url, transport=transport, timeout=120.0)

    async def upload_file(self, path: Path) -> str:
        """
        Upload a local file and return its public URL.

        Raises:
            MediaHostError: If the upload fails or the host answers without a URL
        """
        content = await asyncio.to_thread(path.read_bytes)
        response = await self._send(
            "POST",
            self.base_url,
            "upload_file",
            data={"reqtype": "fileupload"},
            files={"fileToUpload": (path.name, content, guess_mime_type(path.name))},
        )
        url = response.text.strip()
        if not url.startswith("http"):
            raise MediaHostError(url or "empty response", upstream_status=response.status_code)
        return url

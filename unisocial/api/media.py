"""
Media and Service API Endpoints

File uploads for the composer plus the public health and platform
catalogue endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List

import structlog
from fastapi import APIRouter, Depends, File, UploadFile

from unisocial.api.deps import get_lang, get_upload_service
from unisocial.models.platform import PlatformsResponse, platform_catalogue
from unisocial.models.schemas.common import ErrorResponse, HealthCheckResponse
from unisocial.models.tables import UserRow
from unisocial.services.uploads import UploadService
from unisocial.utils.auth import get_current_user
from unisocial.utils.logger import log_user_action

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.post(
    "/upload",
    responses={400: {"model": ErrorResponse, "description": "No files, too many, too large or wrong type"}}
)
async def upload_files(
    files: List[UploadFile] = File(default=[]),
    current_user: UserRow = Depends(get_current_user),
    uploads: UploadService = Depends(get_upload_service),
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Store composer media and return descriptors usable as ``mediaItems``.

    Files are served back from ``/uploads/`` and re-hosted publicly when a
    post is published.
    """
    saved = await uploads.save(files)
    log_user_action(current_user.id, "upload_media", resource_type="media", count=len(saved))
    return {"files": saved}


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(lang: str = Depends(get_lang)) -> HealthCheckResponse:
    """Health check endpoint for monitoring and load balancers."""
    return HealthCheckResponse(
        status="ok",
        timestamp=datetime.utcnow().isoformat() + "Z",
        language=lang,
    )


@router.get("/platforms", response_model=PlatformsResponse)
async def list_platforms(lang: str = Depends(get_lang)) -> PlatformsResponse:
    return platform_catalogue(lang)

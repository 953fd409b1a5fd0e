"""
Tests for Media and Service API Endpoints

This module contains tests for composer uploads, the health check and
the public platform catalogue.
"""

from pathlib import Path

import pytest
from fastapi import status
from httpx import AsyncClient

from unisocial.config.settings import get_settings


class TestUpload:
    """Test composer media uploads."""

    @pytest.mark.asyncio
    async def test_upload_image_and_video(self, async_client: AsyncClient, auth_headers):
        files = [
            ("files", ("photo.PNG", b"\x89PNG fake", "image/png")),
            ("files", ("clip.mp4", b"fake video", "video/mp4")),
        ]

        response = await async_client.post("/api/upload", files=files, headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        image, video = response.json()["files"]
        assert image["originalName"] == "photo.PNG"
        assert image["filename"].endswith(".png")
        assert image["type"] == "image"
        assert image["size"] == len(b"\x89PNG fake")
        assert image["url"] == f"http://localhost:3001/uploads/{image['filename']}"
        assert video["type"] == "video"
        assert (Path(get_settings().upload_dir) / image["filename"]).read_bytes() == b"\x89PNG fake"

    @pytest.mark.asyncio
    async def test_upload_rejects_unknown_type(self, async_client: AsyncClient, auth_headers):
        files = [("files", ("notes.exe", b"MZ", "application/octet-stream"))]

        response = await async_client.post("/api/upload", files=files, headers=auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["filename"] == "notes.exe"

    @pytest.mark.asyncio
    async def test_upload_requires_files(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post("/api/upload", headers={**auth_headers, "X-Language": "en"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "No files to upload."

    @pytest.mark.asyncio
    async def test_upload_requires_login(self, async_client: AsyncClient):
        files = [("files", ("photo.png", b"x", "image/png"))]

        response = await async_client.post("/api/upload", files=files)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestServiceEndpoints:

    @pytest.mark.asyncio
    async def test_health_check(self, async_client: AsyncClient):
        response = await async_client.get("/api/health", params={"lang": "ja"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["timestamp"].endswith("Z")
        assert data["language"] == "ja"
        assert response.headers["content-language"] == "ja"
        assert "x-process-time" in response.headers

    @pytest.mark.asyncio
    async def test_unsupported_language_falls_back_to_korean(self, async_client: AsyncClient):
        response = await async_client.get("/api/health", headers={"Accept-Language": "fr-FR,fr;q=0.9"})

        assert response.json()["language"] == "ko"

    @pytest.mark.asyncio
    async def test_platform_catalogue(self, async_client: AsyncClient):
        response = await async_client.get("/api/platforms", headers={"X-Language": "ja"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert "twitter" in data["platforms"]
        assert data["names"]["googlebusiness"] == "Googleビジネス"
        assert data["names"]["twitter"] == "X (Twitter)"

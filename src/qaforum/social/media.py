"""
Media storage for post attachments.

``local`` writes files under ``media_root`` and serves them from
``media_base_url``; ``cloudinary`` uses Cloudinary's signed upload API. Files
are checked (type, size, count) before any upload starts, and a failed upload
raises so the caller can abandon the post.
"""

from __future__ import annotations

import asyncio
import hashlib
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import structlog

from qaforum.config import get_settings
from qaforum.errors import InternalError, ValidationError

logger = structlog.get_logger()

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
}


@dataclass(frozen=True)
class MediaFile:
    filename: str
    content_type: str
    data: bytes

    @property
    def kind(self) -> str:
        return "video" if self.content_type.startswith("video/") else "image"


def validate_files(files: list[MediaFile]) -> None:
    """
    Raises:
        ValidationError: Too many files, wrong type, or a file over the size cap.
    """
    settings = get_settings()
    if len(files) > settings.media_max_files:
        msg = f"You can attach at most {settings.media_max_files} files"
        raise ValidationError(msg)
    for f in files:
        if not (f.content_type.startswith("image/") or f.content_type.startswith("video/")):
            msg = "Only images and videos are allowed"
            raise ValidationError(msg)
        if len(f.data) > settings.media_max_bytes:
            msg = f"{f.filename} is larger than {settings.media_max_bytes // (1024 * 1024)} MB"
            raise ValidationError(msg)


def _public_id(user_id: int) -> str:
    return f"post_{user_id}_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class MediaStorage(ABC):
    """Stores one file and describes where it lives."""

    @abstractmethod
    async def store(self, user_id: int, media: MediaFile) -> dict[str, Any]:
        """Return ``{"type", "url", "publicId"}``. Raises on failure."""
        ...

    async def store_all(self, user_id: int, files: list[MediaFile]) -> list[dict[str, Any]]:
        stored = []
        for media in files:
            try:
                stored.append(await self.store(user_id, media))
            except Exception as e:
                logger.exception("media_upload_failed", user_id=user_id, filename=media.filename)
                msg = "Error uploading media files"
                raise InternalError(msg) from e
        return stored


class LocalMediaStorage(MediaStorage):
    def __init__(self, root: str, base_url: str) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def store(self, user_id: int, media: MediaFile) -> dict[str, Any]:
        public_id = _public_id(user_id)
        name = public_id + _EXTENSIONS.get(media.content_type, Path(media.filename).suffix)
        path = self.root / name
        await asyncio.to_thread(self._write, path, media.data)
        logger.info("media_stored", backend="local", path=str(path), size=len(media.data))
        return {"type": media.kind, "url": f"{self.base_url}/{name}", "publicId": public_id}

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


class CloudinaryMediaStorage(MediaStorage):
    """Signed uploads to Cloudinary's REST API."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, folder: str, timeout: float = 30.0) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout

    def _sign(self, params: dict[str, str]) -> str:
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.sha1((to_sign + self.api_secret).encode()).hexdigest()  # noqa: S324

    async def store(self, user_id: int, media: MediaFile) -> dict[str, Any]:
        params = {
            "folder": self.folder,
            "public_id": _public_id(user_id),
            "timestamp": str(int(time.time())),
        }
        data = {**params, "api_key": self.api_key, "signature": self._sign(params)}
        url = f"https://api.cloudinary.com/v1_1/{self.cloud_name}/{media.kind}/upload"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                url, data=data, files={"file": (media.filename, media.data, media.content_type)}
            )
            response.raise_for_status()
            body = response.json()
        logger.info("media_stored", backend="cloudinary", public_id=body.get("public_id"))
        return {"type": media.kind, "url": body["secure_url"], "publicId": body["public_id"]}


def _create_storage() -> MediaStorage:
    settings = get_settings()
    if settings.media_backend == "cloudinary":
        return CloudinaryMediaStorage(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            settings.cloudinary_folder,
        )
    return LocalMediaStorage(settings.media_root, settings.media_base_url)


# Module-level singleton
_storage: MediaStorage | None = None


def get_media_storage() -> MediaStorage:
    global _storage  # noqa: PLW0603
    if _storage is None:
        _storage = _create_storage()
    return _storage


def set_media_storage(storage: MediaStorage) -> None:
    """Install a specific storage instance (used by tests)."""
    global _storage  # noqa: PLW0603
    _storage = storage


def reset_media_storage() -> None:
    global _storage  # noqa: PLW0603
    _storage = None

"""
Media store - persists uploaded item media and returns {url, type, filename, size}.
The local implementation writes under MEDIA_ROOT, served at MEDIA_URL_PREFIX.
"""

import uuid
from pathlib import Path
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from marketbook.config import get_settings
from marketbook.core.errors import ValidationError
from marketbook.db.models.enums import MediaKind

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
    "video/webm",
}


class LocalMediaStore:
    def __init__(self, root: str | Path, url_prefix: str, max_bytes: int, max_files: int):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes
        self.max_files = max_files

    async def check(self, uploads: list[UploadFile]) -> None:
        """Reject bad uploads before any state changes."""
        if len(uploads) > self.max_files:
            raise ValidationError(f"At most {self.max_files} media files per request")
        for upload in uploads:
            if upload.content_type not in ALLOWED_CONTENT_TYPES:
                raise ValidationError("Invalid file type. Only images and videos are allowed.")
            if await self._size_of(upload) > self.max_bytes:
                raise ValidationError(f"{upload.filename} exceeds the {self.max_bytes} byte limit")

    @staticmethod
    async def _size_of(upload: UploadFile) -> int:
        if upload.size is not None:
            return upload.size
        # Size unknown until read; rewind so save() sees the whole file
        size = len(await upload.read())
        await upload.seek(0)
        return size

    async def save(self, upload: UploadFile) -> dict[str, Any]:
        content = await upload.read()
        filename = uuid.uuid4().hex + Path(upload.filename or "").suffix.lower()
        self.root.mkdir(parents=True, exist_ok=True)
        await run_in_threadpool((self.root / filename).write_bytes, content)
        kind = MediaKind.IMAGE if (upload.content_type or "").startswith("image/") else MediaKind.VIDEO
        return {
            "url": f"{self.url_prefix}/{filename}",
            "type": kind.value,
            "filename": filename,
            "size": len(content),
        }

    async def save_all(self, uploads: list[UploadFile]) -> list[dict[str, Any]]:
        """Store every upload, or none of them."""
        saved: list[dict[str, Any]] = []
        try:
            for upload in uploads:
                saved.append(await self.save(upload))
        except Exception:
            await self.discard(saved)
            raise
        return saved

    async def discard(self, media_files: list[dict[str, Any]]) -> None:
        """Remove stored files that never made it into an item."""
        for media in media_files:
            path = self.root / media["filename"]
            await run_in_threadpool(path.unlink, missing_ok=True)


def get_media_store() -> LocalMediaStore:
    settings = get_settings()
    return LocalMediaStore(
        settings.media_root,
        settings.media_url_prefix,
        settings.max_upload_bytes,
        settings.max_media_files,
    )

"""Local filesystem store for payment proof files."""

from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

from groupdesk.config import settings
from groupdesk.exceptions import NotFoundException

logger = logging.getLogger(__name__)


def safe_filename(filename: str | None) -> str:
    name = (filename or "upload.bin").replace("/", "_").replace("\\", "_").strip()
    return name or "upload.bin"


def content_disposition(filename: str) -> str:
    """Attachment header value; names that need escaping go in the RFC 5987 ``filename*`` form."""
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


class LocalAttachmentStorage:
    """Stores bytes under ``base_dir/<storage_key>``. Keys never contain user-supplied paths."""

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = Path(base_dir or settings.attachment_storage_dir)

    def _path(self, storage_key: str) -> Path:
        return self.base_dir / storage_key

    def save(self, storage_key: str, data: bytes) -> None:
        path = self._path(storage_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored attachment %s (%d bytes)", storage_key, len(data))

    def read(self, storage_key: str) -> bytes:
        path = self._path(storage_key)
        if not path.is_file():
            raise NotFoundException(f"Attachment content {storage_key} not found")
        return path.read_bytes()

    def delete(self, storage_key: str) -> None:
        self._path(storage_key).unlink(missing_ok=True)

"""Local disk storage for logos and receipt images."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from uuid import uuid4

from loguru import logger

from smart_rewards_api.core.settings import settings
from smart_rewards_api.services.errors import NotFoundError, PermissionDeniedError, ValidationFailedError

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
CONTENT_TYPES_BY_SUFFIX = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
UPLOAD_URL_PREFIX = "/api/v1/uploads"


@dataclass
class StoredUpload:
    url: str
    filename: str
    original_name: str
    size: int
    content_type: str


def _root(upload_dir: str | Path | None) -> Path:
    return Path(upload_dir or settings.upload_dir).resolve()


def save_image(
    original_name: str,
    content_type: str | None,
    data: bytes,
    *,
    upload_dir: str | Path | None = None,
    max_bytes: int | None = None,
) -> StoredUpload:
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailedError("Invalid file type. Only images are allowed.")
    limit = max_bytes if max_bytes is not None else settings.upload_max_bytes
    if len(data) > limit:
        raise ValidationFailedError(f"File too large. Maximum size is {limit // (1024 * 1024)}MB.")

    suffix = PurePosixPath(original_name or "").suffix.lower()
    if suffix not in CONTENT_TYPES_BY_SUFFIX:
        suffix = ".jpg" if content_type in {"image/jpeg", "image/jpg"} else "." + content_type.split("/", 1)[1]
    filename = f"{uuid4()}{suffix}"

    root = _root(upload_dir)
    root.mkdir(parents=True, exist_ok=True)
    (root / filename).write_bytes(data)
    logger.info("Stored upload", filename=filename, original_name=original_name, size=len(data))
    return StoredUpload(
        url=f"{UPLOAD_URL_PREFIX}/{filename}",
        filename=filename,
        original_name=original_name,
        size=len(data),
        content_type=content_type,
    )


def resolve_upload(path: str, *, upload_dir: str | Path | None = None) -> tuple[Path, str]:
    """Return the file on disk and its media type, refusing paths outside the upload root."""

    root = _root(upload_dir)
    candidate = (root / path).resolve()
    if candidate != root and root not in candidate.parents:
        raise PermissionDeniedError("Forbidden")
    if not candidate.is_file():
        raise NotFoundError("File not found")
    return candidate, CONTENT_TYPES_BY_SUFFIX.get(candidate.suffix.lower(), "application/octet-stream")

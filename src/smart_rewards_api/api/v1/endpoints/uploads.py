"""Image upload and retrieval."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel

from smart_rewards_api.api.dependencies.session import require_user
from smart_rewards_api.api.errors import as_http_exception
from smart_rewards_api.core.settings import settings
from smart_rewards_api.models.user import User
from smart_rewards_api.services.errors import RewardsError
from smart_rewards_api.services.uploads import resolve_upload, save_image

router = APIRouter(prefix="/uploads", tags=["Uploads"])


class UploadResponse(BaseModel):
    message: str
    url: str
    filename: str
    originalName: str
    size: int
    type: str


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile | None = File(None),
    _: User = Depends(require_user),
) -> UploadResponse:
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
    data = await file.read(settings.upload_max_bytes + 1)
    try:
        stored = save_image(file.filename or "", file.content_type, data)
    except RewardsError as error:
        raise as_http_exception(error) from error
    return UploadResponse(
        message="File uploaded successfully",
        url=stored.url,
        filename=stored.filename,
        originalName=stored.original_name,
        size=stored.size,
        type=stored.content_type,
    )


@router.get("/{path:path}", response_class=FileResponse)
async def serve_upload(path: str) -> FileResponse:
    try:
        file_path, media_type = resolve_upload(path)
    except RewardsError as error:
        raise as_http_exception(error) from error
    return FileResponse(file_path, media_type=media_type, headers={"Cache-Control": "public, max-age=31536000"})

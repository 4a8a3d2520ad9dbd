"""
Media library: upload registration, listing and cleanup.
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_media_service, require_permission
from pulpit.schemas import (
    BulkDeleteOut,
    CleanupOut,
    IdsRequest,
    MediaFileOut,
    MediaMetadataUpdate,
    MediaUsageStatsOut,
    PageOut,
    StatusResponse,
    UploadRequest,
    UploadTicketOut,
    to_page,
)
from pulpit.services.media import UPLOAD_URL_EXPIRY, MediaService
from pulpit.shared.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/media")


@router.post("/uploads", response_model=UploadTicketOut, status_code=201)
def request_upload(
    payload: UploadRequest,
    user: UserRow = Depends(require_permission("media.upload")),
    media: MediaService = Depends(get_media_service),
):
    """
    Register a pending file. The client PUTs the bytes to `upload_url` with
    the same Content-Type it declared here.
    """
    row, upload_url = media.request_upload(payload.filename, payload.mime_type, payload.size, user.id)
    return UploadTicketOut(
        file=MediaFileOut.model_validate(row), upload_url=upload_url, expires_in=UPLOAD_URL_EXPIRY
    )


@router.get("", response_model=PageOut[MediaFileOut])
def list_files(
    search: Optional[str] = Query(None, max_length=200),
    type: Optional[Literal["image", "audio", "video", "document"]] = Query(None),
    is_used: Optional[bool] = Query(None),
    uploaded_by: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    _: UserRow = Depends(require_permission("media.upload")),
    media: MediaService = Depends(get_media_service),
):
    files = media.list_files(
        search=search, file_type=type, is_used=is_used, uploaded_by=uploaded_by, page=page, limit=limit
    )
    return to_page(files, MediaFileOut)


@router.get("/stats", response_model=MediaUsageStatsOut)
def usage_stats(
    _: UserRow = Depends(require_permission("media.manage")),
    media: MediaService = Depends(get_media_service),
):
    return media.usage_stats()


@router.get("/unused", response_model=list[MediaFileOut])
def unused_files(
    older_than_days: int = Query(30, ge=0),
    _: UserRow = Depends(require_permission("media.manage")),
    media: MediaService = Depends(get_media_service),
):
    return media.unused_files(older_than_days)


@router.post("/cleanup", response_model=CleanupOut)
def cleanup(
    older_than_days: int = Query(30, ge=0),
    dry_run: bool = Query(True),
    user: UserRow = Depends(require_permission("media.manage")),
    media: MediaService = Depends(get_media_service),
):
    return media.cleanup(older_than_days, dry_run=dry_run, actor_id=user.id)


@router.post("/bulk-delete", response_model=BulkDeleteOut)
def bulk_delete(
    payload: IdsRequest,
    user: UserRow = Depends(require_permission("media.manage")),
    media: MediaService = Depends(get_media_service),
):
    return media.bulk_delete(payload.ids, actor_id=user.id)


@router.get("/{file_id}", response_model=MediaFileOut)
def get_file(
    file_id: str,
    _: UserRow = Depends(require_permission("media.upload")),
    media: MediaService = Depends(get_media_service),
):
    return media.get(file_id)


@router.patch("/{file_id}", response_model=MediaFileOut)
def update_metadata(
    file_id: str,
    payload: MediaMetadataUpdate,
    _: UserRow = Depends(require_permission("media.manage")),
    media: MediaService = Depends(get_media_service),
):
    return media.update_metadata(
        file_id,
        original_name=payload.original_name,
        thumbnail_url=payload.thumbnail_url,
        details=payload.details,
    )


@router.delete("/{file_id}", response_model=StatusResponse)
def delete_file(
    file_id: str,
    user: UserRow = Depends(require_permission("media.manage")),
    media: MediaService = Depends(get_media_service),
):
    media.delete(file_id, actor_id=user.id)
    return StatusResponse()

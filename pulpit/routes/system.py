"""
Health check and presigned storage URLs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_current_user, get_storage_client
from pulpit.errors import PermissionDeniedError
from pulpit.permissions import effective_admin_role, has_permission
from pulpit.schemas import SignUrlResponse, StatusResponse
from pulpit.storage import StorageClient

router = APIRouter()


@router.get("/health", response_model=StatusResponse)
def health():
    return StatusResponse()


@router.get("/sign-url", response_model=SignUrlResponse)
def sign_url(
    path: str = Query(..., description="Object path in storage"),
    op: str = Query("get", pattern="^(get|put)$"),
    expires_in: int = Query(3600, ge=60, le=86400),
    user: UserRow = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    if op == "get":
        url = storage.presign_get(path, expires_in=expires_in)
    else:
        # Writes into the bucket need the same grant as registered uploads.
        if not has_permission(effective_admin_role(user.role, user.admin_role), "media.upload"):
            raise PermissionDeniedError("Missing permission: media.upload")
        url = storage.presign_put(path, expires_in=expires_in)
    return SignUrlResponse(url=url)

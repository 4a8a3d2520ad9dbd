"""
The signed-in member's saved content.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pulpit.db import UserRow
from pulpit.dependencies import get_current_user, get_library_service
from pulpit.listing import ContentQuery
from pulpit.routes.content import content_query
from pulpit.schemas import (
    CountResponse,
    PageOut,
    SaveContentRequest,
    SavedItemOut,
    SavedStateOut,
    to_page,
)
from pulpit.services.library import LibraryService
from pulpit.shared.types import ActionType, ContentType

router = APIRouter(prefix="/library")


@router.get("", response_model=PageOut[SavedItemOut])
def list_saved(
    content_type: Optional[ContentType] = Query(None),
    action_type: ActionType = Query(ActionType.SAVE),
    params: ContentQuery = Depends(content_query),
    user: UserRow = Depends(get_current_user),
    library: LibraryService = Depends(get_library_service),
):
    # Saved items stay listed after their content is unpublished.
    params = params.model_copy(update={"published": None})
    page = library.list_saved(user.id, content_type, action_type, params)
    return to_page(page, SavedItemOut)


@router.get("/count", response_model=CountResponse)
def saved_count(
    user: UserRow = Depends(get_current_user),
    library: LibraryService = Depends(get_library_service),
):
    return CountResponse(count=library.saved_count(user.id))


@router.get("/status", response_model=SavedStateOut)
def saved_status(
    content_type: ContentType = Query(...),
    content_id: str = Query(...),
    action_type: ActionType = Query(ActionType.SAVE),
    user: UserRow = Depends(get_current_user),
    library: LibraryService = Depends(get_library_service),
):
    return SavedStateOut(saved=library.is_saved(user.id, content_type, content_id, action_type))


@router.post("", response_model=SavedStateOut)
def save_content(
    payload: SaveContentRequest,
    user: UserRow = Depends(get_current_user),
    library: LibraryService = Depends(get_library_service),
):
    library.save(user.id, payload.content_type, payload.content_id, payload.action_type)
    return SavedStateOut(saved=True)


@router.delete("", response_model=SavedStateOut)
def unsave_content(
    content_type: ContentType = Query(...),
    content_id: str = Query(...),
    action_type: ActionType = Query(ActionType.SAVE),
    user: UserRow = Depends(get_current_user),
    library: LibraryService = Depends(get_library_service),
):
    library.unsave(user.id, content_type, content_id, action_type)
    return SavedStateOut(saved=False)

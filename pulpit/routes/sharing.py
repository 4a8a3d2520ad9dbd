"""
Content sharing and deep links.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from pulpit.db import UserRow
from pulpit.deep_links import DeepLinks
from pulpit.dependencies import (
    get_links,
    get_optional_user,
    get_sharing_service,
    require_permission,
)
from pulpit.schemas import (
    DeepLinkOut,
    DeepLinkRequest,
    ParseDeepLinkRequest,
    ParsedDeepLinkOut,
    ShareAnalyticsOut,
    ShareRequest,
    ShareResultOut,
)
from pulpit.services.sharing import SharingService

router = APIRouter()


@router.post("/share", response_model=ShareResultOut)
def share_content(
    payload: ShareRequest,
    user: Optional[UserRow] = Depends(get_optional_user),
    sharing: SharingService = Depends(get_sharing_service),
):
    return sharing.share(payload, user.id if user else None)


@router.get("/share/analytics/{content_id}", response_model=ShareAnalyticsOut)
def share_analytics(
    content_id: str,
    _: UserRow = Depends(require_permission("analytics.view")),
    sharing: SharingService = Depends(get_sharing_service),
):
    return sharing.share_analytics(content_id)


@router.post("/deep-links", response_model=DeepLinkOut)
def generate_deep_link(payload: DeepLinkRequest, links: DeepLinks = Depends(get_links)):
    url = links.generate(payload.type, payload.id, payload.params, web_fallback=payload.web_fallback)
    return DeepLinkOut(url=url)


@router.post("/deep-links/parse", response_model=ParsedDeepLinkOut)
def parse_deep_link(payload: ParseDeepLinkRequest, links: DeepLinks = Depends(get_links)):
    parsed = links.parse(payload.url)
    if parsed is None:
        raise HTTPException(status_code=400, detail="Unrecognized deep link")
    return ParsedDeepLinkOut(screen=parsed.screen, params=parsed.params, metadata=parsed.metadata)

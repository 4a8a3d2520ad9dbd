"""
Sharing sermons and articles outside the app, with tracked links and a
per-share event log.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional
from urllib.parse import quote

from sqlalchemy import select

from pulpit.db import Database, ShareEventRow
from pulpit.deep_links import URI_SAFE, DeepLinks
from pulpit.schemas import ShareRequest
from pulpit.services.content import content_date, get_content_row
from pulpit.shared.constants import CHURCH_NAME, TWITTER_MESSAGE_LIMIT
from pulpit.shared.types import ContentType, ShareMethod
from pulpit.shared.utils import format_duration

logger = logging.getLogger(__name__)

DEFAULT_CAMPAIGN = "content_share"
SHARE_REFERRER = "app_share"


def _encode(value: str) -> str:
    return quote(value, safe=URI_SAFE)


def build_share_message(content_type: str, content, custom_message: Optional[str] = None) -> str:
    if custom_message:
        return custom_message
    is_sermon = content_type == ContentType.SERMON
    message = f'Check out this {content_type} from {CHURCH_NAME}!\n\n"{content.title}"'
    author = content.preacher if is_sermon else content.author
    if author:
        message += f"\nby {author}"
    message += f"\n{content_date(content_type, content).isoformat()}"
    description = content.description if is_sermon else content.excerpt
    if description:
        message += f"\n\n{description}"
    if is_sermon and content.duration:
        message += f"\n\nDuration: {format_duration(content.duration)}"
    return message


def truncate_for_twitter(message: str, max_length: int = TWITTER_MESSAGE_LIMIT) -> str:
    if len(message) <= max_length:
        return message
    return message[: max_length - 3] + "..."


def method_share_url(method: str, message: str, url: str, title: str = "") -> Optional[str]:
    """URL that opens the chosen channel with the message prefilled."""
    text = f"{message}\n\n{url}"
    if method == ShareMethod.EMAIL:
        subject = f"{CHURCH_NAME} - {title}" if title else CHURCH_NAME
        body = f"{text}\n\n---\nShared from {CHURCH_NAME} App"
        return f"mailto:?subject={_encode(subject)}&body={_encode(body)}"
    if method == ShareMethod.SMS:
        return f"sms:?body={_encode(text)}"
    if method == ShareMethod.WHATSAPP:
        return f"https://wa.me/?text={_encode(text)}"
    if method == ShareMethod.TELEGRAM:
        return f"https://t.me/share/url?url={_encode(url)}&text={_encode(message)}"
    if method == ShareMethod.TWITTER:
        return (
            f"https://twitter.com/intent/tweet?text={_encode(truncate_for_twitter(message))}"
            f"&url={_encode(url)}"
        )
    if method == ShareMethod.FACEBOOK:
        return f"https://www.facebook.com/sharer/sharer.php?u={_encode(url)}&quote={_encode(message)}"
    return None


class SharingService:
    def __init__(self, db: Database, links: DeepLinks):
        self.db = db
        self.links = links

    def share(self, request: ShareRequest, user_id: Optional[str] = None) -> dict:
        campaign = request.campaign or DEFAULT_CAMPAIGN
        with self.db.Session() as session:
            content = get_content_row(session, request.content_type, request.content_id)
        message = build_share_message(request.content_type, content, request.custom_message)
        url = self.links.shareable(request.content_type, content.id, campaign, SHARE_REFERRER)
        web_url = self.links.web(
            request.content_type, content.id, {"campaign": campaign, "ref": SHARE_REFERRER}
        )
        share_url = method_share_url(request.method, message, web_url, content.title)
        self.record_event(request.content_type, content.id, request.method, user_id)
        return {
            "success": True,
            "method": request.method,
            "message": message,
            "url": url,
            "share_url": share_url,
        }

    def record_event(
        self,
        content_type: str,
        content_id: str,
        method: str,
        user_id: Optional[str] = None,
        success: bool = True,
        error: Optional[str] = None,
    ) -> ShareEventRow:
        with self.db.Session() as session:
            row = ShareEventRow(
                content_type=str(content_type),
                content_id=content_id,
                user_id=user_id,
                method=str(method),
                success=success,
                error=error,
            )
            session.add(row)
            session.commit()
        logger.info("Recorded %s share of %s %s", method, content_type, content_id)
        return row

    def share_analytics(self, content_id: str) -> dict:
        with self.db.Session() as session:
            rows = session.execute(
                select(ShareEventRow.method, ShareEventRow.success).where(
                    ShareEventRow.content_id == content_id
                )
            ).all()
        total = len(rows)
        succeeded = sum(1 for _, success in rows if success)
        return {
            "total_shares": total,
            "by_method": dict(Counter(method for method, _ in rows)),
            "success_rate": round(succeeded / total * 100, 2) if total else 0.0,
        }

"""
Uploaded media files: registration of presigned uploads, housekeeping and
usage tracking.
"""

from __future__ import annotations

import logging
import os
import re
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, or_, select, update

from pulpit.db import Database, MediaFileRow
from pulpit.errors import ConflictError, NotFoundError, ValidationFailed
from pulpit.listing import Page, paginate
from pulpit.services.audit import AuditService
from pulpit.shared.constants import ALLOWED_DOCUMENT_TYPES, MEDIA_SIZE_LIMITS
from pulpit.shared.types import AuditAction
from pulpit.shared.utils import get_unique_id, now_ts

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
UPLOAD_URL_EXPIRY = 3600

_FOLDERS = {"image": "images", "audio": "audio", "video": "video", "application": "documents"}
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def media_category(mime_type: str) -> str:
    return (mime_type or "").split("/", 1)[0].lower()


def validate_upload(mime_type: str, size: int) -> None:
    category = media_category(mime_type)
    if category not in MEDIA_SIZE_LIMITS:
        raise ValidationFailed(f"Unsupported file type: {mime_type}")
    if category == "application" and mime_type.lower() not in ALLOWED_DOCUMENT_TYPES:
        raise ValidationFailed(f"Unsupported document type: {mime_type}")
    limit = MEDIA_SIZE_LIMITS[category]
    if size <= 0:
        raise ValidationFailed("File is empty")
    if size > limit:
        raise ValidationFailed(
            f"File too large: {size} bytes exceeds the {limit // (1024 * 1024)}MB limit for {category} files"
        )


def safe_filename(name: str) -> str:
    base = os.path.basename(name or "").strip()
    cleaned = _UNSAFE_CHARS.sub("-", base).strip("-.")
    return cleaned or "file"


class MediaService:
    def __init__(self, db: Database, storage, audit: AuditService):
        self.db = db
        self.storage = storage
        self.audit = audit

    def request_upload(
        self, filename: str, mime_type: str, size: int, uploaded_by: Optional[str]
    ) -> tuple[MediaFileRow, str]:
        """Register a pending file and return it with a presigned PUT URL."""
        validate_upload(mime_type, size)
        original_name = os.path.basename(filename)
        stored_name = f"{get_unique_id()}-{safe_filename(original_name)}"
        now = datetime.now(timezone.utc)
        folder = _FOLDERS[media_category(mime_type)]
        storage_path = f"{folder}/{now:%Y/%m}/{stored_name}"
        upload_url = self.storage.presign_put(
            storage_path, content_type=mime_type, expires_in=UPLOAD_URL_EXPIRY
        )
        with self.db.Session() as session:
            row = MediaFileRow(
                filename=stored_name,
                original_name=original_name,
                mime_type=mime_type,
                size=size,
                storage_path=storage_path,
                url=self.storage.public_url(storage_path),
                uploaded_by=uploaded_by,
            )
            session.add(row)
            session.commit()
        logger.info("Registered upload %s (%s, %d bytes)", storage_path, mime_type, size)
        return row, upload_url

    def get(self, file_id: str) -> MediaFileRow:
        with self.db.Session() as session:
            row = session.get(MediaFileRow, file_id)
            if row is None:
                raise NotFoundError("Media file not found")
            return row

    def list_files(
        self,
        *,
        search: Optional[str] = None,
        file_type: Optional[str] = None,
        is_used: Optional[bool] = None,
        uploaded_by: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[MediaFileRow]:
        stmt = select(MediaFileRow)
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(
                or_(MediaFileRow.filename.ilike(pattern), MediaFileRow.original_name.ilike(pattern))
            )
        if file_type in ("image", "audio", "video"):
            stmt = stmt.where(MediaFileRow.mime_type.like(f"{file_type}/%"))
        elif file_type == "document":
            stmt = stmt.where(
                or_(MediaFileRow.mime_type.like("%pdf%"), MediaFileRow.mime_type.like("%document%"))
            )
        if is_used is not None:
            stmt = stmt.where(MediaFileRow.is_used.is_(is_used))
        if uploaded_by:
            stmt = stmt.where(MediaFileRow.uploaded_by == uploaded_by)
        stmt = stmt.order_by(MediaFileRow.uploaded_at.desc(), MediaFileRow.id.asc())
        with self.db.Session() as session:
            return paginate(session, stmt, page, limit)

    def delete(self, file_id: str, actor_id: Optional[str] = None) -> None:
        with self.db.Session() as session:
            row = session.get(MediaFileRow, file_id)
            if row is None:
                raise NotFoundError("Media file not found")
            if row.is_used:
                raise ConflictError("Cannot delete file that is currently being used")
            session.delete(row)
            session.commit()
        self._remove_objects([row.storage_path])
        self.audit.log_action(
            admin_user_id=actor_id,
            action_type=AuditAction.CONTENT_DELETED,
            description=f"Deleted media file: {row.filename}",
            details={
                "fileId": row.id,
                "filename": row.filename,
                "fileSize": row.size,
                "mimeType": row.mime_type,
            },
        )

    def bulk_delete(self, file_ids: list[str], actor_id: Optional[str] = None) -> dict:
        """Delete several files; refuses the whole batch if any is in use."""
        with self.db.Session() as session:
            rows = list(session.scalars(select(MediaFileRow).where(MediaFileRow.id.in_(file_ids))).all())
            used = [row for row in rows if row.is_used]
            if used:
                raise ConflictError(f"Cannot delete {len(used)} files that are currently being used")
            session.execute(delete(MediaFileRow).where(MediaFileRow.id.in_([r.id for r in rows])))
            session.commit()
        storage_errors = self._remove_objects([row.storage_path for row in rows])

        deleted = [row.id for row in rows]
        failed = {file_id: "Media file not found" for file_id in file_ids if file_id not in deleted}
        if deleted:
            self.audit.log_action(
                admin_user_id=actor_id,
                action_type=AuditAction.CONTENT_DELETED,
                description=f"Bulk deleted {len(deleted)} media files",
                details={"fileIds": deleted, "deletedCount": len(deleted)},
            )
        return {"deleted": deleted, "failed": failed, "storage_errors": storage_errors}

    def _remove_objects(self, paths: list[str]) -> list[str]:
        """Delete stored objects after their rows are committed; returns the paths that failed."""
        failed = []
        for path in paths:
            try:
                self.storage.delete_object(path)
            except Exception:
                logger.exception("Failed to delete stored object %s", path)
                failed.append(path)
        return failed

    def unused_files(self, older_than_days: int = 30) -> list[MediaFileRow]:
        cutoff = now_ts() - older_than_days * DAY_SECONDS
        with self.db.Session() as session:
            stmt = (
                select(MediaFileRow)
                .where(MediaFileRow.is_used.is_(False), MediaFileRow.uploaded_at < cutoff)
                .order_by(MediaFileRow.uploaded_at.asc())
            )
            return list(session.scalars(stmt).all())

    def cleanup(
        self, older_than_days: int = 30, dry_run: bool = True, actor_id: Optional[str] = None
    ) -> dict:
        files = self.unused_files(older_than_days)
        total_size = sum(row.size for row in files)
        if dry_run or not files:
            return {
                "dry_run": dry_run,
                "files": files,
                "total_size": total_size,
                "deleted": 0,
                "storage_errors": [],
            }

        with self.db.Session() as session:
            session.execute(delete(MediaFileRow).where(MediaFileRow.id.in_([r.id for r in files])))
            session.commit()
        storage_errors = self._remove_objects([row.storage_path for row in files])
        self.audit.log_action(
            admin_user_id=actor_id,
            action_type=AuditAction.CONTENT_DELETED,
            description=f"Cleaned up {len(files)} unused media files",
            details={
                "deletedCount": len(files),
                "totalSize": total_size,
                "olderThanDays": older_than_days,
            },
        )
        logger.info("Removed %d unused media files (%d bytes)", len(files), total_size)
        return {
            "dry_run": False,
            "files": files,
            "total_size": total_size,
            "deleted": len(files),
            "storage_errors": storage_errors,
        }

    def update_metadata(
        self,
        file_id: str,
        *,
        original_name: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> MediaFileRow:
        with self.db.Session() as session:
            row = session.get(MediaFileRow, file_id)
            if row is None:
                raise NotFoundError("Media file not found")
            if original_name is not None:
                row.original_name = original_name
            if thumbnail_url is not None:
                row.thumbnail_url = thumbnail_url or None
            if details is not None:
                row.details = details
            session.commit()
            return row

    def usage_stats(self) -> dict:
        with self.db.Session() as session:
            rows = session.execute(
                select(MediaFileRow.is_used, MediaFileRow.size, MediaFileRow.mime_type)
            ).all()
        total_files = len(rows)
        used_files = sum(1 for is_used, _, _ in rows if is_used)
        total_size = sum(size for _, size, _ in rows)
        used_size = sum(size for is_used, size, _ in rows if is_used)
        return {
            "total_files": total_files,
            "total_size": total_size,
            "used_files": used_files,
            "unused_files": total_files - used_files,
            "used_size": used_size,
            "unused_size": total_size - used_size,
            "by_type": dict(Counter(media_category(mime) for _, _, mime in rows)),
            "usage_rate": round(used_files / total_files * 100, 2) if total_files else 0.0,
        }

    def mark_used(self, urls: Iterable[Optional[str]]) -> int:
        """Flag files whose public URL is referenced by content."""
        wanted = [url for url in urls if url]
        if not wanted:
            return 0
        with self.db.Session() as session:
            result = session.execute(
                update(MediaFileRow)
                .where(MediaFileRow.url.in_(wanted))
                .values(is_used=True, usage_count=MediaFileRow.usage_count + 1, updated_at=now_ts())
            )
            session.commit()
            return result.rowcount or 0

    def release(self, urls: Iterable[Optional[str]]) -> int:
        """Drop one reference from each file whose URL content no longer uses."""
        wanted = [url for url in urls if url]
        if not wanted:
            return 0
        with self.db.Session() as session:
            result = session.execute(
                update(MediaFileRow)
                .where(MediaFileRow.url.in_(wanted), MediaFileRow.usage_count > 0)
                .values(usage_count=MediaFileRow.usage_count - 1, updated_at=now_ts())
            )
            session.execute(
                update(MediaFileRow)
                .where(MediaFileRow.url.in_(wanted), MediaFileRow.usage_count <= 0)
                .values(is_used=False)
            )
            session.commit()
            return result.rowcount or 0

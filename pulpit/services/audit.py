"""
Admin audit trail.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pulpit.db import AuditLogRow, Database
from pulpit.listing import Page, paginate
from pulpit.shared.utils import now_ts

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60


class AuditService:
    def __init__(self, db: Database):
        self.db = db

    def log_action(
        self,
        *,
        admin_user_id: Optional[str],
        action_type: str,
        description: str,
        target_user_id: Optional[str] = None,
        target_user_name: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> Optional[AuditLogRow]:
        """
        Record an admin action. A failed write is logged and never propagates,
        so auditing cannot break the action being audited.
        """
        try:
            with self.db.Session() as session:
                row = AuditLogRow(
                    admin_user_id=admin_user_id,
                    action_type=str(action_type),
                    description=description,
                    target_user_id=target_user_id,
                    target_user_name=target_user_name,
                    details=details,
                )
                session.add(row)
                session.commit()
                return row
        except SQLAlchemyError:
            logger.exception("Failed to write audit entry %s", action_type)
            return None

    def list_logs(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        action_type: Optional[str] = None,
        admin_user_id: Optional[str] = None,
        target_user_id: Optional[str] = None,
        date_from: Optional[float] = None,
        date_to: Optional[float] = None,
    ) -> Page[AuditLogRow]:
        stmt = select(AuditLogRow)
        if action_type:
            stmt = stmt.where(AuditLogRow.action_type == action_type)
        if admin_user_id:
            stmt = stmt.where(AuditLogRow.admin_user_id == admin_user_id)
        if target_user_id:
            stmt = stmt.where(AuditLogRow.target_user_id == target_user_id)
        if date_from is not None:
            stmt = stmt.where(AuditLogRow.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.where(AuditLogRow.created_at <= date_to)
        stmt = stmt.order_by(AuditLogRow.created_at.desc(), AuditLogRow.id.asc())
        with self.db.Session() as session:
            return paginate(session, stmt, page, limit)

    def recent(self, limit: int = 10) -> list[AuditLogRow]:
        with self.db.Session() as session:
            stmt = select(AuditLogRow).order_by(AuditLogRow.created_at.desc()).limit(limit)
            return list(session.scalars(stmt).all())

    def activity_summary(self, days: int = 7) -> dict:
        cutoff = now_ts() - days * DAY_SECONDS
        with self.db.Session() as session:
            actions = session.scalars(
                select(AuditLogRow.action_type).where(AuditLogRow.created_at >= cutoff)
            ).all()
        counts = Counter(actions)
        return {"days": days, "total": len(actions), "by_action": dict(counts)}

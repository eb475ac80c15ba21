"""Audit trail for logins and grant store changes.

Every admin write (roles, actions, menus, menu actions, grant replaces, user
administration) and every login attempt leaves one ``AuditLog`` row. Writing
an entry must never break the operation being audited, so ``log`` swallows
database errors after logging them.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..models.user import AuditLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    user_id: Optional[int],
    action: str,
    resource_type: str,
    resource_id: Optional[object] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
) -> None:
    """Record *action* by *user_id* on a resource and commit.

    ``user_id`` is None for anonymous events such as a failed login.
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=None if resource_id is None else str(resource_id),
        details=json.dumps(details, default=str) if details else None,
        ip_address=ip_address,
    )
    try:
        db.add(entry)
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        db.rollback()
        logger.warning(
            "Audit entry not written",
            extra={"audit_action": action, "resource_type": resource_type, "error": str(e)},
        )


def history(
    db: Session,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[object] = None,
    limit: int = 100,
) -> list[AuditLog]:
    """Newest-first entries, optionally narrowed by action and resource."""
    query = db.query(AuditLog)
    if action is not None:
        query = query.filter(AuditLog.action == action)
    if resource_type is not None:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        query = query.filter(AuditLog.resource_id == str(resource_id))
    return query.order_by(AuditLog.id.desc()).limit(limit).all()


def purge_old_entries(db: Session, days: int) -> int:
    """Drop entries older than *days*; ``days <= 0`` keeps everything.

    Runs at startup, so a failure is logged and reported as nothing purged.
    """
    if days <= 0:
        return 0
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        removed = db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete(
            synchronize_session=False
        )
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        db.rollback()
        logger.warning("Audit purge failed: %s", e)
        return 0
    return removed

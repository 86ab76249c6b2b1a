"""Audit logging — best-effort activity history.

Writing an audit entry never blocks the action being audited: failures are
logged and rolled back.
"""

import json
import logging
from typing import Optional

from sqlalchemy.orm import Session

from planner.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_audit_event(
    db: Session,
    action: str,
    user_id: Optional[str],
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
    user_agent: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[AuditLog]:
    if not user_id:
        return None
    try:
        entry = AuditLog(
            action=action,
            user_id=user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            details=json.dumps(details) if details else None,
            user_agent=(user_agent or "")[:500] or None,
            ip_address=ip_address,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        db.rollback()
        logger.error("Failed to log audit event %s: %s", action, e)
        return None


def recent_activity(db: Session, user_id: str, limit: int = 20) -> list[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.user_id == user_id)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
        .all()
    )


def action_category(action: str) -> str:
    """Bucket an action name for display: create, update, delete, auth or other."""
    if "create" in action:
        return "create"
    if "update" in action:
        return "update"
    if "delete" in action:
        return "delete"
    if "login" in action or "sign" in action or "session" in action:
        return "auth"
    return "other"

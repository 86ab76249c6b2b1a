"""Notification service — class and per-user alerts."""

import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from planner.errors import NotFound
from planner.models.notification import Notification
from planner.services.realtime import feed
from planner.utils import row_to_dict

logger = logging.getLogger(__name__)

NOTIFICATION_ICON = "/logo.png"
NOTIFICATION_BADGE = "/badge.png"


def _visible_to(user_id: str, class_id: str):
    return or_(
        Notification.user_id == user_id,
        (Notification.user_id.is_(None)) & (Notification.class_id == class_id),
    )


def create_notification(
    db: Session,
    class_id: Optional[str],
    type: str,
    title: str,
    message: Optional[str] = None,
    user_id: Optional[str] = None,
    homework_id: Optional[str] = None,
) -> Notification:
    notification = Notification(
        type=type,
        title=title,
        message=message,
        user_id=user_id,
        class_id=class_id,
        homework_id=homework_id,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    feed.emit("notifications", "INSERT", new=row_to_dict(notification), class_id=class_id)
    return notification


def notify_class(db: Session, class_id: str, type: str, title: str, message: str | None = None,
                 homework_id: str | None = None) -> Optional[Notification]:
    """Create a class-wide notification; failures are logged, never raised."""
    try:
        return create_notification(db, class_id, type, title, message, homework_id=homework_id)
    except Exception as e:
        db.rollback()
        logger.error("Failed to create %s notification for class %s: %s", type, class_id, e)
        return None


def list_notifications(db: Session, user_id: str, class_id: str, limit: int = 10) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(_visible_to(user_id, class_id))
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )


def mark_as_read(db: Session, notification_id: str, user_id: str, class_id: str) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, _visible_to(user_id, class_id))
        .first()
    )
    if not notification:
        raise NotFound("Notification not found")
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_as_read(db: Session, user_id: str, class_id: str) -> int:
    count = (
        db.query(Notification)
        .filter(_visible_to(user_id, class_id), Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return count


def browser_notification(notification: dict) -> dict:
    """Display payload for the browser Notification API."""
    return {
        "title": notification.get("title"),
        "body": notification.get("message"),
        "tag": notification.get("id"),
        "icon": NOTIFICATION_ICON,
        "badge": NOTIFICATION_BADGE,
    }

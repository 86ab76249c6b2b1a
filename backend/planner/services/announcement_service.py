"""Announcement service — class notice board."""

import logging
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from planner.errors import NotFound
from planner.models.announcement import PRIORITIES, Announcement
from planner.services import audit, notification_service
from planner.services.moderation import moderate_post
from planner.services.realtime import feed
from planner.utils import row_to_dict

logger = logging.getLogger(__name__)


def list_announcements(db: Session, class_id: str) -> list[Announcement]:
    """Pinned first, then newest first."""
    return (
        db.query(Announcement)
        .options(selectinload(Announcement.creator))
        .filter(Announcement.class_id == class_id)
        .order_by(Announcement.pinned.desc(), Announcement.created_at.desc())
        .all()
    )


def _get(db: Session, announcement_id: str, class_id: str) -> Announcement:
    announcement = db.query(Announcement).filter(Announcement.id == announcement_id).first()
    if not announcement or announcement.class_id != class_id:
        raise NotFound("Announcement not found")
    return announcement


def create_announcement(
    db: Session,
    class_id: str,
    user_id: str,
    title: str,
    content: Optional[str] = None,
    priority: str = "normal",
    pinned: bool = False,
) -> Announcement:
    result = moderate_post(title, content)
    if not result["safe"]:
        raise ValueError(result["reason"])
    if priority not in PRIORITIES:
        raise ValueError(f"Priority must be one of: {', '.join(PRIORITIES)}")

    announcement = Announcement(
        class_id=class_id,
        created_by=user_id,
        title=title.strip(),
        content=content,
        priority=priority,
        pinned=pinned,
    )
    db.add(announcement)
    db.commit()
    db.refresh(announcement)

    feed.emit("announcements", "INSERT", new=row_to_dict(announcement), class_id=class_id)
    notification_service.notify_class(
        db, class_id, "announcement", f"New announcement: {announcement.title}",
        message=(content or "")[:140] or None,
    )
    audit.log_audit_event(db, "announcement_create", user_id, "announcement", announcement.id)
    return announcement


def delete_announcement(db: Session, announcement_id: str, class_id: str, user_id: str) -> None:
    announcement = _get(db, announcement_id, class_id)
    old = row_to_dict(announcement)
    db.delete(announcement)
    db.commit()

    feed.emit("announcements", "DELETE", old=old, class_id=class_id)
    audit.log_audit_event(db, "announcement_delete", user_id, "announcement", announcement_id)


def toggle_pin(db: Session, announcement_id: str, class_id: str) -> Announcement:
    announcement = _get(db, announcement_id, class_id)
    old = row_to_dict(announcement)
    announcement.pinned = not announcement.pinned
    db.commit()
    db.refresh(announcement)

    feed.emit("announcements", "UPDATE", new=row_to_dict(announcement), old=old, class_id=class_id)
    return announcement

"""Account settings — profile edits, data export and account deletion."""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from planner.models.announcement import Announcement
from planner.models.content_report import ContentReport
from planner.models.homework import Homework, HomeworkAttachment, HomeworkCompletion
from planner.models.notification import Notification
from planner.models.user import Profile, User
from planner.services import audit
from planner.utils import row_to_dict

logger = logging.getLogger(__name__)


def update_display_name(db: Session, profile: Profile, display_name: str) -> Profile:
    display_name = (display_name or "").strip()
    if not display_name:
        raise ValueError("Display name cannot be empty")
    profile.display_name = display_name[:255]
    db.commit()
    db.refresh(profile)
    audit.log_audit_event(db, "profile_update", profile.id, "profile", profile.id)
    return profile


def export_data(db: Session, user: User) -> dict:
    """Everything stored about the user, as JSON-ready dicts."""
    profile = db.query(Profile).filter(Profile.id == user.id).first()
    homework = db.query(Homework).filter(Homework.created_by == user.id).all()
    completions = db.query(HomeworkCompletion).filter(HomeworkCompletion.user_id == user.id).all()
    return {
        "profile": row_to_dict(profile) if profile else None,
        "homework": [row_to_dict(hw) for hw in homework],
        "completions": [row_to_dict(c) for c in completions],
        "exported_at": datetime.now(timezone.utc).isoformat(),
    }


def delete_account(db: Session, user: User) -> None:
    """Delete the user's profile, completions and account.

    Homework, attachments and announcements the user created stay with the
    class and lose their author reference.
    """
    user_id = user.id
    audit.log_audit_event(db, "account_delete", user_id, "user", user_id)

    db.query(HomeworkCompletion).filter(HomeworkCompletion.user_id == user_id).delete(synchronize_session=False)
    db.query(Notification).filter(Notification.user_id == user_id).delete(synchronize_session=False)
    db.query(ContentReport).filter(ContentReport.reported_by == user_id).delete(synchronize_session=False)
    db.query(Homework).filter(Homework.created_by == user_id).update(
        {Homework.created_by: None}, synchronize_session=False
    )
    db.query(HomeworkAttachment).filter(HomeworkAttachment.uploaded_by == user_id).update(
        {HomeworkAttachment.uploaded_by: None}, synchronize_session=False
    )
    db.query(Announcement).filter(Announcement.created_by == user_id).update(
        {Announcement.created_by: None}, synchronize_session=False
    )
    db.query(Profile).filter(Profile.id == user_id).delete(synchronize_session=False)
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted account %s", user_id)

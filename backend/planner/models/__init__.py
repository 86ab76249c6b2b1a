"""SQLAlchemy ORM models."""

from planner.models.user import User, Profile
from planner.models.class_ import Class
from planner.models.homework import Homework, HomeworkAttachment, HomeworkCompletion
from planner.models.announcement import Announcement
from planner.models.notification import Notification
from planner.models.audit_log import AuditLog
from planner.models.content_report import ContentReport

__all__ = [
    "User",
    "Profile",
    "Class",
    "Homework",
    "HomeworkAttachment",
    "HomeworkCompletion",
    "Announcement",
    "Notification",
    "AuditLog",
    "ContentReport",
]

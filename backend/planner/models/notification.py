"""Notification model — user-facing alerts, per user or class-wide."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Text

from planner.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(30), nullable=False)  # homework_added | homework_updated | homework_due_soon | announcement | info
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)  # null = class-wide
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=True, index=True)
    homework_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

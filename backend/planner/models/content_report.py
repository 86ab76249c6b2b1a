"""Content report model — moderation queue for homework items."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from planner.database import Base


class ContentReport(Base):
    __tablename__ = "content_reports"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    homework_id = Column(String(36), ForeignKey("homework.id"), nullable=False, index=True)
    reported_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    reason = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending | reviewed | dismissed
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    homework = relationship("Homework", back_populates="reports")

"""Homework, attachment and completion models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from planner.database import Base


class Homework(Base):
    __tablename__ = "homework"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(100), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    class_ = relationship("Class", back_populates="homework")
    creator = relationship("Profile")
    attachments = relationship(
        "HomeworkAttachment", back_populates="homework", cascade="all, delete-orphan"
    )
    completions = relationship(
        "HomeworkCompletion", back_populates="homework", cascade="all, delete-orphan"
    )
    reports = relationship("ContentReport", back_populates="homework", cascade="all, delete-orphan")


class HomeworkAttachment(Base):
    __tablename__ = "homework_attachments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    homework_id = Column(String(36), ForeignKey("homework.id"), nullable=False, index=True)
    storage_path = Column(String(500), nullable=False)
    filename = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    uploaded_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    homework = relationship("Homework", back_populates="attachments")


class HomeworkCompletion(Base):
    """One row per (homework, user); the unique constraint backs the upsert."""

    __tablename__ = "homework_completion"
    __table_args__ = (
        UniqueConstraint("homework_id", "user_id", name="uq_homework_completion_user"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    homework_id = Column(String(36), ForeignKey("homework.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    done = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    homework = relationship("Homework", back_populates="completions")

"""User (auth identity) and Profile models."""

import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from planner.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)  # null for link-only accounts
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    user_metadata = Column(Text, nullable=True)  # JSON: display_name, class_id
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    profile = relationship("Profile", back_populates="user", uselist=False)

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.user_metadata) if self.user_metadata else {}


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    class_id = Column(String(36), ForeignKey("classes.id"), nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="profile")
    class_ = relationship("Class", back_populates="profiles")

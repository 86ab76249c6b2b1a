"""Audit log model — immutable record of every significant action."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text

from planner.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action = Column(String(50), nullable=False)  # user_login | homework_create | session_revoked | ...
    user_id = Column(String(36), nullable=True, index=True)
    resource_type = Column(String(50), nullable=True)  # auth | homework | session | ...
    resource_id = Column(String(36), nullable=True)
    details = Column(Text, nullable=True)  # JSON string
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

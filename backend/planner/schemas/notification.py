"""Notification and report schemas."""

from typing import Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: Optional[str] = None
    read: bool
    user_id: Optional[str] = None
    class_id: Optional[str] = None
    homework_id: Optional[str] = None
    created_at: str
    relative_time: str


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class ReportCreate(BaseModel):
    homework_id: str
    reason: str = ""
    description: Optional[str] = None


class ReportResponse(BaseModel):
    id: str
    homework_id: str
    reason: str
    description: Optional[str] = None
    status: str
    created_at: str

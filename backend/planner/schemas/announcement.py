"""Announcement schemas."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    priority: Literal["low", "normal", "high", "urgent"] = "normal"
    pinned: bool = False


class AnnouncementResponse(BaseModel):
    id: str
    class_id: str
    title: str
    content: Optional[str] = None
    priority: str
    pinned: bool
    created_by: Optional[str] = None
    creator_name: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


class AnnouncementListResponse(BaseModel):
    announcements: list[AnnouncementResponse]

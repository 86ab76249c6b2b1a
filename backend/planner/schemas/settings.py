"""Account settings and gating schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class ProfileResponse(BaseModel):
    id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    class_id: str
    class_code: Optional[str] = None


class ProfileUpdate(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=255)


class ActivityItem(BaseModel):
    id: str
    action: str
    category: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    created_at: str
    relative_time: str


class ActivityResponse(BaseModel):
    activity: list[ActivityItem]


class GateResponse(BaseModel):
    screen: Optional[str] = None
    redirect: Optional[str] = None

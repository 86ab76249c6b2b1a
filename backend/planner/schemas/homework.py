"""Homework request/response schemas and the normalised homework record."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class AttachmentRecord(BaseModel):
    id: str
    homework_id: str
    storage_path: str
    filename: str
    mime_type: str
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        extra = "allow"


class CompletionRecord(BaseModel):
    id: str
    homework_id: str
    user_id: str
    done: bool = False
    updated_at: Optional[datetime] = None

    class Config:
        extra = "allow"


class CreatorInfo(BaseModel):
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class HomeworkWithRelations(BaseModel):
    """A homework row with its relations under short aliases.

    Unknown fields from the store are kept as extras.
    """

    id: str
    class_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[str] = None
    due_date: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    attachments: list[AttachmentRecord] = Field(default_factory=list)
    completion: list[CompletionRecord] = Field(default_factory=list)
    creator: Optional[CreatorInfo] = None

    class Config:
        extra = "allow"

    def is_done_for(self, user_id: str | None) -> bool:
        if not user_id:
            return False
        return any(c.user_id == user_id and c.done for c in self.completion)


class HomeworkCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = None
    due_date: datetime


class HomeworkUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    subject: Optional[str] = None
    due_date: Optional[datetime] = None


class CompletionRequest(BaseModel):
    done: bool


class FilterOptions(BaseModel):
    search_query: str = ""
    subject: str = ""
    status: Literal["all", "pending", "completed"] = "all"
    sort_by: Literal["due_date", "created_at", "subject", "title"] = "due_date"
    sort_order: Literal["asc", "desc"] = "asc"


class HomeworkListResponse(BaseModel):
    homework: list[HomeworkWithRelations]
    total: int


class ReminderItem(BaseModel):
    homework: HomeworkWithRelations
    time_remaining: str
    urgency: str


class RemindersResponse(BaseModel):
    count: int
    reminders: list[ReminderItem]


class DigestResponse(BaseModel):
    due_today: int
    due_tomorrow: int
    overdue: int
    completed: int


class TodayResponse(BaseModel):
    date: str
    due_today: list[HomeworkWithRelations]
    overdue: list[HomeworkWithRelations]


class CalendarDay(BaseModel):
    date: str
    in_month: bool
    is_today: bool
    homework_count: int
    homework_ids: list[str]


class CalendarMonthResponse(BaseModel):
    title: str
    year: int
    month: int
    weeks: list[list[CalendarDay]]

"""Class request/response schemas."""

from typing import Optional

from pydantic import BaseModel


class ClassCreate(BaseModel):
    code: str
    name: Optional[str] = None


class ClassCodeRequest(BaseModel):
    code: str


class ClassCodeResponse(BaseModel):
    valid: bool
    class_id: Optional[str] = None
    error: Optional[str] = None


class ClassResponse(BaseModel):
    id: str
    code: str
    name: Optional[str] = None
    created_at: str

    class Config:
        from_attributes = True

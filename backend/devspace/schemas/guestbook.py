from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from devspace.models.guestbook import GuestbookCategory, GuestbookStatus, FlagReason


class GuestbookCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    message: str = Field(..., min_length=2, max_length=1000)
    category: GuestbookCategory = GuestbookCategory.GENERAL
    contact: Optional[str] = Field(None, max_length=200)

    class Config:
        str_strip_whitespace = True


class ReplyCreate(BaseModel):
    message: Optional[str] = None


class FlagCreate(BaseModel):
    reason: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)


class ModerationUpdate(BaseModel):
    status: GuestbookStatus
    reason: Optional[str] = Field(None, max_length=500)
    featured: Optional[bool] = None

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional
from devspace.models.user import UserRole, UserStatus

USERNAME_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)

    @validator('username')
    def username_chars(cls, v):
        if not set(v) <= USERNAME_CHARS:
            raise ValueError('Username may only contain letters, numbers and underscores')
        return v

    @validator('email')
    def lowercase_email(cls, v):
        return v.lower()

    @validator('password')
    def password_bytes(cls, v):
        if len(v.encode('utf-8')) > 72:
            raise ValueError('Password cannot be longer than 72 bytes')
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class PrivacySettings(BaseModel):
    show_email: bool = False
    show_last_login: bool = False


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)
    privacy: Optional[PrivacySettings] = None

    class Config:
        str_strip_whitespace = True


class RoleUpdate(BaseModel):
    role: UserRole


class StatusUpdate(BaseModel):
    status: UserStatus
    reason: Optional[str] = Field(None, max_length=500)


class AchievementCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=20)

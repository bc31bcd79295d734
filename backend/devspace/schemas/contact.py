from pydantic import BaseModel, EmailStr, Field, validator
from devspace.models.contact import ContactStatus


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=10, max_length=2000)

    class Config:
        str_strip_whitespace = True

    @validator('email')
    def lowercase_email(cls, v):
        return v.lower()


class ContactStatusUpdate(BaseModel):
    status: ContactStatus

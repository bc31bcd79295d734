from pydantic import BaseModel, Field
from typing import Optional
from devspace.models.analytics import EventType


class TrackEventRequest(BaseModel):
    event_type: EventType
    event_name: str = Field(..., min_length=1, max_length=200)
    page_path: Optional[str] = Field(None, max_length=500)
    page_title: Optional[str] = Field(None, max_length=200)
    referrer: Optional[str] = Field(None, max_length=1000)
    event_data: dict = {}
    conversion_type: Optional[str] = Field(None, max_length=50)

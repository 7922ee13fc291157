# backend/eventhub/schemas.py
from __future__ import annotations
from typing import Dict, List, Optional
from datetime import date, datetime, time
from pydantic import BaseModel, ConfigDict, Field

from .catalog import Event


class SubmissionOut(BaseModel):
    """Confirmation returned for an accepted submission."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: datetime = Field(alias="createdAt")  # UTC ISO string out


class FieldErrorsOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_errors: Dict[str, List[str]] = Field(alias="fieldErrors")


class ErrorOut(BaseModel):
    code: str
    message: str


class ImageUploadOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(alias="imageUrl")


class EventListOut(BaseModel):
    count: int
    events: List[Event]


class SubmittedEventOut(BaseModel):
    """Public view of a submitted_events row. Contact details are left out."""
    id: str
    title: str
    description: str
    event_date: date
    start_time: time
    end_time: Optional[time] = None
    location: str
    category: str
    website: Optional[str] = None
    image_url: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)  # allow from ORM

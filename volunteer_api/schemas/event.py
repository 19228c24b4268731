"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from volunteer_api.schemas.user import CamelModel


class Coordinates(BaseModel):
    lat: float = 0
    lng: float = 0


class Contact(BaseModel):
    email: str = ""
    phone: str = ""
    website: str = ""


class Impact(CamelModel):
    # Free-form on the frontend; extra keys are kept
    model_config = ConfigDict(extra="allow")

    waste_collected: str = "N/A"
    area_cleaned: str = "N/A"
    previous_participants: str = "0"


class EventFields(CamelModel):
    """Descriptive fields shared by create and update."""

    organization: Optional[str] = Field(None, max_length=255)
    organizer: Optional[str] = Field(None, max_length=255)
    time: Optional[str] = Field(None, max_length=64)
    end_time: Optional[str] = Field(None, max_length=64)
    coordinates: Optional[Coordinates] = None
    category: Optional[str] = Field(None, max_length=100)
    max_volunteers: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    full_description: Optional[str] = None
    requirements: Optional[list[str]] = None
    images: Optional[list[str]] = None
    contact: Optional[Contact] = None
    verified: Optional[bool] = None
    rating: Optional[float] = Field(None, ge=0)
    reviews: Optional[int] = Field(None, ge=0)
    impact: Optional[Impact] = None
    points: Optional[int] = Field(None, ge=0)
    is_recurring: Optional[bool] = None
    recurrence: Optional[str] = Field(None, max_length=100)
    visibility: Optional[Literal["public", "private"]] = None


class EventCreate(EventFields):
    """
    Membership counters are not accepted here: a new event starts with an
    empty roster, so volunteers and liveAttendance always start at 0.
    """

    title: str = Field(..., min_length=1, max_length=255)
    date: str = Field(..., min_length=1, max_length=64)
    location: str = Field(..., min_length=1, max_length=255)
    owner_id: str = Field(..., min_length=1, max_length=128)
    owner_email: Optional[str] = Field(None, max_length=255)
    owner_name: Optional[str] = Field(None, max_length=255)


class EventUpdate(EventFields):
    """
    Partial update. Identity, ownership, timestamps and membership counters
    are not declared here, so they are dropped whatever the caller sends.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[str] = Field(None, min_length=1, max_length=64)
    location: Optional[str] = Field(None, min_length=1, max_length=255)


class VolunteerResponse(CamelModel):
    user_id: str
    user_email: str
    user_name: str
    joined_at: datetime


class EventResponse(CamelModel):
    id: int
    event_id: str
    title: str
    organization: str
    organizer: str
    date: str
    time: str
    end_time: str
    location: str
    coordinates: dict[str, Any]
    category: str
    volunteers: int
    max_volunteers: int
    description: Optional[str]
    full_description: str
    requirements: list[Any]
    images: list[Any]
    contact: dict[str, Any]
    verified: bool
    rating: float
    reviews: int
    impact: dict[str, Any]
    live_attendance: int
    points: int
    is_recurring: bool
    recurrence: str
    owner_id: str
    owner_email: str
    owner_name: str
    visibility: str
    volunteer_list: list[VolunteerResponse]
    created_at: datetime
    updated_at: datetime


class EventCreated(CamelModel):
    message: str
    id: int
    event_id: str


class EventEnvelope(CamelModel):
    message: str
    event: EventResponse

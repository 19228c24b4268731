"""
Pydantic schemas for user-related request/response validation.
Wire format is camelCase; `photoURL` keeps the frontend's spelling.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserUpsert(CamelModel):
    uid: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    display_name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, alias="photoURL", max_length=1024)
    auth_provider: Optional[str] = Field(None, max_length=50)


class UserProfileUpdate(CamelModel):
    """Only these fields are editable; anything else in the body is ignored."""

    display_name: Optional[str] = Field(None, max_length=255)
    photo_url: Optional[str] = Field(None, alias="photoURL", max_length=1024)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)


class EventRef(CamelModel):
    event_id: str = Field(..., min_length=1, max_length=32)


class UserResponse(CamelModel):
    id: int
    user_id: str
    uid: str
    email: str
    display_name: str
    photo_url: str = Field(alias="photoURL")
    auth_provider: str
    phone: str
    location: str
    my_events: list[str]
    joined_events: list[str]
    total_events_created: int
    total_events_joined: int
    total_points: int
    joined_at: datetime
    last_login: datetime
    created_at: datetime
    updated_at: datetime


class UserEnvelope(CamelModel):
    message: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str

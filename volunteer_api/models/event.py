"""
Event model with volunteer capacity tracking.

Key design decisions:
- `event_id` is the public code (EVT001...), `id` the internal key
- `volunteers` is denormalized for fast listing; it moves together with the
  `event_volunteers` rows inside one transaction
- `max_volunteers == 0` means the event is uncapped
- Nested descriptive data (coordinates, contact, impact...) lives in JSON
  columns since it is only ever read and replaced whole
- `version` column enables optimistic locking for concurrent joins
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Float, Index, CheckConstraint
from sqlalchemy.ext.mutable import MutableDict, MutableList
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from volunteer_api.db.base import Base, TimestampMixin


def default_coordinates() -> dict:
    return {"lat": 0, "lng": 0}


def default_contact() -> dict:
    return {"email": "", "phone": "", "website": ""}


def default_impact() -> dict:
    return {"wasteCollected": "N/A", "areaCleaned": "N/A", "previousParticipants": "0"}


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(String(32), unique=True, index=True, nullable=False)

    title = Column(String(255), nullable=False)
    organization = Column(String(255), nullable=False, default="")
    organizer = Column(String(255), nullable=False, default="")
    date = Column(String(64), nullable=False)
    time = Column(String(64), nullable=False, default="")
    end_time = Column(String(64), nullable=False, default="")
    location = Column(String(255), nullable=False)
    coordinates = Column(MutableDict.as_mutable(JSON), nullable=False, default=default_coordinates)
    category = Column(String(100), nullable=False, default="general")
    description = Column(Text, nullable=True)
    full_description = Column(Text, nullable=False, default="")
    requirements = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    images = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    contact = Column(MutableDict.as_mutable(JSON), nullable=False, default=default_contact)
    verified = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=False, default=0)
    reviews = Column(Integer, nullable=False, default=0)
    impact = Column(MutableDict.as_mutable(JSON), nullable=False, default=default_impact)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence = Column(String(100), nullable=False, default="")

    volunteers = Column(Integer, nullable=False, default=0)
    max_volunteers = Column(Integer, nullable=False, default=0)
    live_attendance = Column(Integer, nullable=False, default=0)
    points = Column(Integer, nullable=False, default=0)
    visibility = Column(String(20), nullable=False, default="public")

    owner_id = Column(String(128), nullable=False, index=True)
    owner_email = Column(String(255), nullable=False, default="")
    owner_name = Column(String(255), nullable=False, default="")

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    volunteer_list = relationship(
        "Volunteer",
        back_populates="event",
        lazy="selectin",
        order_by="Volunteer.id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("volunteers >= 0", name="check_volunteers_non_negative"),
        CheckConstraint("max_volunteers >= 0", name="check_max_volunteers_non_negative"),
        CheckConstraint("visibility IN ('public', 'private')", name="check_event_visibility"),
        # Listings are always newest first, optionally filtered by visibility
        Index("ix_events_visibility_created", "visibility", "created_at"),
    )

    @property
    def is_full(self) -> bool:
        return self.max_volunteers > 0 and self.volunteers >= self.max_volunteers

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, event_id={self.event_id}, volunteers={self.volunteers}/{self.max_volunteers})>"

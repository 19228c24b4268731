from volunteer_api.schemas.user import (
    UserUpsert, UserProfileUpdate, UserResponse, UserEnvelope, EventRef, MessageResponse,
)
from volunteer_api.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventCreated, EventEnvelope, VolunteerResponse,
)
from volunteer_api.schemas.membership import JoinRequest, LeaveRequest

__all__ = [
    "UserUpsert", "UserProfileUpdate", "UserResponse", "UserEnvelope", "EventRef", "MessageResponse",
    "EventCreate", "EventUpdate", "EventResponse", "EventCreated", "EventEnvelope", "VolunteerResponse",
    "JoinRequest", "LeaveRequest",
]

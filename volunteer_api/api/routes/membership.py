"""
Join/leave endpoints and the event roster.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.db.session import get_db
from volunteer_api.schemas.event import VolunteerResponse
from volunteer_api.schemas.membership import JoinRequest, LeaveRequest
from volunteer_api.schemas.user import MessageResponse
from volunteer_api.services.membership_service import join_event, leave_event, list_volunteers
from volunteer_api.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/events", tags=["Membership"])


@router.post("/{event_code}/join", response_model=MessageResponse)
async def join(event_code: str, body: JoinRequest, db: AsyncSession = Depends(get_db)):
    """
    Join an event as a volunteer.

    400 when the event is full or the user already joined; 404 when the
    event or the user does not exist.
    """
    await join_event(db, event_code, body.user_id, body.user_email, body.user_name)
    # Listings carry volunteer counts
    await invalidate_event_cache()
    return MessageResponse(message="Successfully joined the event")


@router.post("/{event_code}/leave", response_model=MessageResponse)
async def leave(event_code: str, body: LeaveRequest, db: AsyncSession = Depends(get_db)):
    """Leave an event; the points credited on join are taken back."""
    await leave_event(db, event_code, body.user_id)
    await invalidate_event_cache()
    return MessageResponse(message="Successfully left the event")


@router.get("/{event_code}/volunteers", response_model=list[VolunteerResponse])
async def volunteers(event_code: str, db: AsyncSession = Depends(get_db)):
    return await list_volunteers(db, event_code)

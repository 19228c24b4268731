"""
User endpoints: first-login upsert, lookups, profile edits and the
owned/joined event lists.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.db.session import get_db
from volunteer_api.schemas.event import EventResponse
from volunteer_api.schemas.user import EventRef, MessageResponse, UserEnvelope, UserProfileUpdate, UserResponse, UserUpsert
from volunteer_api.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserEnvelope, status_code=status.HTTP_200_OK)
async def upsert_user(user_data: UserUpsert, response: Response, db: AsyncSession = Depends(get_db)):
    """
    Called by the frontend after every successful sign-in.
    201 when the profile is created, 200 when an existing one is refreshed.
    """
    user, created = await user_service.upsert_user(db, user_data)
    if created:
        response.status_code = status.HTTP_201_CREATED
        message = "User created successfully"
    else:
        message = "User updated"
    return UserEnvelope(message=message, user=UserResponse.model_validate(user))


@router.get("/uid/{uid}", response_model=UserResponse)
async def get_user_by_uid(uid: str, db: AsyncSession = Depends(get_db)):
    return await user_service.get_user_by_uid(db, uid)


@router.get("/{user_pk}", response_model=UserResponse)
async def get_user_by_id(user_pk: str, db: AsyncSession = Depends(get_db)):
    """Lookup by internal id; non-numeric ids are rejected with 400."""
    return await user_service.get_user_by_id(db, user_pk)


@router.put("/{uid}", response_model=UserEnvelope)
async def update_profile(uid: str, profile: UserProfileUpdate, db: AsyncSession = Depends(get_db)):
    """Edit displayName, photoURL, phone and location. Other fields are ignored."""
    user = await user_service.update_profile(db, uid, profile)
    return UserEnvelope(message="User profile updated successfully", user=UserResponse.model_validate(user))


@router.get("/{uid}/my-events", response_model=list[EventResponse])
async def list_my_events(uid: str, db: AsyncSession = Depends(get_db)):
    return await user_service.list_owned_events(db, uid)


@router.get("/{uid}/joined-events", response_model=list[EventResponse])
async def list_joined_events(uid: str, db: AsyncSession = Depends(get_db)):
    return await user_service.list_joined_events(db, uid)


@router.post("/{uid}/my-events", response_model=MessageResponse)
async def add_my_event(uid: str, ref: EventRef, db: AsyncSession = Depends(get_db)):
    await user_service.add_owned_event(db, uid, ref.event_id)
    return MessageResponse(message="Event added to user profile")


@router.post("/{uid}/joined-events", response_model=MessageResponse)
async def add_joined_event(uid: str, ref: EventRef, db: AsyncSession = Depends(get_db)):
    await user_service.add_joined_event(db, uid, ref.event_id)
    return MessageResponse(message="Event added to joined events")


@router.delete("/{uid}/my-events/{event_code}", response_model=MessageResponse)
async def remove_my_event(uid: str, event_code: str, db: AsyncSession = Depends(get_db)):
    await user_service.remove_owned_event(db, uid, event_code)
    return MessageResponse(message="Event removed from user profile")


@router.delete("/{uid}/joined-events/{event_code}", response_model=MessageResponse)
async def remove_joined_event(uid: str, event_code: str, db: AsyncSession = Depends(get_db)):
    await user_service.remove_joined_event(db, uid, event_code)
    return MessageResponse(message="Event removed from joined events")

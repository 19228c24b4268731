"""
Event endpoints with Redis caching on list operations.

Events are addressable two ways: by public code under /events/id/{eventId}
and by internal id under /events/{id}. Both behave the same, including 404
for missing events on update and delete.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.db.session import get_db
from volunteer_api.schemas.event import EventCreate, EventCreated, EventEnvelope, EventResponse, EventUpdate
from volunteer_api.schemas.user import MessageResponse
from volunteer_api.services import event_service
from volunteer_api.services.cache_service import (
    get_cached_events,
    get_listing_generation,
    invalidate_event_cache,
    set_cached_events,
)
from volunteer_api.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


async def _listing(db: AsyncSession, scope: str, viewer_uid: Optional[str] = None) -> list:
    """Serve a listing from cache, falling back to the database."""
    generation = await get_listing_generation()
    cached = await get_cached_events(generation, scope, viewer_uid)
    if cached is not None:
        logger.info("events_list_cache_hit", scope=scope)
        return cached

    events = await event_service.list_events(db, scope, viewer_uid)
    data = [EventResponse.model_validate(e).model_dump(by_alias=True, mode="json") for e in events]
    await set_cached_events(generation, scope, viewer_uid, data)
    return data


@router.get("", response_model=list[EventResponse])
async def list_all_events(db: AsyncSession = Depends(get_db)):
    """Every event, newest first."""
    return await _listing(db, event_service.SCOPE_ALL)


@router.get("/public", response_model=list[EventResponse])
async def list_public_events(
    uid: Optional[str] = Query(None, description="Also include this owner's private events"),
    db: AsyncSession = Depends(get_db),
):
    """Events that are not private, newest first."""
    return await _listing(db, event_service.SCOPE_PUBLIC, uid)


@router.post("", response_model=EventCreated, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(event_data: EventCreate, db: AsyncSession = Depends(get_db)):
    """Create an event; it is added to the owner's myEvents in the same transaction."""
    event = await event_service.create_event(db, event_data)
    await invalidate_event_cache()
    return EventCreated(message="Event added successfully", id=event.id, event_id=event.event_id)


@router.get("/id/{event_code}", response_model=EventResponse)
async def get_event_by_code(event_code: str, db: AsyncSession = Depends(get_db)):
    return await event_service.get_event_by_event_id(db, event_code)


@router.put("/id/{event_code}", response_model=EventEnvelope)
async def update_event_by_code(event_code: str, event_data: EventUpdate, db: AsyncSession = Depends(get_db)):
    event = await event_service.get_event_by_event_id(db, event_code)
    event = await event_service.update_event(db, event, event_data)
    await invalidate_event_cache()
    return EventEnvelope(message="Event updated successfully", event=EventResponse.model_validate(event))


@router.delete("/id/{event_code}", response_model=MessageResponse)
async def delete_event_by_code(event_code: str, db: AsyncSession = Depends(get_db)):
    event = await event_service.get_event_by_event_id(db, event_code)
    await event_service.delete_event(db, event)
    await invalidate_event_cache()
    return MessageResponse(message="Event deleted successfully")


@router.get("/{event_pk}", response_model=EventResponse)
async def get_event_by_id(event_pk: str, db: AsyncSession = Depends(get_db)):
    return await event_service.get_event_by_id(db, event_pk)


@router.put("/{event_pk}", response_model=EventEnvelope)
async def update_event_by_id(event_pk: str, event_data: EventUpdate, db: AsyncSession = Depends(get_db)):
    event = await event_service.get_event_by_id(db, event_pk)
    event = await event_service.update_event(db, event, event_data)
    await invalidate_event_cache()
    return EventEnvelope(message="Event updated successfully", event=EventResponse.model_validate(event))


@router.delete("/{event_pk}", response_model=MessageResponse)
async def delete_event_by_id(event_pk: str, db: AsyncSession = Depends(get_db)):
    event = await event_service.get_event_by_id(db, event_pk)
    await event_service.delete_event(db, event)
    await invalidate_event_cache()
    return MessageResponse(message="Event deleted successfully")

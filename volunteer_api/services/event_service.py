"""
Event service handling CRUD operations.

Creating and deleting an event also edits the owner's `myEvents` list and
created-count. Both rows change in the same transaction; the owner row is
written with its version check, and a lost race rolls back the event write too
before retrying.
"""

from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.core.config import get_settings
from volunteer_api.core.errors import Conflict, NotFound
from volunteer_api.core.logging import get_logger
from volunteer_api.core.metrics import events_created, record_db_operation
from volunteer_api.db.base import utcnow
from volunteer_api.models.event import Event, default_contact, default_coordinates, default_impact
from volunteer_api.models.volunteer import Volunteer
from volunteer_api.schemas.event import EventCreate, EventUpdate
from volunteer_api.services.sequence_service import next_event_id
from volunteer_api.services.user_service import OWNED, find_user, list_change, parse_internal_id, write_user

logger = get_logger(__name__)

# Listing scopes
SCOPE_ALL = "all"
SCOPE_PUBLIC = "public"


async def _find_event(db: AsyncSession, *criteria) -> Optional[Event]:
    result = await db.execute(
        select(Event).where(*criteria).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_event_by_event_id(db: AsyncSession, event_code: str) -> Event:
    """Get a single event by its public code (EVT001)."""
    event = await _find_event(db, Event.event_id == event_code)
    if not event:
        raise NotFound("Event not found")
    return event


async def get_event_by_id(db: AsyncSession, raw_id: str) -> Event:
    """Get a single event by its internal id; malformed ids are a 400."""
    event_pk = parse_internal_id(raw_id, "event")
    event = await _find_event(db, Event.id == event_pk)
    if not event:
        raise NotFound("Event not found")
    return event


def _build_event(event_code: str, data: EventCreate) -> Event:
    """Apply defaults for every optional field the caller left out."""
    return Event(
        event_id=event_code,
        title=data.title,
        organization=data.organization or "",
        organizer=data.organizer or "",
        date=data.date,
        time=data.time or "",
        end_time=data.end_time or "",
        location=data.location,
        coordinates=data.coordinates.model_dump() if data.coordinates else default_coordinates(),
        category=data.category or "general",
        volunteers=0,
        max_volunteers=data.max_volunteers or 0,
        description=data.description,
        full_description=data.full_description or "",
        requirements=list(data.requirements or []),
        images=list(data.images or []),
        contact=data.contact.model_dump() if data.contact else default_contact(),
        verified=bool(data.verified),
        rating=data.rating or 0,
        reviews=data.reviews or 0,
        impact=data.impact.model_dump(by_alias=True) if data.impact else default_impact(),
        live_attendance=0,
        points=data.points or 0,
        is_recurring=bool(data.is_recurring),
        recurrence=data.recurrence or "",
        owner_id=data.owner_id,
        owner_email=data.owner_email or "",
        owner_name=data.owner_name or "",
        visibility=data.visibility or "public",
        version=1,
    )


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create an event and record it on the owner's profile."""
    attempts = get_settings().MAX_RETRY_ATTEMPTS

    for attempt in range(1, attempts + 1):
        event_code = await next_event_id(db)
        event = _build_event(event_code, event_data)
        db.add(event)
        await db.flush()

        owner = await find_user(db, event_data.owner_id)
        if owner is None:
            # Events from owners without a profile are still accepted
            logger.warning("owner_not_registered", owner_id=event_data.owner_id, event_id=event_code)
        else:
            values = list_change(owner, OWNED, event_code, add=True)
            if values is not None and not await write_user(db, owner, values):
                await db.rollback()
                record_db_operation("retry")
                logger.info("event_create_retry", owner_id=event_data.owner_id, attempt=attempt)
                continue

        await db.commit()
        events_created.inc()
        logger.info("event_created", event_id=event_code, title=event.title, owner_id=event.owner_id)
        return event

    raise Conflict("Owner profile was modified concurrently. Please try again.")


async def list_events(
    db: AsyncSession,
    scope: str = SCOPE_ALL,
    viewer_uid: Optional[str] = None,
) -> list[Event]:
    """
    Events newest first.
    SCOPE_PUBLIC hides private events, except the viewer's own when a
    viewer uid is given.
    """
    query = select(Event)

    if scope == SCOPE_PUBLIC:
        visible = Event.visibility != "private"
        if viewer_uid:
            visible = or_(visible, Event.owner_id == viewer_uid)
        query = query.where(visible)

    result = await db.execute(
        query
        .order_by(Event.created_at.desc(), Event.id.desc())
        .execution_options(populate_existing=True)
    )
    record_db_operation("read")
    return list(result.scalars().all())


async def update_event(db: AsyncSession, event: Event, event_data: EventUpdate) -> Event:
    """
    Merge the provided fields into the event.
    Server-controlled fields never reach here; see EventUpdate.
    """
    changes = event_data.model_dump(exclude_unset=True)
    if "impact" in changes and event_data.impact is not None:
        changes["impact"] = event_data.impact.model_dump(by_alias=True)

    # Columns that must not hold NULL fall back to their defaults
    nullable = {"description"}
    defaults = {
        "coordinates": default_coordinates(),
        "contact": default_contact(),
        "impact": default_impact(),
        "requirements": [],
        "images": [],
        "category": "general",
        "visibility": "public",
        "verified": False,
        "is_recurring": False,
        "max_volunteers": 0,
        "points": 0,
        "rating": 0,
        "reviews": 0,
    }
    for field, value in list(changes.items()):
        if value is None and field not in nullable:
            if field in ("title", "date", "location"):
                del changes[field]
            else:
                changes[field] = defaults.get(field, "")

    if changes:
        await db.execute(
            update(Event)
            .where(Event.id == event.id)
            .values(**changes, version=Event.version + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        record_db_operation("write")

    logger.info("event_updated", event_id=event.event_id, fields=sorted(changes))
    return await get_event_by_event_id(db, event.event_id)


async def delete_event(db: AsyncSession, event: Event) -> None:
    """Delete the event, its roster, and its entry on the owner's profile."""
    attempts = get_settings().MAX_RETRY_ATTEMPTS
    event_pk, event_code, owner_uid = event.id, event.event_id, event.owner_id

    for attempt in range(1, attempts + 1):
        owner = await find_user(db, owner_uid) if owner_uid else None
        if owner is not None:
            values = list_change(owner, OWNED, event_code, add=False)
            if values is not None and not await write_user(db, owner, values):
                await db.rollback()
                record_db_operation("retry")
                logger.info("event_delete_retry", event_id=event_code, attempt=attempt)
                continue

        await db.execute(delete(Volunteer).where(Volunteer.event_pk == event_pk))
        result = await db.execute(delete(Event).where(Event.id == event_pk))
        if result.rowcount == 0:
            await db.rollback()
            raise NotFound("Event not found")

        await db.commit()
        logger.info("event_deleted", event_id=event_code, owner_id=owner_uid)
        return

    raise Conflict("Owner profile was modified concurrently. Please try again.")

"""
User registry: first-login upsert, lookups, profile edits and maintenance of
the per-user event lists.

Every write to a user row goes through `write_user`, a versioned UPDATE that
only lands if nobody changed the row since it was read. Callers that own the
transaction retry on a lost race; callers that are part of a bigger unit of
work (event creation, join/leave) roll the whole thing back and retry.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.core.config import get_settings
from volunteer_api.core.errors import Conflict, InvalidArgument, NotFound
from volunteer_api.core.logging import get_logger
from volunteer_api.core.metrics import record_db_operation, users_registered
from volunteer_api.db.base import utcnow
from volunteer_api.models.event import Event
from volunteer_api.models.user import User
from volunteer_api.schemas.user import UserProfileUpdate, UserUpsert
from volunteer_api.services.sequence_service import next_user_id

logger = get_logger(__name__)

OWNED = "my_events"
JOINED = "joined_events"

# List column -> counter column kept in step with it
LIST_COUNTERS = {
    OWNED: "total_events_created",
    JOINED: "total_events_joined",
}


# Internal ids are INTEGER primary keys
MAX_INTERNAL_ID = 2**31 - 1


def parse_internal_id(raw: str, kind: str) -> int:
    """
    Internal ids are positive ASCII integers; anything else is a client error.
    Well-formed ids past the column range cannot exist and are reported missing.
    """
    if not (raw.isascii() and raw.isdigit()) or int(raw) < 1:
        raise InvalidArgument(f"Invalid {kind} ID format")
    value = int(raw)
    if value > MAX_INTERNAL_ID:
        raise NotFound(f"{kind.capitalize()} not found")
    return value


async def find_user(db: AsyncSession, uid: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(User.uid == uid).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_user_by_uid(db: AsyncSession, uid: str) -> User:
    user = await find_user(db, uid)
    if not user:
        raise NotFound("User not found")
    return user


async def get_user_by_id(db: AsyncSession, raw_id: str) -> User:
    user_pk = parse_internal_id(raw_id, "user")
    result = await db.execute(
        select(User).where(User.id == user_pk).execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    return user


async def write_user(db: AsyncSession, user: User, values: dict) -> bool:
    """
    Apply `values` to the user row if its version is still the one we read.
    Returns False when another transaction got there first.
    """
    result = await db.execute(
        update(User)
        .where(User.id == user.id, User.version == user.version)
        .values(**values, version=user.version + 1, updated_at=utcnow())
    )
    record_db_operation("write")
    return result.rowcount == 1


def list_change(user: User, field: str, event_code: str, add: bool) -> Optional[dict]:
    """
    Column values that add/remove `event_code` from one of the user's event
    lists, with the paired counter adjusted. None if nothing would change.
    """
    counter = LIST_COUNTERS[field]
    items = list(getattr(user, field) or [])
    if add:
        if event_code in items:
            return None
        items.append(event_code)
        delta = 1
    else:
        if event_code not in items:
            return None
        items = [item for item in items if item != event_code]
        delta = -1
    return {field: items, counter: max((getattr(user, counter) or 0) + delta, 0)}


async def _retrying_user_write(db: AsyncSession, uid: str, build_values, action: str) -> User:
    """
    Read-modify-write of one user row under optimistic locking.
    `build_values(user)` returns the column values to set, or None for a no-op.
    """
    attempts = get_settings().MAX_RETRY_ATTEMPTS
    for attempt in range(1, attempts + 1):
        user = await get_user_by_uid(db, uid)
        values = build_values(user)
        if values is None:
            return user

        if await write_user(db, user, values):
            await db.commit()
            logger.info(action, uid=uid, attempt=attempt)
            return await get_user_by_uid(db, uid)

        await db.rollback()
        record_db_operation("retry")
        logger.info("user_write_retry", uid=uid, action=action, attempt=attempt)

    raise Conflict("User was modified concurrently. Please try again.")


async def upsert_user(db: AsyncSession, data: UserUpsert) -> tuple[User, bool]:
    """
    Create the profile on first login, refresh it on later ones.
    Returns (user, created).
    """
    attempts = get_settings().MAX_RETRY_ATTEMPTS
    for attempt in range(1, attempts + 1):
        existing = await find_user(db, data.uid)

        if existing:
            values = {"email": data.email, "last_login": utcnow()}
            if data.display_name:
                values["display_name"] = data.display_name
            if data.photo_url:
                values["photo_url"] = data.photo_url

            if await write_user(db, existing, values):
                await db.commit()
                logger.info("user_login_refreshed", uid=data.uid, user_id=existing.user_id)
                return await get_user_by_uid(db, data.uid), False

            await db.rollback()
            record_db_operation("retry")
            logger.info("user_write_retry", uid=data.uid, action="upsert", attempt=attempt)
            continue

        now = utcnow()
        user = User(
            user_id=await next_user_id(db),
            uid=data.uid,
            email=data.email,
            display_name=data.display_name or "",
            photo_url=data.photo_url or "",
            auth_provider=data.auth_provider or "email",
            phone="",
            location="",
            my_events=[],
            joined_events=[],
            total_events_created=0,
            total_events_joined=0,
            total_points=0,
            joined_at=now,
            last_login=now,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Another first login for the same uid won; take the update path
            await db.rollback()
            record_db_operation("retry")
            logger.info("user_create_race", uid=data.uid, attempt=attempt)
            continue

        await db.commit()
        users_registered.inc()
        logger.info("user_created", uid=data.uid, user_id=user.user_id)
        return user, True

    raise Conflict("User was modified concurrently. Please try again.")


async def update_profile(db: AsyncSession, uid: str, data: UserProfileUpdate) -> User:
    """Partial update of the editable profile fields; unset fields are left alone."""
    changes = {
        field: (value if value is not None else "")
        for field, value in data.model_dump(exclude_unset=True).items()
    }

    def build(user: User) -> Optional[dict]:
        return changes or None

    return await _retrying_user_write(db, uid, build, "user_profile_updated")


async def add_owned_event(db: AsyncSession, uid: str, event_code: str) -> User:
    return await _retrying_user_write(
        db, uid, lambda user: list_change(user, OWNED, event_code, add=True), "owned_event_added"
    )


async def remove_owned_event(db: AsyncSession, uid: str, event_code: str) -> User:
    return await _retrying_user_write(
        db, uid, lambda user: list_change(user, OWNED, event_code, add=False), "owned_event_removed"
    )


async def add_joined_event(db: AsyncSession, uid: str, event_code: str) -> User:
    return await _retrying_user_write(
        db, uid, lambda user: list_change(user, JOINED, event_code, add=True), "joined_event_added"
    )


async def remove_joined_event(db: AsyncSession, uid: str, event_code: str) -> User:
    return await _retrying_user_write(
        db, uid, lambda user: list_change(user, JOINED, event_code, add=False), "joined_event_removed"
    )


async def _events_for_codes(db: AsyncSession, codes: list[str]) -> list[Event]:
    if not codes:
        return []
    result = await db.execute(
        select(Event)
        .where(Event.event_id.in_(codes))
        .order_by(Event.created_at.desc(), Event.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_owned_events(db: AsyncSession, uid: str) -> list[Event]:
    """Events in the user's myEvents, newest first. Stale ids are skipped."""
    user = await get_user_by_uid(db, uid)
    return await _events_for_codes(db, list(user.my_events or []))


async def list_joined_events(db: AsyncSession, uid: str) -> list[Event]:
    user = await get_user_by_uid(db, uid)
    return await _events_for_codes(db, list(user.joined_events or []))

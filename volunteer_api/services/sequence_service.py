"""
Business id generation (USR001, EVT001, ...) from the `counters` table.

The increment is a single UPDATE ... RETURNING, so two concurrent callers can
never read the same value; on PostgreSQL the row stays locked until the
surrounding transaction commits, and a rollback gives the number back.
The first call for a name seeds the row inside a savepoint; losing that race
to another seeder just falls through to the increment.
"""

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.core.config import get_settings
from volunteer_api.models.counter import Counter

USERS_SEQUENCE = "users"
EVENTS_SEQUENCE = "events"


async def next_value(db: AsyncSession, name: str) -> int:
    result = await db.execute(
        update(Counter)
        .where(Counter.name == name)
        .values(value=Counter.value + 1)
        .returning(Counter.value)
    )
    value = result.scalar_one_or_none()
    if value is not None:
        return value

    try:
        async with db.begin_nested():
            db.add(Counter(name=name, value=1))
        return 1
    except IntegrityError:
        # Seeded concurrently; the row exists now
        result = await db.execute(
            update(Counter)
            .where(Counter.name == name)
            .values(value=Counter.value + 1)
            .returning(Counter.value)
        )
        return result.scalar_one()


def format_id(prefix: str, value: int) -> str:
    """EVT + 7 -> EVT007; numbers wider than the pad keep all their digits."""
    width = get_settings().ID_PAD_WIDTH
    return f"{prefix}{value:0{width}d}"


async def next_user_id(db: AsyncSession) -> str:
    return format_id(get_settings().USER_ID_PREFIX, await next_value(db, USERS_SEQUENCE))


async def next_event_id(db: AsyncSession) -> str:
    return format_id(get_settings().EVENT_ID_PREFIX, await next_value(db, EVENTS_SEQUENCE))

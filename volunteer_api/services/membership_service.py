"""
Membership service: volunteers joining and leaving events.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  A join touches two rows: the event (volunteer count, roster) and the user
  (joinedEvents, joined-count, points). Two volunteers racing for the last
  slot both read volunteers=9/10 and both succeed; or the event write lands
  and the user write fails, leaving the two records disagreeing.

Solution:
  Both rows carry a `version` column and everything happens in one
  transaction.

  1. Read the event and the user, run the business checks
  2. UPDATE events SET volunteers = :n, version = version + 1
     WHERE id = :event_id AND version = :read_version
  3. INSERT the roster row (unique on event + uid)
  4. UPDATE users SET joined_events = :list, ..., version = version + 1
     WHERE id = :user_id AND version = :read_version
  5. If either UPDATE matched 0 rows, someone else got there first:
     roll back everything and retry from step 1
  6. COMMIT

  Because the values written in 2 and 4 were computed from the versions
  read in 1, a successful commit means the capacity check and the
  already-joined check held at write time. The roster's unique constraint
  is the final safety net against double joins.
"""

import time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from volunteer_api.core.config import get_settings
from volunteer_api.core.errors import AlreadyJoined, CapacityExceeded, Conflict, NotFound, NotJoined
from volunteer_api.core.logging import get_logger
from volunteer_api.core.metrics import membership_latency, record_db_operation, record_membership
from volunteer_api.db.base import utcnow
from volunteer_api.models.event import Event
from volunteer_api.models.user import User
from volunteer_api.models.volunteer import Volunteer
from volunteer_api.services.event_service import get_event_by_event_id
from volunteer_api.services.user_service import get_user_by_uid, write_user

logger = get_logger(__name__)


def _roster_entry(event: Event, uid: str) -> Optional[Volunteer]:
    for entry in event.volunteer_list:
        if entry.user_id == uid:
            return entry
    return None


async def _write_event(db: AsyncSession, event: Event, values: dict) -> bool:
    result = await db.execute(
        update(Event)
        .where(Event.id == event.id, Event.version == event.version)
        .values(**values, version=event.version + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    record_db_operation("write")
    return result.rowcount == 1


async def _lost_race(db: AsyncSession, action: str, event_code: str, uid: str, attempt: int) -> None:
    await db.rollback()
    record_db_operation("retry")
    logger.info(
        "membership_retry",
        action=action,
        event_id=event_code,
        uid=uid,
        attempt=attempt,
        reason="version_conflict",
    )


async def _load(db: AsyncSession, action: str, event_code: str, uid: str) -> tuple[Event, User]:
    try:
        event = await get_event_by_event_id(db, event_code)
        user = await get_user_by_uid(db, uid)
    except NotFound:
        record_membership(action, "not_found")
        raise
    return event, user


async def join_event(
    db: AsyncSession,
    event_code: str,
    uid: str,
    user_email: Optional[str] = None,
    user_name: Optional[str] = None,
) -> Volunteer:
    """
    Add the user to the event's roster and credit them the event's points.
    Retries up to MAX_RETRY_ATTEMPTS on version conflicts.
    """
    settings = get_settings()
    started = time.perf_counter()

    for attempt in range(1, settings.MAX_RETRY_ATTEMPTS + 1):
        event, user = await _load(db, "join", event_code, uid)

        if event.is_full:
            logger.warning(
                "join_failed_full",
                event_id=event_code,
                uid=uid,
                volunteers=event.volunteers,
                max_volunteers=event.max_volunteers,
            )
            record_membership("join", "conflict")
            raise CapacityExceeded()

        if event_code in (user.joined_events or []) or _roster_entry(event, uid):
            record_membership("join", "conflict")
            raise AlreadyJoined()

        awarded = event.points or settings.DEFAULT_JOIN_POINTS

        if not await _write_event(db, event, {
            "volunteers": event.volunteers + 1,
            "live_attendance": event.live_attendance + 1,
        }):
            await _lost_race(db, "join", event_code, uid, attempt)
            continue

        entry = Volunteer(
            event_pk=event.id,
            user_id=uid,
            user_email=user_email or user.email or "",
            user_name=user_name or user.display_name or "",
            points_awarded=awarded,
            joined_at=utcnow(),
        )
        event.volunteer_list.append(entry)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            record_membership("join", "conflict")
            raise AlreadyJoined()

        if not await write_user(db, user, {
            "joined_events": [*(user.joined_events or []), event_code],
            "total_events_joined": user.total_events_joined + 1,
            "total_points": user.total_points + awarded,
        }):
            await _lost_race(db, "join", event_code, uid, attempt)
            continue

        await db.commit()
        record_membership("join", "success")
        membership_latency.labels(action="join").observe(time.perf_counter() - started)
        logger.info(
            "volunteer_joined",
            event_id=event_code,
            uid=uid,
            points=awarded,
            volunteers=event.volunteers + 1,
            attempt=attempt,
        )
        return entry

    record_membership("join", "conflict")
    raise Conflict("Joining failed due to high demand. Please try again.")


async def leave_event(db: AsyncSession, event_code: str, uid: str) -> None:
    """
    Remove the user from the roster and debit what the join credited.
    Uses the same optimistic locking pattern as join.
    """
    settings = get_settings()
    started = time.perf_counter()

    for attempt in range(1, settings.MAX_RETRY_ATTEMPTS + 1):
        event, user = await _load(db, "leave", event_code, uid)

        entry = _roster_entry(event, uid)
        listed = event_code in (user.joined_events or [])
        if not listed and entry is None:
            record_membership("leave", "conflict")
            raise NotJoined()

        # Only a roster entry carries a credit to give back
        debit = entry.points_awarded if entry is not None else 0

        if entry is not None:
            if not await _write_event(db, event, {
                "volunteers": max(event.volunteers - 1, 0),
                "live_attendance": max(event.live_attendance - 1, 0),
            }):
                await _lost_race(db, "leave", event_code, uid, attempt)
                continue
            # delete-orphan removes the row on flush
            event.volunteer_list.remove(entry)

        user_values = {"total_points": user.total_points - debit}
        if listed:
            user_values["joined_events"] = [code for code in user.joined_events if code != event_code]
            user_values["total_events_joined"] = max(user.total_events_joined - 1, 0)

        if not await write_user(db, user, user_values):
            await _lost_race(db, "leave", event_code, uid, attempt)
            continue

        await db.commit()
        record_membership("leave", "success")
        membership_latency.labels(action="leave").observe(time.perf_counter() - started)
        logger.info(
            "volunteer_left",
            event_id=event_code,
            uid=uid,
            points=debit,
            attempt=attempt,
        )
        return

    record_membership("leave", "conflict")
    raise Conflict("Leaving failed due to high demand. Please try again.")


async def list_volunteers(db: AsyncSession, event_code: str) -> list[Volunteer]:
    """Roster in join order."""
    event = await get_event_by_event_id(db, event_code)
    result = await db.execute(
        select(Volunteer).where(Volunteer.event_pk == event.id).order_by(Volunteer.id)
    )
    return list(result.scalars().all())

"""
Tests for join/leave and the volunteer roster, including the invariants
that tie the event side to the user side.
"""

import pytest
from httpx import AsyncClient

from volunteer_api.models import Volunteer
from volunteer_api.services import membership_service


async def _snapshot(client: AsyncClient, event_code: str, uid: str) -> tuple[dict, dict]:
    event = (await client.get(f"/api/events/id/{event_code}")).json()
    user = (await client.get(f"/api/users/uid/{uid}")).json()
    return event, user


@pytest.mark.asyncio
async def test_join_event(client: AsyncClient, open_event, volunteer):
    """Join updates the event roster and the user's list, count and points."""
    uid = volunteer.uid
    response = await client.post("/api/events/EVT100/join", json={
        "userId": uid,
        "userEmail": "volunteer@example.com",
        "userName": "Arif Hossain",
    })
    assert response.status_code == 200
    assert response.json() == {"message": "Successfully joined the event"}

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 1
    assert event["liveAttendance"] == 1
    assert len(event["volunteerList"]) == 1
    entry = event["volunteerList"][0]
    assert entry["userId"] == uid
    assert entry["userEmail"] == "volunteer@example.com"
    assert entry["userName"] == "Arif Hossain"
    assert entry["joinedAt"]

    assert user["joinedEvents"] == ["EVT100"]
    assert user["totalEventsJoined"] == 1
    # The event has no points of its own, so the default award applies
    assert user["totalPoints"] == 10


@pytest.mark.asyncio
async def test_join_credits_event_points(client: AsyncClient, open_event, volunteer):
    uid = volunteer.uid
    await client.put("/api/events/id/EVT100", json={"points": 25})
    await client.post("/api/events/EVT100/join", json={"userId": uid})
    user = (await client.get(f"/api/users/uid/{uid}")).json()
    assert user["totalPoints"] == 25


@pytest.mark.asyncio
async def test_join_falls_back_to_profile_details(client: AsyncClient, open_event, volunteer):
    uid = volunteer.uid
    await client.post("/api/events/EVT100/join", json={"userId": uid})
    roster = (await client.get("/api/events/EVT100/volunteers")).json()
    assert roster[0]["userEmail"] == "volunteer@example.com"
    assert roster[0]["userName"] == "Arif Hossain"


@pytest.mark.asyncio
async def test_join_twice_is_rejected(client: AsyncClient, open_event, volunteer):
    uid = volunteer.uid
    first = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert first.status_code == 200

    second = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert second.status_code == 400
    assert second.json() == {"error": "You have already joined this event"}

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 1
    assert user["totalPoints"] == 10


@pytest.mark.asyncio
async def test_join_full_event_is_rejected_and_state_unchanged(client: AsyncClient, full_event, volunteer):
    uid = volunteer.uid
    before_event, before_user = await _snapshot(client, "EVT200", uid)
    assert before_event["volunteers"] == before_event["maxVolunteers"] == 1

    response = await client.post("/api/events/EVT200/join", json={"userId": uid})
    assert response.status_code == 400
    assert response.json() == {"error": "Event is full"}

    after_event, after_user = await _snapshot(client, "EVT200", uid)
    assert after_event["volunteers"] == 1
    assert after_event["volunteerList"] == before_event["volunteerList"]
    assert after_user["joinedEvents"] == before_user["joinedEvents"] == []
    assert after_user["totalPoints"] == before_user["totalPoints"]


@pytest.mark.asyncio
async def test_capacity_fills_up(client: AsyncClient, owner):
    """With maxVolunteers=2 the third volunteer is turned away."""
    created = await client.post("/api/events", json={
        "title": "Flood Relief Packing", "date": "2026-08-10", "location": "Sylhet",
        "ownerId": owner.uid, "maxVolunteers": 2,
    })
    event_code = created.json()["eventId"]

    statuses = []
    for n in range(3):
        uid = f"relief-{n}"
        await client.post("/api/users", json={"uid": uid, "email": f"relief{n}@example.com"})
        response = await client.post(f"/api/events/{event_code}/join", json={"userId": uid})
        statuses.append(response.status_code)

    assert statuses == [200, 200, 400]
    event = (await client.get(f"/api/events/id/{event_code}")).json()
    assert event["volunteers"] == 2
    assert len(event["volunteerList"]) == 2


@pytest.mark.asyncio
async def test_uncapped_event_accepts_volunteers(client: AsyncClient, owner, volunteer):
    uid = volunteer.uid
    created = await client.post("/api/events", json={
        "title": "Street Library", "date": "2026-09-01", "location": "Rajshahi", "ownerId": owner.uid,
    })
    event_code = created.json()["eventId"]
    response = await client.post(f"/api/events/{event_code}/join", json={"userId": uid})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_join_unknown_event(client: AsyncClient, volunteer):
    response = await client.post("/api/events/EVT999/join", json={"userId": volunteer.uid})
    assert response.status_code == 404
    assert response.json() == {"error": "Event not found"}


@pytest.mark.asyncio
async def test_join_unregistered_user(client: AsyncClient, open_event):
    response = await client.post("/api/events/EVT100/join", json={"userId": "ghost"})
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_join_requires_user_id(client: AsyncClient, open_event):
    response = await client.post("/api/events/EVT100/join", json={})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_join_then_leave_restores_state(client: AsyncClient, open_event, volunteer):
    uid = volunteer.uid
    before_event, before_user = await _snapshot(client, "EVT100", uid)

    assert (await client.post("/api/events/EVT100/join", json={"userId": uid})).status_code == 200
    response = await client.post("/api/events/EVT100/leave", json={"userId": uid})
    assert response.status_code == 200
    assert response.json() == {"message": "Successfully left the event"}

    after_event, after_user = await _snapshot(client, "EVT100", uid)
    assert after_event["volunteers"] == before_event["volunteers"]
    assert after_event["liveAttendance"] == before_event["liveAttendance"]
    assert after_event["volunteerList"] == before_event["volunteerList"]
    assert after_user["joinedEvents"] == before_user["joinedEvents"]
    assert after_user["totalEventsJoined"] == before_user["totalEventsJoined"]
    assert after_user["totalPoints"] == before_user["totalPoints"]


@pytest.mark.asyncio
async def test_leave_debits_what_join_credited(client: AsyncClient, open_event, volunteer):
    """Editing the event's points between join and leave does not skew the balance."""
    uid = volunteer.uid
    await client.post("/api/events/EVT100/join", json={"userId": uid})
    await client.put("/api/events/id/EVT100", json={"points": 50})
    await client.post("/api/events/EVT100/leave", json={"userId": uid})

    user = (await client.get(f"/api/users/uid/{uid}")).json()
    assert user["totalPoints"] == 0


@pytest.mark.asyncio
async def test_leave_without_joining(client: AsyncClient, open_event, volunteer):
    response = await client.post("/api/events/EVT100/leave", json={"userId": volunteer.uid})
    assert response.status_code == 400
    assert response.json() == {"error": "You have not joined this event"}


@pytest.mark.asyncio
async def test_leave_twice(client: AsyncClient, open_event, volunteer):
    uid = volunteer.uid
    await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert (await client.post("/api/events/EVT100/leave", json={"userId": uid})).status_code == 200
    assert (await client.post("/api/events/EVT100/leave", json={"userId": uid})).status_code == 400


@pytest.mark.asyncio
async def test_leave_frees_a_slot(client: AsyncClient, full_event, volunteer):
    await client.post("/api/events/EVT200/leave", json={"userId": "vol-uid-03"})
    response = await client.post("/api/events/EVT200/join", json={"userId": volunteer.uid})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_leave_unknown_event(client: AsyncClient, volunteer):
    response = await client.post("/api/events/EVT999/leave", json={"userId": volunteer.uid})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_rejoin_after_leave(client: AsyncClient, open_event, volunteer):
    uid = volunteer.uid
    for path in ("join", "leave", "join"):
        assert (await client.post(f"/api/events/EVT100/{path}", json={"userId": uid})).status_code == 200

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 1
    assert user["joinedEvents"] == ["EVT100"]
    assert user["totalPoints"] == 10


@pytest.mark.asyncio
async def test_volunteer_roster_in_join_order(client: AsyncClient, open_event):
    for n in range(3):
        uid = f"roster-{n}"
        await client.post("/api/users", json={"uid": uid, "email": f"roster{n}@example.com"})
        await client.post("/api/events/EVT100/join", json={"userId": uid})

    response = await client.get("/api/events/EVT100/volunteers")
    assert response.status_code == 200
    assert [v["userId"] for v in response.json()] == ["roster-0", "roster-1", "roster-2"]


@pytest.mark.asyncio
async def test_volunteer_roster_unknown_event(client: AsyncClient):
    response = await client.get("/api/events/EVT999/volunteers")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_deleting_event_clears_its_roster(client: AsyncClient, full_event):
    assert (await client.delete("/api/events/id/EVT200")).status_code == 200
    assert (await client.get("/api/events/EVT200/volunteers")).status_code == 404


def _fail_first(real, times: int = 1):
    """Wrap a versioned write so its first `times` calls report a lost race."""
    calls = {"n": 0}

    async def write(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] <= times:
            return False
        return await real(*args, **kwargs)

    return write


async def _always_lose(*args, **kwargs):
    return False


@pytest.mark.asyncio
async def test_join_retries_after_user_write_conflict(client: AsyncClient, open_event, volunteer, monkeypatch):
    """The event write of a lost attempt is rolled back, so counts are not doubled."""
    uid = volunteer.uid
    monkeypatch.setattr(membership_service, "write_user", _fail_first(membership_service.write_user))

    response = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert response.status_code == 200

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 1
    assert len(event["volunteerList"]) == 1
    assert user["joinedEvents"] == ["EVT100"]
    assert user["totalEventsJoined"] == 1
    assert user["totalPoints"] == 10


@pytest.mark.asyncio
async def test_join_retries_after_event_write_conflict(client: AsyncClient, open_event, volunteer, monkeypatch):
    uid = volunteer.uid
    monkeypatch.setattr(membership_service, "_write_event", _fail_first(membership_service._write_event, times=2))

    response = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert response.status_code == 200

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 1
    assert len(event["volunteerList"]) == 1
    assert user["totalPoints"] == 10


@pytest.mark.asyncio
async def test_join_gives_up_after_max_attempts(client: AsyncClient, open_event, volunteer, monkeypatch):
    uid = volunteer.uid
    monkeypatch.setattr(membership_service, "_write_event", _always_lose)

    response = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert response.status_code == 400
    assert response.json() == {"error": "Joining failed due to high demand. Please try again."}

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 0
    assert event["volunteerList"] == []
    assert user["joinedEvents"] == []
    assert user["totalPoints"] == 0


@pytest.mark.asyncio
async def test_join_gives_up_when_user_row_keeps_changing(client: AsyncClient, open_event, volunteer, monkeypatch):
    uid = volunteer.uid
    monkeypatch.setattr(membership_service, "write_user", _always_lose)

    response = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert response.status_code == 400
    assert "try again" in response.json()["error"]

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 0
    assert event["volunteerList"] == []
    assert user["totalPoints"] == 0


@pytest.mark.asyncio
async def test_leave_retries_after_user_write_conflict(client: AsyncClient, open_event, volunteer, monkeypatch):
    uid = volunteer.uid
    assert (await client.post("/api/events/EVT100/join", json={"userId": uid})).status_code == 200

    monkeypatch.setattr(membership_service, "write_user", _fail_first(membership_service.write_user))
    response = await client.post("/api/events/EVT100/leave", json={"userId": uid})
    assert response.status_code == 200

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 0
    assert event["volunteerList"] == []
    assert user["joinedEvents"] == []
    assert user["totalPoints"] == 0


@pytest.mark.asyncio
async def test_leave_gives_up_after_max_attempts(client: AsyncClient, open_event, volunteer, monkeypatch):
    uid = volunteer.uid
    await client.post("/api/events/EVT100/join", json={"userId": uid})

    monkeypatch.setattr(membership_service, "_write_event", _always_lose)
    response = await client.post("/api/events/EVT100/leave", json={"userId": uid})
    assert response.status_code == 400
    assert response.json() == {"error": "Leaving failed due to high demand. Please try again."}

    event, user = await _snapshot(client, "EVT100", uid)
    assert event["volunteers"] == 1
    assert len(event["volunteerList"]) == 1
    assert user["joinedEvents"] == ["EVT100"]
    assert user["totalPoints"] == 10


@pytest.mark.asyncio
async def test_duplicate_roster_row_is_caught_by_constraint(
    client: AsyncClient, db_session, open_event, volunteer, monkeypatch
):
    """If the in-memory duplicate check misses, the unique constraint still refuses the join."""
    uid = volunteer.uid
    open_event.volunteer_list.append(
        Volunteer(user_id=uid, user_email="volunteer@example.com", user_name="Arif Hossain")
    )
    await db_session.commit()
    monkeypatch.setattr(membership_service, "_roster_entry", lambda event, uid: None)

    response = await client.post("/api/events/EVT100/join", json={"userId": uid})
    assert response.status_code == 400
    assert response.json() == {"error": "You have already joined this event"}

    event, user = await _snapshot(client, "EVT100", uid)
    # The counter write from the refused attempt was rolled back
    assert event["volunteers"] == 0
    assert len(event["volunteerList"]) == 1
    assert user["joinedEvents"] == []
    assert user["totalPoints"] == 0

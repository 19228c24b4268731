"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Race for the last slots
  locust -f locustfile.py --tags throughput   # Listing cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import random
import uuid

from locust import HttpUser, task, between, tag

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None
CONCURRENCY_SLOTS = 10


def register(client) -> str:
    """Sign a fresh user in through the upsert endpoint and return its uid."""
    uid = f"load-{uuid.uuid4().hex[:12]}"
    client.post("/api/users", json={
        "uid": uid,
        "email": f"{uid}@loadtest.example.com",
        "displayName": f"Load {uid[-4:]}",
        "authProvider": "email",
    }, name="/api/users")
    return uid


def create_event(client, owner_uid: str, max_volunteers: int, title: str = None):
    resp = client.post("/api/events", json={
        "title": title or f"Load Event {random.randint(1, 10000)}",
        "date": "2026-12-01",
        "location": "Dhaka",
        "ownerId": owner_uid,
        "maxVolunteers": max_volunteers,
        "visibility": "public",
    })
    if resp.status_code == 201:
        return resp.json()["eventId"]
    return None


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 volunteers -> 10 slots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM event_volunteers ev JOIN events e ON e.id = ev.event_pk
      WHERE e.event_id = '<id>';
    Should be <= 10 and equal to events.volunteers
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.uid = register(self.client)
        if not CONCURRENCY_EVENT_ID:
            event_id = create_event(self.client, self.uid, CONCURRENCY_SLOTS, "Concurrency Test Event")
            if event_id:
                globals()["CONCURRENCY_EVENT_ID"] = event_id
                print(f"\nCreated event {event_id} with {CONCURRENCY_SLOTS} slots\n")

    @tag("concurrency")
    @task
    def join_limited_slots(self):
        """Everyone fights for the same slots."""
        if not CONCURRENCY_EVENT_ID:
            return

        with self.client.post(f"/api/events/{CONCURRENCY_EVENT_ID}/join",
            json={"userId": self.uid},
            name="/api/events/{eventId}/join",
            catch_response=True
        ) as resp:
            # 400 covers "full" and "already joined"
            if resp.status_code in (200, 400):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. With REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_public_events(self):
        resp = self.client.get("/api/events/public", name="/api/events/public [cached]")
        if resp.status_code == 200:
            for event in resp.json():
                if event["eventId"] not in EVENT_IDS:
                    EVENT_IDS.append(event["eventId"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/events/id/{random.choice(EVENT_IDS)}", name="/api/events/id/{eventId}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    Every request must come back as a clean 4xx, never a 5xx.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.uid = register(self.client)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def join_unknown_event(self):
        with self.client.post("/api/events/EVT999999/join",
            json={"userId": self.uid}, catch_response=True) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def join_without_user(self):
        with self.client.post("/api/events/EVT001/join", json={}, catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def leave_not_joined(self):
        if not EVENT_IDS:
            return
        with self.client.post(f"/api/events/{random.choice(EVENT_IDS)}/leave",
            json={"userId": self.uid}, name="/api/events/{eventId}/leave",
            catch_response=True) as resp:
            self._expect(resp, (400, 404))

    @tag("edge")
    @task
    def malformed_internal_id(self):
        with self.client.get("/api/events/not-a-number", catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def event_missing_fields(self):
        with self.client.post("/api/events", json={"title": "No date"}, catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/users", data="not json at all",
            headers={"Content-Type": "application/json"}, catch_response=True) as resp:
            self._expect(resp, (400,))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some joining and leaving, rare creates.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.uid = register(self.client)
        self.joined = []

    @task(50)
    def browse_events(self):
        resp = self.client.get(f"/api/events/public?uid={self.uid}", name="/api/events/public")
        if resp.status_code == 200:
            for event in resp.json():
                if event["eventId"] not in EVENT_IDS:
                    EVENT_IDS.append(event["eventId"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/events/id/{random.choice(EVENT_IDS)}", name="/api/events/id/{eventId}")

    @task(8)
    def join(self):
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            resp = self.client.post(f"/api/events/{event_id}/join",
                json={"userId": self.uid}, name="/api/events/{eventId}/join")
            if resp.status_code == 200:
                self.joined.append(event_id)

    @task(3)
    def leave(self):
        if self.joined:
            event_id = self.joined.pop(random.randrange(len(self.joined)))
            self.client.post(f"/api/events/{event_id}/leave",
                json={"userId": self.uid}, name="/api/events/{eventId}/leave")

    @task(2)
    def my_dashboard(self):
        self.client.get(f"/api/users/{self.uid}/joined-events", name="/api/users/{uid}/joined-events")

    @task(3)
    def create(self):
        event_id = create_event(self.client, self.uid, random.choice([0, 10, 50]))
        if event_id:
            EVENT_IDS.append(event_id)

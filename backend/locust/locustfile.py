"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention  # Many players, one slot
  locust -f locustfile.py --tags throughput  # Schedule cache
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests
"""

import random
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

# Shared state
COURT_IDS = []
CONTENTION_COURT_ID = None
CONTENTION_START = (datetime.now(timezone.utc) + timedelta(days=7)).replace(
    hour=18, minute=0, second=0, microsecond=0
)


def slot(start: datetime, minutes: int = 60) -> dict:
    return {
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(minutes=minutes)).isoformat(),
    }


def create_player(client):
    resp = client.post("/api/v1/players/", json={"name": f"Load Player {random.randint(1, 10**6)}"})
    if resp.status_code == 201:
        return resp.json()["id"]
    return None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: Creating contention test court...")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - every user requests the same hour on one court

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE court_id = X AND status IN ('booked', 'completed');
    Should be exactly 1, and every other request should be on the waitlist.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.player_id = create_player(self.client)

        if not CONTENTION_COURT_ID:
            resp = self.client.post(
                "/api/v1/courts/",
                json={"name": f"Contention Court {random.randint(1, 10**6)}", "indoor": True},
            )
            if resp.status_code == 201:
                globals()["CONTENTION_COURT_ID"] = resp.json()["id"]
                print(f"\n✓ Created court {CONTENTION_COURT_ID}\n")

    @tag("contention")
    @task
    def request_same_slot(self):
        """All users fight for the same hour."""
        if not CONTENTION_COURT_ID or not self.player_id:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json={"court_id": CONTENTION_COURT_ID, "player_id": self.player_id, **slot(CONTENTION_START)},
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409 and resp.json().get("waitlist_entry"):
                resp.success()  # Expected: waitlisted
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - schedule cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        resp = self.client.get("/api/v1/courts/")
        if resp.status_code == 200:
            for court in resp.json():
                if court["id"] not in COURT_IDS:
                    COURT_IDS.append(court["id"])

    @tag("throughput", "read")
    @task(10)
    def court_schedule_cached(self):
        """Hammer the cached endpoint."""
        if COURT_IDS:
            self.client.get(
                f"/api/v1/courts/{random.choice(COURT_IDS)}/schedule?on_date={CONTENTION_START.date().isoformat()}",
                name="/api/v1/courts/{id}/schedule [cached]",
            )

    @tag("throughput", "read")
    @task(3)
    def list_courts(self):
        self.client.get("/api/v1/courts/?active_only=true")

    @tag("throughput")
    @task(1)
    def health_check(self):
        """Monitor system health."""
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.player_id = create_player(self.client) or 1

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_court_id(self):
        """Book a non-existent court."""
        with self.client.post(
            "/api/v1/bookings/",
            json={"court_id": 999999, "player_id": self.player_id, **slot(CONTENTION_START)},
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def inverted_interval(self):
        """End before start."""
        body = {
            "court_id": 1,
            "player_id": self.player_id,
            "start_time": CONTENTION_START.isoformat(),
            "end_time": (CONTENTION_START - timedelta(hours=1)).isoformat(),
        }
        with self.client.post("/api/v1/bookings/", json=body, catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def empty_interval(self):
        """Zero-length slot."""
        body = {
            "court_id": 1,
            "player_id": self.player_id,
            "start_time": CONTENTION_START.isoformat(),
            "end_time": CONTENTION_START.isoformat(),
        }
        with self.client.post("/api/v1/bookings/", json=body, catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def negative_price(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"court_id": 1, "player_id": self.player_id, "price_cents": -100, **slot(CONTENTION_START)},
            catch_response=True,
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post("/api/v1/bookings/", data="not json at all", catch_response=True) as resp:
            self._expect(resp, [400, 422])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates a club evening:
      - Mostly schedule browsing
      - Some bookings across courts and hours (some end up waitlisted)
      - Occasional cancellations, which promote from the waitlist
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.player_id = create_player(self.client)
        self.booking_ids = []
        resp = self.client.get("/api/v1/courts/?active_only=true")
        if resp.status_code == 200:
            for court in resp.json():
                if court["id"] not in COURT_IDS:
                    COURT_IDS.append(court["id"])

    @task(50)
    def browse_schedule(self):
        if COURT_IDS:
            self.client.get(
                f"/api/v1/courts/{random.choice(COURT_IDS)}/schedule?on_date={CONTENTION_START.date().isoformat()}",
                name="/api/v1/courts/{id}/schedule",
            )

    @task(10)
    def request_slot(self):
        if not COURT_IDS or not self.player_id:
            return
        start = CONTENTION_START.replace(hour=random.randint(8, 21))
        resp = self.client.post(
            "/api/v1/bookings/",
            json={
                "court_id": random.choice(COURT_IDS),
                "player_id": self.player_id,
                **slot(start, random.choice([30, 60, 90])),
            },
        )
        if resp.status_code == 201:
            self.booking_ids.append(resp.json()["id"])

    @task(3)
    def cancel_slot(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop(random.randrange(len(self.booking_ids)))
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel", name="/api/v1/bookings/{id}/cancel")

"""
Locust Load Test Suite

Point the server at PAYMENT_PROVIDER=local, then run scenarios:
  locust -f locustfile.py --tags oversell     # Many buyers, few slots
  locust -f locustfile.py --tags throughput   # Availability polling
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

ADMIN_API_KEY must match the server's.
"""

import os
import random
import string
from locust import HttpUser, task, between, tag, events

ADMIN_HEADERS = {"X-Admin-Key": os.getenv("ADMIN_API_KEY", "change-me-admin-key")}
SLOTS_PER_PERIOD = int(os.getenv("LOAD_SLOTS_PER_PERIOD", "10"))

# Shared state
OVERSELL_VENUE_ID = "load-" + "".join(random.choices(string.ascii_lowercase, k=6))
VENUE_READY = False
SESSION_IDS = []


def random_customer():
    suffix = random.randint(10000, 99999)
    return {"email": f"load_{suffix}@test.com", "name": f"Load {suffix}"}


def ensure_venue(client):
    """First user to start creates a venue that sells all day, every day."""
    global VENUE_READY
    if VENUE_READY:
        return
    resp = client.post(
        "/api/v1/venues/",
        json={"id": OVERSELL_VENUE_ID, "name": "Oversell Test Venue", "price": "20.00", "time_zone": "UTC"},
        headers=ADMIN_HEADERS,
    )
    if resp.status_code not in (201, 409):
        return
    entries = [
        {"day_of_week": d, "start_time": "00:00", "end_time": "00:00", "slots_per_period": SLOTS_PER_PERIOD}
        for d in range(7)
    ]
    resp = client.put(
        f"/api/v1/venues/{OVERSELL_VENUE_ID}/schedules/weekly",
        json={"entries": entries},
        headers=ADMIN_HEADERS,
    )
    if resp.status_code == 200:
        VENUE_READY = True
        print(f"\n✓ Venue {OVERSELL_VENUE_ID} sells {SLOTS_PER_PERIOD} slots per period\n")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"SETUP: oversell venue will be {OVERSELL_VENUE_ID}")
    print("="*60)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    print(f"\nReservations created: {len(SESSION_IDS)}")
    print("Verify no period exceeded its capacity:")
    print("  SELECT date_trunc('minute', created_at), COUNT(*) FROM pending_holds")
    print(f"  WHERE venue_id = '{OVERSELL_VENUE_ID}' GROUP BY 1 ORDER BY 1;")


class OversellUser(HttpUser):
    """
    TEST 1: Oversell - many buyers -> SLOTS_PER_PERIOD slots per 15 minutes

    Run: locust -f locustfile.py --tags oversell -u 100 -r 50 --run-time 30s

    Within one period, successes must be <= SLOTS_PER_PERIOD.
    Everything else must be a 409 sold_out, never a 5xx.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        ensure_venue(self.client)

    @tag("oversell")
    @task
    def reserve_slot(self):
        if not VENUE_READY:
            return
        with self.client.post("/api/v1/reservations/",
            json={"venue_id": OVERSELL_VENUE_ID, "customer": random_customer()},
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                SESSION_IDS.append(resp.json()["session_id"])
                resp.success()
            elif resp.status_code == 409 and resp.json().get("error") == "sold_out":
                resp.success()  # Expected once the period is full
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class PaymentUser(HttpUser):
    """
    TEST 2: Payment outcomes arriving while reservations continue

    Settles random sessions as paid or failed, redelivering some of them.
    Every delivery must be acknowledged with 200.
    """
    wait_time = between(0.1, 0.5)

    @tag("oversell", "payments")
    @task
    def deliver_outcome(self):
        if not SESSION_IDS:
            return
        session_id = random.choice(SESSION_IDS)
        status = random.choice(["paid", "paid", "paid", "unpaid"])
        with self.client.post("/api/v1/webhooks/payments",
            json={"record": {
                "session_id": session_id,
                "venue_id": OVERSELL_VENUE_ID,
                "payment_status": status,
                "amount_total": 2000,
            }},
            name="/api/v1/webhooks/payments",
            catch_response=True
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 3: Throughput - availability polling by listing and detail pages

    Run twice, with and without Redis, and compare P95 latency.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        ensure_venue(self.client)

    @tag("throughput", "read")
    @task(10)
    def venue_availability(self):
        self.client.get(f"/api/v1/venues/{OVERSELL_VENUE_ID}/availability",
            name="/api/v1/venues/{id}/availability")

    @tag("throughput", "read")
    @task(3)
    def listing_availability(self):
        self.client.get("/api/v1/venues/availability")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 4: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    @tag("edge")
    @task
    def unknown_venue(self):
        with self.client.post("/api/v1/reservations/",
            json={"venue_id": "no-such-venue", "customer": random_customer()},
            catch_response=True
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_email(self):
        with self.client.post("/api/v1/reservations/",
            json={"venue_id": OVERSELL_VENUE_ID, "customer": {"email": "nope", "name": "x"}},
            catch_response=True
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def malformed_webhook(self):
        with self.client.post("/api/v1/webhooks/payments",
            data="not json at all",
            catch_response=True
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_admin_key(self):
        with self.client.put(f"/api/v1/venues/{OVERSELL_VENUE_ID}/price",
            json={"price": "1.00"},
            catch_response=True
        ) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")

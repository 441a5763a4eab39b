"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags contention   # Test double booking
  locust -f locustfile.py --tags throughput   # Test gallery cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
import string
from datetime import date, timedelta

from locust import HttpUser, between, events, tag, task

# Shared state
BOOKING_IDS = []

# Every contention user asks for the same room and the same nights
CONTENTION_ROOM = "3"
CONTENTION_CHECK_IN = (date.today() + timedelta(days=60)).isoformat()
CONTENTION_CHECK_OUT = (date.today() + timedelta(days=62)).isoformat()


def random_name():
    return "Guest " + "".join(random.choices(string.ascii_lowercase, k=6)).title()


def random_id_number():
    return "A" + "".join(random.choices(string.digits, k=7))


def booking_form(room, check_in, check_out):
    return {
        "fullName": random_name(),
        "idNumber": random_id_number(),
        "phoneNumber": "7" + "".join(random.choices(string.digits, k=6)),
        "roomNumber": room,
        "checkInDate": check_in,
        "checkOutDate": check_out,
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"CONTENTION: Room {CONTENTION_ROOM}, {CONTENTION_CHECK_IN} -> {CONTENTION_CHECK_OUT}")
    print("=" * 60)


class ContentionUser(HttpUser):
    """
    TEST 1: Contention - 100 guests -> 1 room, same nights

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify exactly one active booking holds the window:
      SELECT COUNT(*) FROM bookings b JOIN booking_rooms r ON r.booking_id = b.id
      WHERE r.room_number = 3 AND b.status IN ('Pending', 'Confirmed')
        AND b.check_in_date < :check_out AND b.check_out_date > :check_in;
    Should be <= 1
    """
    wait_time = between(0, 0.1)

    @tag("contention")
    @task
    def book_same_room(self):
        """All users fight for the same room and nights."""
        with self.client.post(
            "/api/bookings",
            data=booking_form(CONTENTION_ROOM, CONTENTION_CHECK_IN, CONTENTION_CHECK_OUT),
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                BOOKING_IDS.append(resp.json()["id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: already booked
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Gallery cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_gallery_cached(self):
        self.client.get("/api/gallery", name="/api/gallery [cached]")

    @tag("throughput", "read")
    @task(5)
    def check_availability(self):
        start = date.today() + timedelta(days=random.randint(1, 90))
        self.client.get(
            "/api/bookings/check-availability",
            params={
                "roomNumber": random.randint(1, 5),
                "checkIn": start.isoformat(),
                "checkOut": (start + timedelta(days=random.randint(1, 5))).isoformat(),
            },
            name="/api/bookings/check-availability",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_booking(self):
        with self.client.patch(
            "/api/bookings/does-not-exist/confirm",
            name="/api/bookings/{id}/confirm",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_nights(self):
        day = (date.today() + timedelta(days=10)).isoformat()
        with self.client.post("/api/bookings", data=booking_form("1", day, day), catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def room_out_of_range(self):
        start = date.today() + timedelta(days=10)
        form = booking_form("99", start.isoformat(), (start + timedelta(days=1)).isoformat())
        with self.client.post("/api/bookings", data=form, catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_room_list(self):
        start = date.today() + timedelta(days=10)
        form = booking_form(None, start.isoformat(), (start + timedelta(days=1)).isoformat())
        form["roomNumbers"] = "[1, 2"
        with self.client.post("/api/bookings", data=form, catch_response=True) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def missing_availability_params(self):
        with self.client.get(
            "/api/bookings/check-availability",
            params={"roomNumber": 1},
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing the landing page and checking dates
      - Some booking submissions
      - Rare admin confirmations
    """
    wait_time = between(1, 3)

    @task(40)
    def browse_gallery(self):
        self.client.get("/api/gallery")

    @task(20)
    def load_config(self):
        self.client.get("/api/config")

    @task(20)
    def check_dates(self):
        start = date.today() + timedelta(days=random.randint(1, 120))
        self.client.get(
            "/api/bookings/check-availability",
            params={
                "roomNumber": random.randint(1, 5),
                "checkIn": start.isoformat(),
                "checkOut": (start + timedelta(days=2)).isoformat(),
            },
            name="/api/bookings/check-availability",
        )

    @task(10)
    def submit_booking(self):
        start = date.today() + timedelta(days=random.randint(1, 120))
        form = booking_form(
            str(random.randint(1, 5)),
            start.isoformat(),
            (start + timedelta(days=random.randint(1, 4))).isoformat(),
        )
        resp = self.client.post("/api/bookings", data=form)
        if resp.status_code == 201:
            BOOKING_IDS.append(resp.json()["id"])

    @task(2)
    def confirm_booking(self):
        if BOOKING_IDS:
            self.client.patch(
                f"/api/bookings/{random.choice(BOOKING_IDS)}/confirm",
                name="/api/bookings/{id}/confirm",
            )

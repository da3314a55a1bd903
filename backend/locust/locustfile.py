"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags approval    # Race admins over overlapping bookings
  locust -f locustfile.py --tags throughput  # Seat map cache
  locust -f locustfile.py --tags edge        # Bad input
  locust -f locustfile.py                    # All tests

Run against a freshly initialized inventory (POST /api/seats/init).
"""

import random
from locust import HttpUser, task, between, tag, events

# 1x1 transparent PNG
PNG = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
    b"\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01"
    b"\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)

# Contended block: every booking in the approval test asks for two adjacent
# seats out of these ten, so neighbours always overlap.
CONTENDED_SEATS = [f"A{n}" for n in range(1, 11)]


def random_phone():
    return str(random.randint(6000000000, 9999999999))


def submit_booking(client, seats, name="/api/bookings"):
    return client.post(
        "/api/bookings",
        data={
            "email": f"load_{random.randint(10000, 99999)}@test.com",
            "phone": random_phone(),
            "amount": "500",
            "seats": ",".join(seats),
        },
        files={"screenshot": ("proof.png", PNG, "image/png")},
        name=name,
    )


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("Approval race: bookings overlap on seats A1-A10")
    print("=" * 60)


class ApprovalRaceUser(HttpUser):
    """
    TEST 1: Concurrency - many admins approving overlapping bookings

    Run: locust -f locustfile.py --tags approval -u 50 -r 25 --run-time 30s

    After the test, verify no seat is held twice:
      SELECT seat_id, COUNT(*) FROM booking_seats bs
        JOIN bookings b ON b.id = bs.booking_id
       WHERE b.status = 'approved'
       GROUP BY seat_id HAVING COUNT(*) > 1;
    Should return no rows.
    """
    wait_time = between(0, 0.1)

    @tag("approval")
    @task
    def submit_and_approve(self):
        start = random.randint(0, len(CONTENDED_SEATS) - 2)
        seats = CONTENDED_SEATS[start:start + 2]

        resp = submit_booking(self.client, seats)
        if resp.status_code != 201:
            return
        booking_id = resp.json()["booking_id"]

        with self.client.post(
            f"/api/bookings/{booking_id}/approve",
            name="/api/bookings/{id}/approve",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: seat taken by a faster approval
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - seat map cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_seats_cached(self):
        self.client.get("/api/seats", name="/api/seats [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_seat(self):
        label = f"{random.choice('ABCDEFGHIJKLMNOPQRST')}{random.randint(1, 20)}"
        self.client.get(f"/api/seats/{label}", name="/api/seats/{label}")

    @tag("throughput")
    @task(1)
    def review_queue(self):
        self.client.get("/api/bookings?status=pending", name="/api/bookings?status=pending")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    The API must answer with proper error codes, never 5xx.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def approve_missing_booking(self):
        with self.client.post(
            "/api/bookings/999999/approve",
            name="/api/bookings/{id}/approve [missing]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def approve_unknown_seat(self):
        resp = submit_booking(self.client, ["ZZ99"], name="/api/bookings [unknown seat]")
        if resp.status_code != 201:
            return
        booking_id = resp.json()["booking_id"]
        with self.client.post(
            f"/api/bookings/{booking_id}/approve",
            name="/api/bookings/{id}/approve [unknown seat]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def zero_amount(self):
        with self.client.post(
            "/api/bookings",
            data={"email": "edge@test.com", "phone": random_phone(), "amount": "0", "seats": "A1"},
            files={"screenshot": ("proof.png", PNG, "image/png")},
            name="/api/bookings [zero amount]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def wrong_file_type(self):
        with self.client.post(
            "/api/bookings",
            data={"email": "edge@test.com", "phone": random_phone(), "amount": "500", "seats": "A1"},
            files={"screenshot": ("proof.txt", b"not an image", "text/plain")},
            name="/api/bookings [wrong type]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def missing_screenshot(self):
        with self.client.post(
            "/api/bookings",
            data={"email": "edge@test.com", "phone": random_phone(), "amount": "500", "seats": "A1"},
            name="/api/bookings [no screenshot]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def reject_twice(self):
        resp = submit_booking(self.client, ["B1"], name="/api/bookings [reject twice]")
        if resp.status_code != 201:
            return
        booking_id = resp.json()["booking_id"]
        self.client.post(f"/api/bookings/{booking_id}/reject", name="/api/bookings/{id}/reject")
        with self.client.post(
            f"/api/bookings/{booking_id}/reject",
            name="/api/bookings/{id}/reject [again]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing the seat map, some submissions, occasional admin review.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.submitted = []

    @task(50)
    def browse_seats(self):
        self.client.get("/api/seats")

    @task(10)
    def submit(self):
        row = random.choice("CDEFGHIJ")
        first = random.randint(1, 19)
        resp = submit_booking(self.client, [f"{row}{first}", f"{row}{first + 1}"])
        if resp.status_code == 201:
            self.submitted.append(resp.json()["booking_id"])

    @task(5)
    def review(self):
        if not self.submitted:
            return
        booking_id = self.submitted.pop(0)
        action = "approve" if random.random() < 0.8 else "reject"
        with self.client.post(
            f"/api/bookings/{booking_id}/{action}",
            name=f"/api/bookings/{{id}}/{action}",
            catch_response=True,
        ) as resp:
            if resp.status_code in [200, 409]:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

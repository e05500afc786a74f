"""
End-to-end tests through the HTTP API with the local payment gateway.

The venue used here sells all day, every day, in UTC, so the tests do not
depend on the wall clock they run at.
"""

import pytest

API = "/api/v1"
ALL_DAY = {"start_time": "00:00", "end_time": "00:00"}


async def create_all_day_venue(client, admin_headers, venue_id="city-club", slots=3):
    response = await client.post(
        f"{API}/venues/",
        json={"id": venue_id, "name": "City Club", "price": "15.00", "time_zone": "UTC"},
        headers=admin_headers,
    )
    assert response.status_code == 201

    entries = [{"day_of_week": d, **ALL_DAY, "slots_per_period": slots} for d in range(7)]
    response = await client.put(
        f"{API}/venues/{venue_id}/schedules/weekly",
        json={"entries": entries},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert len(response.json()) == 7
    return venue_id


async def reserve(client, venue_id, email="jo@example.com"):
    return await client.post(
        f"{API}/reservations/",
        json={"venue_id": venue_id, "customer": {"email": email, "name": "Jo Bloggs"}},
    )


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_admin_endpoints_require_key(client):
    response = await client.post(f"{API}/venues/", json={"id": "x", "name": "X", "price": "1.00"})
    assert response.status_code == 401

    response = await client.get(f"{API}/transactions/", headers={"X-Admin-Key": "wrong"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_purchase_then_paid_webhook(client, admin_headers):
    venue_id = await create_all_day_venue(client, admin_headers)

    response = await reserve(client, venue_id)
    assert response.status_code == 201
    session_id = response.json()["session_id"]
    assert session_id.startswith("cs_local_")

    status = await client.get(f"{API}/reservations/{session_id}")
    assert status.json()["status"] == "pending"

    webhook = {"session_id": session_id, "payment_status": "paid", "venue_id": venue_id, "amount_total": 1500}
    response = await client.post(f"{API}/webhooks/payments", json=webhook)
    assert response.status_code == 200
    assert response.json() == {"received": True, "session_id": session_id, "result": "confirmed"}

    response = await client.post(f"{API}/webhooks/payments", json=webhook)
    assert response.json()["result"] == "duplicate"

    status = await client.get(f"{API}/reservations/{session_id}")
    assert status.json()["status"] == "confirmed"

    transactions = await client.get(f"{API}/transactions/", params={"venue_id": venue_id}, headers=admin_headers)
    assert transactions.status_code == 200
    body = transactions.json()
    assert body["total"] == 1
    assert body["transactions"][0]["session_id"] == session_id
    assert body["transactions"][0]["amount_total"] == 1500

    audit = await client.get(f"{API}/transactions/audit-log", params={"session_id": session_id}, headers=admin_headers)
    assert audit.json()["total"] == 2


@pytest.mark.asyncio
async def test_sold_out_returns_conflict(client, admin_headers):
    venue_id = await create_all_day_venue(client, admin_headers, venue_id="tiny-bar", slots=1)

    assert (await reserve(client, venue_id)).status_code == 201
    response = await reserve(client, venue_id, email="late@example.com")
    assert response.status_code == 409
    assert response.json()["error"] == "sold_out"

    availability = await client.get(f"{API}/venues/{venue_id}/availability")
    assert availability.status_code == 200
    assert availability.json()["slots_remaining"] == 0
    assert availability.json()["next_available"] is not None


@pytest.mark.asyncio
async def test_failed_payment_frees_the_slot(client, admin_headers):
    venue_id = await create_all_day_venue(client, admin_headers, venue_id="one-slot", slots=1)

    session_id = (await reserve(client, venue_id)).json()["session_id"]
    response = await client.post(
        f"{API}/webhooks/payments",
        json={"type": "checkout.session.expired", "data": {"object": {"id": session_id, "payment_status": "unpaid"}}},
    )
    assert response.json()["result"] == "cancelled"

    assert (await reserve(client, venue_id)).status_code == 201


@pytest.mark.asyncio
async def test_availability_and_venue_detail(client, admin_headers):
    venue_id = await create_all_day_venue(client, admin_headers)

    response = await client.get(f"{API}/venues/{venue_id}/availability")
    assert response.status_code == 200
    body = response.json()
    assert body["is_open"] is True
    assert body["slots_remaining"] == 3
    assert body["capacity"] == 3

    detail = await client.get(f"{API}/venues/{venue_id}")
    assert len(detail.json()["day_schedules"]) == 7

    listing = await client.get(f"{API}/venues/availability")
    assert [a["venue_id"] for a in listing.json()] == [venue_id]


@pytest.mark.asyncio
async def test_unknown_venue_is_not_found(client):
    response = await client.get(f"{API}/venues/nowhere/availability")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"

    response = await reserve(client, "nowhere")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_malformed_webhook_rejected(client):
    response = await client.post(
        f"{API}/webhooks/payments", content=b"not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400

    response = await client.post(f"{API}/webhooks/payments", json={"payment_status": "paid"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


@pytest.mark.asyncio
async def test_webhook_for_unknown_session_is_acknowledged(client):
    response = await client.post(f"{API}/webhooks/payments", json={"session_id": "cs_ghost", "payment_status": "paid"})
    assert response.status_code == 200
    assert response.json()["result"] == "inconsistent"


@pytest.mark.asyncio
async def test_overnight_window_endpoint_splits(client, admin_headers):
    await client.post(
        f"{API}/venues/",
        json={"id": "night-bar", "name": "Night Bar", "price": "12.00", "time_zone": "Europe/London"},
        headers=admin_headers,
    )
    day = await client.put(
        f"{API}/venues/night-bar/schedules",
        json={"day_of_week": 5, "slots_per_period": 4},
        headers=admin_headers,
    )
    assert day.status_code == 200

    response = await client.put(
        f"{API}/schedules/{day.json()['id']}/windows",
        json={"start_time": "22:00", "end_time": "02:00"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    windows = response.json()
    assert len(windows) == 2
    assert windows[1]["start_time"] == "00:00:00"
    assert windows[1]["custom_slots"] == 4

    schedules = await client.get(f"{API}/venues/night-bar/schedules", headers=admin_headers)
    assert [d["day_of_week"] for d in schedules.json()] == [5, 6]


@pytest.mark.asyncio
async def test_invalid_schedule_rejected(client, admin_headers):
    await create_all_day_venue(client, admin_headers)
    response = await client.put(
        f"{API}/venues/city-club/schedules",
        json={"day_of_week": 9, "slots_per_period": 4},
        headers=admin_headers,
    )
    assert response.status_code == 422

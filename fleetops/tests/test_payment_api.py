"""
API tests for payment recording, status workflow and reconciliation.
"""

import pytest
from decimal import Decimal


@pytest.fixture
async def priced_booking(client, airport_service, sedan_rule):
    """Booking whose final fare is overridden to 1000."""
    response = await client.post("/v1/bookings", json={
        "service_type_id": airport_service["id"],
        "vehicle_type": "sedan",
        "distance_km": 20
    })
    booking = response.json()
    response = await client.patch(f"/v1/bookings/{booking['id']}/fare", json={"final_fare": 1000})
    assert response.status_code == 200
    return response.json()


async def pay(client, booking_id, amount, status="paid"):
    response = await client.post(f"/v1/bookings/{booking_id}/payments", json={
        "amount": amount,
        "status": status
    })
    assert response.status_code == 201
    return response.json()


async def summary(client, booking_id):
    response = await client.get(f"/v1/bookings/{booking_id}/payment-summary")
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_record_payment_defaults(client, priced_booking):
    response = await client.post(f"/v1/bookings/{priced_booking['id']}/payments", json={"amount": 250})
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["currency"] == "INR"
    assert Decimal(body["amount"]) == Decimal("250")


@pytest.mark.asyncio
async def test_record_payment_rejects_non_positive_amount(client, priced_booking):
    response = await client.post(f"/v1/bookings/{priced_booking['id']}/payments", json={"amount": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_record_payment_for_missing_booking(client):
    response = await client.post("/v1/bookings/9999/payments", json={"amount": 100})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_summary_counts_only_settled_payments(client, priced_booking):
    await pay(client, priced_booking["id"], 500, "paid")
    await pay(client, priced_booking["id"], 200, "pending")

    body = await summary(client, priced_booking["id"])
    assert Decimal(body["fare_amount"]) == Decimal("1000")
    assert Decimal(body["paid_amount"]) == Decimal("500")
    assert Decimal(body["remaining_amount"]) == Decimal("500")
    assert Decimal(body["progress_percent"]) == Decimal("50")
    assert body["needs_review"] is False
    assert body["formatted"] == {
        "fare_amount": "₹1,000.00",
        "paid_amount": "₹500.00",
        "remaining_amount": "₹500.00",
    }
    assert len(body["payments"]) == 2


@pytest.mark.asyncio
async def test_payments_listed_newest_first(client, priced_booking):
    first = await pay(client, priced_booking["id"], 100)
    second = await pay(client, priced_booking["id"], 200)

    response = await client.get(f"/v1/bookings/{priced_booking['id']}/payments")
    assert [p["id"] for p in response.json()] == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_summary_for_unpriced_booking(client, airport_service):
    booking = (await client.post("/v1/bookings", json={
        "service_type_id": airport_service["id"],
        "vehicle_type": "sedan",
        "distance_km": 12
    })).json()

    body = await summary(client, booking["id"])
    assert body["final_fare"] is None
    assert Decimal(body["fare_amount"]) == Decimal("0")
    assert Decimal(body["remaining_amount"]) == Decimal("0")
    assert Decimal(body["progress_percent"]) == Decimal("0")


@pytest.mark.asyncio
async def test_overpayment_is_flagged_for_review(client, airport_service, sedan_rule):
    booking = (await client.post("/v1/bookings", json={
        "service_type_id": airport_service["id"],
        "vehicle_type": "sedan",
        "distance_km": 20
    })).json()
    await client.patch(f"/v1/bookings/{booking['id']}/fare", json={"final_fare": 500})
    await pay(client, booking["id"], 700, "completed")

    body = await summary(client, booking["id"])
    assert Decimal(body["paid_amount"]) == Decimal("700")
    assert Decimal(body["remaining_amount"]) == Decimal("0")
    assert Decimal(body["progress_percent"]) == Decimal("100")
    assert Decimal(body["overpaid_amount"]) == Decimal("200")
    assert body["needs_review"] is True


@pytest.mark.asyncio
async def test_summary_includes_post_trip_extras(client, priced_booking):
    booking_id = priced_booking["id"]
    for status in ("accepted", "started", "completed"):
        await client.post(f"/v1/bookings/{booking_id}/status", json={"status": status})
    await client.put(f"/v1/bookings/{booking_id}/extras", json={"upgrade_charges": 200})
    await pay(client, booking_id, 600)

    body = await summary(client, booking_id)
    assert Decimal(body["extra_charges_total"]) == Decimal("200")
    assert Decimal(body["fare_amount"]) == Decimal("1200")
    assert Decimal(body["remaining_amount"]) == Decimal("600")


@pytest.mark.asyncio
async def test_mark_paid_settles_remaining_amount(client, priced_booking):
    await pay(client, priced_booking["id"], 400)

    response = await client.post(
        f"/v1/bookings/{priced_booking['id']}/mark-paid",
        headers={"X-Operator": "cashier_1"}
    )
    assert response.status_code == 201
    payment = response.json()
    assert Decimal(payment["amount"]) == Decimal("600")
    assert payment["status"] == "paid"
    assert payment["transaction_id"].startswith("MANUAL_")

    body = await summary(client, priced_booking["id"])
    assert Decimal(body["remaining_amount"]) == Decimal("0")
    assert Decimal(body["progress_percent"]) == Decimal("100")
    assert body["payment_status"] == "paid"

    trail = (await client.get(f"/v1/bookings/{priced_booking['id']}/audit-trail")).json()
    assert trail[0]["action"] == "BOOKING_MARKED_PAID"
    assert trail[0]["actor_username"] == "cashier_1"


@pytest.mark.asyncio
async def test_mark_paid_with_nothing_remaining(client, priced_booking):
    await pay(client, priced_booking["id"], 1000, "completed")

    response = await client.post(f"/v1/bookings/{priced_booking['id']}/mark-paid")
    assert response.status_code == 409
    assert response.json()["message"] == "No remaining amount to mark as paid"


@pytest.mark.asyncio
async def test_pending_payment_counts_once_marked_paid(client, priced_booking):
    payment = await pay(client, priced_booking["id"], 300, "pending")

    response = await client.post(f"/v1/payments/{payment['id']}/status", json={"status": "paid"})
    assert response.status_code == 200
    assert response.json()["status"] == "paid"

    body = await summary(client, priced_booking["id"])
    assert Decimal(body["paid_amount"]) == Decimal("300")


@pytest.mark.asyncio
@pytest.mark.parametrize("initial, target", [
    ("paid", "pending"),
    ("failed", "paid"),
    ("completed", "paid"),
    ("pending", "pending"),
])
async def test_invalid_payment_transitions(client, priced_booking, initial, target):
    payment = await pay(client, priced_booking["id"], 100, initial)

    response = await client.post(f"/v1/payments/{payment['id']}/status", json={"status": target})
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_status_change_for_missing_payment(client):
    response = await client.post("/v1/payments/4242/status", json={"status": "paid"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_payment_amount_beyond_stored_precision_is_rejected(client, priced_booking):
    response = await client.post(f"/v1/bookings/{priced_booking['id']}/payments", json={"amount": "10.005"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_extras_after_mark_paid_reopen_payment(client, priced_booking):
    booking_id = priced_booking["id"]
    await client.post(f"/v1/bookings/{booking_id}/mark-paid")
    for status in ("accepted", "started", "completed"):
        await client.post(f"/v1/bookings/{booking_id}/status", json={"status": status})

    await client.put(f"/v1/bookings/{booking_id}/extras", json={"upgrade_charges": 200})

    body = await summary(client, booking_id)
    assert Decimal(body["remaining_amount"]) == Decimal("200")
    assert body["payment_status"] == "pending"

    # Settling the rest flags it paid again
    response = await client.post(f"/v1/bookings/{booking_id}/mark-paid")
    assert Decimal(response.json()["amount"]) == Decimal("200")
    assert (await summary(client, booking_id))["payment_status"] == "paid"


@pytest.mark.asyncio
async def test_fare_raise_after_mark_paid_reopens_payment(client, priced_booking):
    booking_id = priced_booking["id"]
    await client.post(f"/v1/bookings/{booking_id}/mark-paid")

    response = await client.patch(f"/v1/bookings/{booking_id}/fare", json={"final_fare": 1100})
    assert response.json()["payment_status"] == "pending"

    body = await summary(client, booking_id)
    assert Decimal(body["remaining_amount"]) == Decimal("100")


@pytest.mark.asyncio
async def test_fare_cut_after_mark_paid_stays_paid(client, priced_booking):
    booking_id = priced_booking["id"]
    await client.post(f"/v1/bookings/{booking_id}/mark-paid")

    response = await client.patch(f"/v1/bookings/{booking_id}/fare", json={"final_fare": 900})
    assert response.json()["payment_status"] == "paid"

    body = await summary(client, booking_id)
    assert body["needs_review"] is True
    assert Decimal(body["overpaid_amount"]) == Decimal("100")

"""
API tests for service types, pricing rules, rental packages and quotes.
"""

import pytest
from decimal import Decimal

from fleetops.app.models.pricing_rule import PricingRule


async def create_rule(client, service_type_id, **overrides):
    payload = {
        "vehicle_type": "sedan",
        "base_fare": 99,
        "per_km_rate": 14,
        "minimum_fare": 299,
    }
    payload.update(overrides)
    response = await client.post(f"/v1/pricing/service-types/{service_type_id}/pricing-rules", json=payload)
    assert response.status_code == 201
    return response.json()


async def quote(client, **payload):
    return await client.post("/v1/pricing/quote", json=payload)


# Service types

@pytest.mark.asyncio
async def test_create_and_list_service_types(client, airport_service, rental_service):
    response = await client.get("/v1/pricing/service-types")
    assert response.status_code == 200
    names = [st["name"] for st in response.json()]
    assert names == ["airport", "rental"]

    assert airport_service["zone_based_pricing"] is True
    assert airport_service["uses_rental_packages"] is False
    assert airport_service["is_active"] is True


@pytest.mark.asyncio
async def test_duplicate_service_type_name_conflicts(client, airport_service):
    response = await client.post("/v1/pricing/service-types", json={
        "name": "airport",
        "display_name": "Another Airport"
    })
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"


@pytest.mark.asyncio
async def test_service_type_name_must_be_machine_readable(client):
    response = await client.post("/v1/pricing/service-types", json={
        "name": "Airport Transfer",
        "display_name": "Airport Transfer"
    })
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_get_missing_service_type(client):
    response = await client.get("/v1/pricing/service-types/999")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_unreferenced_service_type_is_fully_editable(client, airport_service):
    response = await client.patch(f"/v1/pricing/service-types/{airport_service['id']}", json={
        "name": "airport_transfer",
        "zone_based_pricing": False
    })
    assert response.status_code == 200
    assert response.json()["name"] == "airport_transfer"
    assert response.json()["zone_based_pricing"] is False


@pytest.mark.asyncio
async def test_referenced_service_type_freezes_pricing_fields(client, airport_service, sedan_rule):
    url = f"/v1/pricing/service-types/{airport_service['id']}"

    response = await client.patch(url, json={"name": "airport_v2"})
    assert response.status_code == 409
    assert response.json()["details"]["fields"] == ["name"]

    response = await client.patch(url, json={"zone_based_pricing": False})
    assert response.status_code == 409

    # Cosmetic edits and no-op writes to frozen fields are fine
    response = await client.patch(url, json={"display_name": "Airport Pickup & Drop", "zone_based_pricing": True})
    assert response.status_code == 200
    assert response.json()["display_name"] == "Airport Pickup & Drop"


# Pricing rules

@pytest.mark.asyncio
async def test_create_pricing_rule_defaults(client, sedan_rule):
    assert sedan_rule["zone"] is None
    assert sedan_rule["is_active"] is True
    assert Decimal(sedan_rule["base_fare"]) == Decimal("99")
    assert Decimal(sedan_rule["per_minute_rate"]) == Decimal("1.5")
    assert sedan_rule["free_waiting_minutes"] == 5


@pytest.mark.asyncio
async def test_pricing_rule_for_missing_service_type(client):
    response = await client.post("/v1/pricing/service-types/404/pricing-rules", json={
        "vehicle_type": "sedan",
        "base_fare": 99,
        "per_km_rate": 14
    })
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("field, value", [
    ("base_fare", -1),
    ("per_km_rate", -0.5),
    ("surge_multiplier", 0),
    ("free_waiting_minutes", -5),
])
async def test_pricing_rule_rejects_invalid_rates(client, airport_service, field, value):
    payload = {"vehicle_type": "sedan", "base_fare": 99, "per_km_rate": 14, field: value}
    response = await client.post(
        f"/v1/pricing/service-types/{airport_service['id']}/pricing-rules", json=payload
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_rules_in_catalog_order_with_active_filter(client, airport_service, sedan_rule):
    zone_rule = await create_rule(client, airport_service["id"], zone="Bangalore")
    await client.patch(f"/v1/pricing/pricing-rules/{sedan_rule['id']}/deactivate")

    url = f"/v1/pricing/service-types/{airport_service['id']}/pricing-rules"
    all_rules = (await client.get(url)).json()
    assert all_rules["total"] == 2
    assert [r["id"] for r in all_rules["rules"]] == [sedan_rule["id"], zone_rule["id"]]

    active = (await client.get(url, params={"active_only": True})).json()
    assert [r["id"] for r in active["rules"]] == [zone_rule["id"]]


@pytest.mark.asyncio
async def test_update_pricing_rule(client, sedan_rule):
    response = await client.patch(f"/v1/pricing/pricing-rules/{sedan_rule['id']}", json={
        "surge_multiplier": 1.5
    })
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["surge_multiplier"]) == Decimal("1.5")
    assert Decimal(body["base_fare"]) == Decimal("99")


@pytest.mark.asyncio
async def test_deactivate_rule_twice_conflicts(client, sedan_rule):
    url = f"/v1/pricing/pricing-rules/{sedan_rule['id']}/deactivate"

    response = await client.patch(url)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await client.patch(url)
    assert response.status_code == 409


# Rental packages

@pytest.mark.asyncio
async def test_rental_package_crud(client, rental_service, sedan_package):
    assert sedan_package["name"] == "8 hrs / 40 km"
    assert sedan_package["waiting_charge_per_minute"] is None

    response = await client.patch(f"/v1/pricing/rental-packages/{sedan_package['id']}", json={
        "base_price": 900
    })
    assert response.status_code == 200
    assert Decimal(response.json()["base_price"]) == Decimal("900")

    listing = (await client.get(f"/v1/pricing/service-types/{rental_service['id']}/rental-packages")).json()
    assert listing["total"] == 1

    response = await client.patch(f"/v1/pricing/rental-packages/{sedan_package['id']}/deactivate")
    assert response.json()["is_active"] is False

    response = await client.patch(f"/v1/pricing/rental-packages/{sedan_package['id']}/deactivate")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_get_missing_rental_package(client):
    response = await client.get("/v1/pricing/rental-packages/12345")
    assert response.status_code == 404


# Quotes

@pytest.mark.asyncio
async def test_quote_applies_minimum_fare(client, airport_service, sedan_rule):
    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="sedan", distance_km=5)
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["amount"]) == Decimal("299")
    assert body["rule_kind"] == "pricing_rule"
    assert body["rule_id"] == sedan_rule["id"]
    assert body["formatted_amount"] == "₹299.00"


@pytest.mark.asyncio
async def test_quote_above_minimum_with_duration(client, airport_service, sedan_rule):
    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="sedan", distance_km=20)
    assert Decimal(response.json()["amount"]) == Decimal("379")

    response = await quote(
        client, service_type_id=airport_service["id"], vehicle_type="sedan",
        distance_km=20, duration_minutes=30
    )
    assert Decimal(response.json()["amount"]) == Decimal("424")


@pytest.mark.asyncio
async def test_quote_prefers_zone_rule_over_wildcard(client, airport_service, sedan_rule):
    zone_rule = await create_rule(client, airport_service["id"], zone="Bangalore", base_fare=199)

    response = await quote(
        client, service_type_id=airport_service["id"], vehicle_type="sedan",
        zone="Bangalore", distance_km=20
    )
    assert response.json()["rule_id"] == zone_rule["id"]
    assert Decimal(response.json()["amount"]) == Decimal("479")

    response = await quote(
        client, service_type_id=airport_service["id"], vehicle_type="sedan",
        zone="Mysuru", distance_km=20
    )
    assert response.json()["rule_id"] == sedan_rule["id"]


@pytest.mark.asyncio
async def test_zone_is_ignored_without_zone_based_pricing(client):
    city = (await client.post("/v1/pricing/service-types", json={
        "name": "city_ride",
        "display_name": "City Ride"
    })).json()
    await create_rule(client, city["id"], zone="Bangalore")

    response = await quote(
        client, service_type_id=city["id"], vehicle_type="sedan",
        zone="Bangalore", distance_km=10
    )
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_PRICING_001"


@pytest.mark.asyncio
async def test_quote_rental_package_overage(client, rental_service, sedan_package):
    response = await quote(client, service_type_id=rental_service["id"], vehicle_type="sedan", distance_km=55)
    assert response.status_code == 200
    body = response.json()
    assert body["rule_kind"] == "rental_package"
    assert Decimal(body["amount"]) == Decimal("980")
    assert body["formatted_amount"] == "₹980.00"


@pytest.mark.asyncio
async def test_quote_without_pricing(client, airport_service, sedan_rule):
    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="suv", distance_km=10)
    assert response.status_code == 404
    body = response.json()
    assert body["error_code"] == "ERR_PRICING_001"
    assert body["details"]["vehicle_type"] == "suv"


@pytest.mark.asyncio
async def test_quote_ignores_deactivated_rules(client, airport_service, sedan_rule):
    await client.patch(f"/v1/pricing/pricing-rules/{sedan_rule['id']}/deactivate")
    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="sedan", distance_km=10)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_quote_duration_without_time_rate(client, airport_service):
    await create_rule(client, airport_service["id"])
    response = await quote(
        client, service_type_id=airport_service["id"], vehicle_type="sedan",
        distance_km=10, duration_minutes=15
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_PRICING_002"
    assert response.json()["details"]["missing_field"] == "per_minute_rate"


@pytest.mark.asyncio
async def test_quote_rejects_negative_distance(client, airport_service, sedan_rule):
    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="sedan", distance_km=-3)
    assert response.status_code == 422


# Stored precision

@pytest.mark.asyncio
@pytest.mark.parametrize("field, value", [
    ("surge_multiplier", "0.004"),
    ("surge_multiplier", "1000"),
    ("per_km_rate", "3.333"),
    ("per_minute_rate", "0.125"),
    ("minimum_fare", "299.999"),
])
async def test_rule_rates_beyond_stored_precision_are_rejected(client, airport_service, field, value):
    payload = {"vehicle_type": "sedan", "base_fare": 0, "per_km_rate": 14, field: value}
    response = await client.post(
        f"/v1/pricing/service-types/{airport_service['id']}/pricing-rules", json=payload
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_rule_update_beyond_stored_precision_is_rejected(client, sedan_rule):
    response = await client.patch(f"/v1/pricing/pricing-rules/{sedan_rule['id']}", json={
        "surge_multiplier": "0.004"
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_package_rates_beyond_stored_precision_are_rejected(client, rental_service):
    response = await client.post(
        f"/v1/pricing/service-types/{rental_service['id']}/rental-packages",
        json={
            "vehicle_type": "sedan",
            "name": "4 hrs / 40 km",
            "duration_hours": 4,
            "included_km": 40,
            "base_price": 800,
            "extra_km_rate": "12.505",
            "extra_hour_rate": 150
        }
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_two_decimal_rates_are_kept_exactly(client, airport_service):
    await create_rule(client, airport_service["id"], base_fare=0, minimum_fare=0, per_km_rate="3.33")
    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="sedan", distance_km=300)
    assert Decimal(response.json()["amount"]) == Decimal("999.00")


@pytest.mark.asyncio
async def test_unusable_stored_rule_is_skipped(client, db_session, airport_service, sedan_rule):
    # Rows written outside the API can still carry terms the engine rejects
    db_session.add(PricingRule(
        service_type_id=airport_service["id"],
        vehicle_type="sedan",
        zone="Bangalore",
        base_fare=Decimal("199"),
        per_km_rate=Decimal("14"),
        surge_multiplier=Decimal("0"),
    ))
    await db_session.commit()

    response = await quote(
        client, service_type_id=airport_service["id"], vehicle_type="sedan",
        zone="Bangalore", distance_km=20
    )
    assert response.status_code == 200
    assert response.json()["rule_id"] == sedan_rule["id"]
    assert Decimal(response.json()["amount"]) == Decimal("379")

    response = await client.post("/v1/bookings", json={
        "service_type_id": airport_service["id"],
        "vehicle_type": "sedan",
        "zone": "Bangalore",
        "distance_km": 20
    })
    assert response.status_code == 201
    assert Decimal(response.json()["quoted_fare"]) == Decimal("379")


@pytest.mark.asyncio
async def test_only_unusable_rule_reads_as_not_configured(client, db_session, airport_service):
    db_session.add(PricingRule(
        service_type_id=airport_service["id"],
        vehicle_type="suv",
        base_fare=Decimal("199"),
        per_km_rate=Decimal("18"),
        surge_multiplier=Decimal("0"),
    ))
    await db_session.commit()

    response = await quote(client, service_type_id=airport_service["id"], vehicle_type="suv", distance_km=10)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_PRICING_001"


# Clearing optional rates

@pytest.mark.asyncio
async def test_patch_null_clears_per_minute_rate(client, airport_service, sedan_rule):
    response = await client.patch(f"/v1/pricing/pricing-rules/{sedan_rule['id']}", json={
        "per_minute_rate": None,
        "base_fare": None
    })
    assert response.status_code == 200
    body = response.json()
    assert body["per_minute_rate"] is None
    assert Decimal(body["base_fare"]) == Decimal("99")

    response = await quote(
        client, service_type_id=airport_service["id"], vehicle_type="sedan",
        distance_km=20, duration_minutes=30
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_PRICING_002"


@pytest.mark.asyncio
async def test_patch_without_field_keeps_per_minute_rate(client, sedan_rule):
    response = await client.patch(f"/v1/pricing/pricing-rules/{sedan_rule['id']}", json={"minimum_fare": 250})
    assert Decimal(response.json()["per_minute_rate"]) == Decimal("1.5")


@pytest.mark.asyncio
async def test_patch_null_clears_package_waiting_rate(client, sedan_package):
    url = f"/v1/pricing/rental-packages/{sedan_package['id']}"

    response = await client.patch(url, json={"waiting_charge_per_minute": 3})
    assert Decimal(response.json()["waiting_charge_per_minute"]) == Decimal("3")

    response = await client.patch(url, json={"waiting_charge_per_minute": None, "base_price": None})
    assert response.status_code == 200
    assert response.json()["waiting_charge_per_minute"] is None
    assert Decimal(response.json()["base_price"]) == Decimal("800")

"""Integration tests for the currency rate API."""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from bursar.services import currency as currency_service

API = "/api/v1"


@pytest.mark.asyncio
async def test_current_rate_missing(client: AsyncClient):
    response = await client.get(f"{API}/currency/current")

    assert response.status_code == 404
    assert response.json() == {"status": "fail", "data": {"message": "No active USD rate found"}}


@pytest.mark.asyncio
async def test_set_and_read_rate(client: AsyncClient):
    created = await client.post(f"{API}/currency/rate", json={"rate": 48.5})
    current = await client.get(f"{API}/currency/current")

    assert created.status_code == 201
    assert created.json()["data"]["message"] == "Currency rate updated successfully"
    assert created.json()["data"]["rate"]["isActive"] is True
    assert current.json()["data"]["rate"]["rate"] == 48.5
    assert current.json()["data"]["rate"]["currency"] == "USD"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({}, "Rate is required"),
        ({"rate": "fifty"}, "Rate must be a number"),
        ({"rate": 0}, "Rate must be greater than 0"),
        ({"rate": 5000}, "Rate is unexpectedly large"),
        ({"rate": "0.0000001"}, "Rate must be greater than 0"),
        ({"rate": "48.1234567"}, "Rate supports at most 6 decimal places"),
    ],
)
async def test_invalid_rate(client: AsyncClient, body, message):
    response = await client.post(f"{API}/currency/rate", json=body)

    assert response.status_code == 400
    assert response.json()["data"]["message"] == message


@pytest.mark.asyncio
async def test_history_keeps_old_rates(client: AsyncClient):
    for rate in (48, 49, 50):
        await client.post(f"{API}/currency/rate", json={"rate": rate})

    response = await client.get(f"{API}/currency/history", params={"limit": 5})

    data = response.json()["data"]
    assert data["currency"] == "USD"
    assert data["total"] == 3
    assert [row["rate"] for row in data["history"]] == [50.0, 49.0, 48.0]
    assert [row["isActive"] for row in data["history"]] == [True, False, False]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, 101])
async def test_history_limit_bounds(client: AsyncClient, limit):
    response = await client.get(f"{API}/currency/history", params={"limit": limit})

    assert response.status_code == 400
    assert response.json()["data"]["message"] == "Limit must be between 1 and 100"


@pytest.mark.asyncio
async def test_initialize_is_idempotent(client: AsyncClient):
    first = await client.post(f"{API}/currency/initialize")
    second = await client.post(f"{API}/currency/initialize", json={"rate": 70})

    assert first.json()["data"]["message"] == "Currency rate initialized successfully"
    assert first.json()["data"]["rate"]["rate"] == 50.0
    assert second.json()["data"]["message"] == "Active currency rate already exists"
    assert second.json()["data"]["rate"]["id"] == first.json()["data"]["rate"]["id"]


@pytest.mark.asyncio
async def test_rate_update_storage_failure(client: AsyncClient, monkeypatch):
    async def broken_update(*args, **kwargs):
        raise OperationalError("UPDATE", {}, Exception("db down"))

    monkeypatch.setattr(currency_service, "update_currency_rate", broken_update)

    response = await client.post(f"{API}/currency/rate", json={"rate": 50})

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Failed to update currency rate"}


@pytest.mark.asyncio
@pytest.mark.parametrize("currency", ["USDX", "usd", "U$D"])
async def test_rate_currency_must_be_an_uppercase_code(client: AsyncClient, currency):
    response = await client.post(f"{API}/currency/rate", json={"rate": 50, "currency": currency})

    assert response.status_code == 400
    assert response.json()["status"] == "fail"
    assert response.json()["data"]["message"].startswith("currency: ")

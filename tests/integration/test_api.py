"""Tests for the HTTP boundary, wired to the in-process mock marketplace."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from parts_finder.api.app import create_app
from parts_finder.mock_servers.app import create_mock_marketplace
from parts_finder.pipeline.finder import PartsFinder
from tests.fixtures.sample_data import accord_bumper_items

VALID_BODY = {
    "parts": [
        {"damage_id": "front_bumper_cracked", "part_name": "front bumper"},
        {"damage_id": "hood_dented", "part_name": "hood"},
    ],
    "year": 2018,
    "make": "Honda",
    "model": "Accord",
}


@pytest.fixture
def client(sample_config):
    marketplace = create_mock_marketplace(items=accord_bumper_items())
    finder = PartsFinder(sample_config, transport=httpx.ASGITransport(app=marketplace))
    with TestClient(create_app(finder=finder)) as test_client:
        yield test_client


@pytest.mark.integration
def test_parts_search(client):
    response = client.post("/parts-search", json=VALID_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["timed_out"] is False
    assert [r["damage_id"] for r in data["results"]] == ["front_bumper_cracked", "hood_dented"]
    assert data["results"][0]["ebay_median"] == 105.0
    assert data["results"][0]["ebay_confidence"] == "high"
    assert data["summary"]["total_parts"] == 2
    assert data["summary"]["parts_with_live_price"] == 2


@pytest.mark.integration
def test_second_request_is_cached(client):
    client.post("/parts-search", json=VALID_BODY)

    data = client.post("/parts-search", json=VALID_BODY).json()

    assert all(r["cached"] for r in data["results"])
    assert data["summary"]["cached_count"] == 2


@pytest.mark.integration
@pytest.mark.parametrize("body,error", [
    ({**VALID_BODY, "parts": []}, "Parts list required"),
    ({"year": 2018, "make": "Honda", "model": "Accord"}, "Parts list required"),
    ({**VALID_BODY, "year": None}, "Vehicle year, make, model required"),
    ({**VALID_BODY, "make": ""}, "Vehicle year, make, model required"),
    ({**VALID_BODY, "parts": [{"damage_id": "x", "part_name": ""}]}, "Invalid request body"),
    (["not", "an", "object"], "Invalid request body"),
])
def test_invalid_requests(client, body, error):
    response = client.post("/parts-search", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": error}


@pytest.mark.integration
def test_malformed_json(client):
    response = client.post(
        "/parts-search", content=b"{not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


@pytest.mark.integration
def test_health(client):
    data = client.get("/health").json()

    assert data["status"] == "healthy"
    assert data["marketplace_configured"] is True
    assert data["cached_entries"] == 0


@pytest.mark.integration
def test_unexpected_failure_returns_json_error(client):
    finder = client.app.state.finder
    with patch.object(finder, "search", AsyncMock(side_effect=RuntimeError("boom"))):
        response = client.post("/parts-search", json=VALID_BODY)

    assert response.status_code == 500
    assert response.json() == {"error": "Parts search failed"}

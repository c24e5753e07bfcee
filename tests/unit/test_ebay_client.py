"""Unit tests for the eBay Finding API client."""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from parts_finder.fetcher.circuit_breaker import CircuitBreaker, CircuitState
from parts_finder.fetcher.ebay_client import EbayFindingClient, ebay_search_url, search_keywords
from parts_finder.fetcher.http_client import AsyncHTTPClient
from parts_finder.fetcher.rate_limiter import RateLimiter
from parts_finder.mock_servers.app import ebay_item, finding_response
from tests.fixtures.fakes import FakeClock

ENDPOINT = "http://finding.test/services/search/FindingService/v1"


def make_client(http_client, **kwargs):
    kwargs.setdefault("app_id", "test-app")
    return EbayFindingClient(http_client, endpoint=ENDPOINT, **kwargs)


def test_search_keywords():
    assert search_keywords("front bumper", 2018, "Honda", "Accord") == "2018 Honda Accord front bumper"


def test_search_url_encodes_keywords():
    url = ebay_search_url("2018 Honda Accord hood")
    assert url == "https://www.ebay.com/sch/i.html?_nkw=2018+Honda+Accord+hood&_sacat=6030"


class TestBuildParams:

    def test_query_parameters(self):
        client = make_client(AsyncHTTPClient())
        params = client.build_params("2018 Honda Accord hood")

        assert params["OPERATION-NAME"] == "findItemsByKeywords"
        assert params["SECURITY-APPNAME"] == "test-app"
        assert params["RESPONSE-DATA-FORMAT"] == "JSON"
        assert params["keywords"] == "2018 Honda Accord hood"
        assert params["categoryId"] == "6030"
        assert params["sortOrder"] == "PricePlusShippingLowest"
        assert params["paginationInput.entriesPerPage"] == "20"
        assert "affiliate.trackingId" not in params

    def test_affiliate_parameters(self):
        client = make_client(AsyncHTTPClient(), affiliate_id="aff-1", campaign_id="camp-1")
        params = client.build_params("hood")

        assert params["affiliate.networkId"] == "9"
        assert params["affiliate.trackingId"] == "aff-1"
        assert params["affiliate.customId"] == "camp-1"


@pytest.mark.asyncio
async def test_search_returns_normalized_listings():
    seen = []

    def handler(request):
        seen.append(request)
        items = [ebay_item("1", "Hood Panel", 200.0), ebay_item("2", "Hood OEM", 250.0, shipping=20.0)]
        return httpx.Response(200, json=finding_response(items))

    async with AsyncHTTPClient(transport=httpx.MockTransport(handler)) as http_client:
        listings = await make_client(http_client).search("hood", 2018, "Honda", "Accord")

    assert [listing.identifier for listing in listings] == ["1", "2"]
    assert listings[1].landed_price == 270.0
    assert seen[0].url.params["keywords"] == "2018 Honda Accord hood"


@pytest.mark.asyncio
async def test_unconfigured_client_makes_no_request():
    async with AsyncHTTPClient() as http_client:
        client = make_client(http_client, app_id="")
        with patch.object(http_client, "get", new_callable=AsyncMock) as mock_get:
            listings = await client.search("hood", 2018, "Honda", "Accord")

    assert listings == []
    mock_get.assert_not_called()
    assert client.configured is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [429, 500, 502, 503])
async def test_http_errors_yield_no_listings(status):
    transport = httpx.MockTransport(lambda request: httpx.Response(status))
    async with AsyncHTTPClient(transport=transport) as http_client:
        listings = await make_client(http_client).search("hood", 2018, "Honda", "Accord")

    assert listings == []


@pytest.mark.asyncio
async def test_rate_limited_responses_open_the_circuit():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(429)

    breaker = CircuitBreaker(failure_threshold=3, cooldown_seconds=60.0)
    async with AsyncHTTPClient(transport=httpx.MockTransport(handler)) as http_client:
        client = make_client(http_client, circuit_breaker=breaker)
        for _ in range(4):
            assert await client.search("hood", 2018, "Honda", "Accord") == []

    assert breaker.state("ebay") == CircuitState.OPEN
    # Fourth search was skipped without a request
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_client_errors_do_not_count_toward_circuit():
    breaker = CircuitBreaker(failure_threshold=1)
    transport = httpx.MockTransport(lambda request: httpx.Response(400))
    async with AsyncHTTPClient(transport=transport) as http_client:
        await make_client(http_client, circuit_breaker=breaker).search("hood", 2018, "Honda", "Accord")

    assert breaker.state("ebay") == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_connection_error_yields_no_listings():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    breaker = CircuitBreaker(failure_threshold=1)
    async with AsyncHTTPClient(transport=httpx.MockTransport(handler)) as http_client:
        listings = await make_client(http_client, circuit_breaker=breaker).search(
            "hood", 2018, "Honda", "Accord"
        )

    assert listings == []
    assert breaker.state("ebay") == CircuitState.OPEN


@pytest.mark.asyncio
async def test_slow_marketplace_times_out():
    async def slow_get(*args, **kwargs):
        await asyncio.sleep(5)

    async with AsyncHTTPClient() as http_client:
        client = make_client(http_client, call_timeout=0.05)
        with patch.object(http_client, "get", side_effect=slow_get):
            listings = await client.search("hood", 2018, "Honda", "Accord")

    assert listings == []


@pytest.mark.asyncio
async def test_invalid_json_yields_no_listings():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    async with AsyncHTTPClient(transport=transport) as http_client:
        listings = await make_client(http_client).search("hood", 2018, "Honda", "Accord")

    assert listings == []


@pytest.mark.asyncio
async def test_failure_ack_yields_no_listings():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json=finding_response([], ack="Failure"))
    )
    async with AsyncHTTPClient(transport=transport) as http_client:
        listings = await make_client(http_client).search("hood", 2018, "Honda", "Accord")

    assert listings == []


@pytest.mark.asyncio
async def test_exhausted_rate_limit_skips_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=finding_response([]))

    limiter = RateLimiter(max_tokens=1, refill_rate=0.001)
    async with AsyncHTTPClient(transport=httpx.MockTransport(handler)) as http_client:
        client = make_client(http_client, rate_limiter=limiter, rate_limit_max_wait=0.0)
        await client.search("hood", 2018, "Honda", "Accord")
        await client.search("hood", 2018, "Honda", "Accord")

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_unexpected_error_ends_half_open_attempt():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        if len(calls) == 2:
            raise RuntimeError("transport bug")
        return httpx.Response(200, json=finding_response([ebay_item("1", "Hood", 200.0)]))

    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30.0, clock=clock)
    async with AsyncHTTPClient(transport=httpx.MockTransport(handler)) as http_client:
        client = make_client(http_client, circuit_breaker=breaker)

        assert await client.search("hood", 2018, "Honda", "Accord") == []
        assert breaker.state("ebay") == CircuitState.OPEN

        clock.advance(31)
        assert await client.search("hood", 2018, "Honda", "Accord") == []

        listings = await client.search("hood", 2018, "Honda", "Accord")

    assert [listing.identifier for listing in listings] == ["1"]
    assert breaker.state("ebay") == CircuitState.CLOSED


@pytest.mark.asyncio
async def test_cancelled_half_open_attempt_releases_circuit():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30.0, clock=clock)
    breaker.record_failure("ebay", retryable=True)
    clock.advance(31)

    async with AsyncHTTPClient() as http_client:
        client = make_client(http_client, circuit_breaker=breaker)
        with patch.object(http_client, "get", side_effect=asyncio.CancelledError):
            with pytest.raises(asyncio.CancelledError):
                await client.search("hood", 2018, "Honda", "Accord")

    assert breaker.state("ebay") == CircuitState.HALF_OPEN
    assert breaker.allow("ebay") is True


@pytest.mark.asyncio
async def test_open_circuit_does_not_spend_rate_limit_tokens():
    breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=60.0)
    limiter = RateLimiter(max_tokens=2, refill_rate=0.001)
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    async with AsyncHTTPClient(transport=transport) as http_client:
        client = make_client(
            http_client, circuit_breaker=breaker, rate_limiter=limiter, rate_limit_max_wait=0.0
        )
        await client.search("hood", 2018, "Honda", "Accord")
        assert limiter.tokens_available("ebay") == 1

        for _ in range(3):
            assert await client.search("hood", 2018, "Honda", "Accord") == []

    assert limiter.tokens_available("ebay") == 1


@pytest.mark.asyncio
async def test_malformed_item_among_good_ones():
    odd = ebay_item("odd", "ignored", 90.0)
    odd["title"] = [12345]
    odd["condition"] = [{"conditionDisplayName": [None]}]
    items = [ebay_item(str(i), f"Hood {i}", 100.0 + i) for i in range(6)] + [odd]
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=finding_response(items)))

    async with AsyncHTTPClient(transport=transport) as http_client:
        listings = await make_client(http_client).search("hood", 2018, "Honda", "Accord")

    assert len(listings) == 7
    assert listings[-1].title == "12345"

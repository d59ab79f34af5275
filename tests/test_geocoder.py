"""Tests for the geonames reverse geocoder."""

import asyncio

import httpx

from sunclock_relay.core.bundle import CoordinateBundle
from sunclock_relay.core.geocoder import ERROR_PLACE_NAME, TIMEOUT_PLACE_NAME, ReverseGeocoder
from sunclock_relay.core.guard import TimeoutGuard

from conftest import json_response, mock_client

GEONAMES = {
    "geonames": [
        {
            "toponymName": "Seattle",
            "distance": "0.59222",
            "adminName1": "Washington",
            "countryName": "United States",
            "lat": "47.60621",
            "lng": "-122.33207",
        }
    ]
}


def _geocoder(client: httpx.AsyncClient, seconds: float = 1.0) -> ReverseGeocoder:
    return ReverseGeocoder("http://geo.test/findNearbyPlaceNameJSON", "tester",
                           TimeoutGuard("geonames", seconds), client=client)


async def test_resolve_fills_place_fields() -> None:
    seen: list[httpx.Request] = []

    def handler(req: httpx.Request) -> httpx.Response:
        seen.append(req)
        return json_response(GEONAMES)

    bundle = CoordinateBundle(47.6062, -122.3321, 28800)
    result = await _geocoder(mock_client(handler)).resolve_place(bundle)

    assert result is bundle
    assert (result.place_name, result.distance_km, result.region, result.country) == (
        "Seattle", "0.59222", "Washington", "United States",
    )
    (req,) = seen
    assert req.url.path == "/findNearbyPlaceNameJSON"
    assert dict(req.url.params) == {
        "lat": "47.6062", "lng": "-122.3321", "maxRows": "1", "username": "tester",
    }


async def test_timeout_sets_sentinel() -> None:
    async def handler(req: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1.0)
        return json_response(GEONAMES)

    bundle = CoordinateBundle(1.0, 2.0)
    result = await _geocoder(mock_client(handler), seconds=0.05).resolve_place(bundle)
    assert result.place_name == TIMEOUT_PLACE_NAME == "??? geonames.org timeout ???"
    assert result.region is None and result.country is None


async def test_http_error_sets_error_sentinel() -> None:
    result = await _geocoder(mock_client(lambda req: httpx.Response(503))).resolve_place(CoordinateBundle(1.0, 2.0))
    assert result.place_name == ERROR_PLACE_NAME


async def test_empty_result_sets_error_sentinel() -> None:
    """geonames answers an account or quota problem with no results."""
    body = {"status": {"message": "user account not enabled", "value": 10}}
    result = await _geocoder(mock_client(lambda req: json_response(body))).resolve_place(CoordinateBundle(1.0, 2.0))
    assert result.place_name == ERROR_PLACE_NAME


async def test_malformed_json_sets_error_sentinel() -> None:
    client = mock_client(lambda req: httpx.Response(200, text="<html>oops</html>"))
    result = await _geocoder(client).resolve_place(CoordinateBundle(1.0, 2.0))
    assert result.place_name == ERROR_PLACE_NAME


async def test_superseded_lookup_still_returns_its_bundle() -> None:
    """An older lookup aborted by a newer one comes back with the timeout sentinel."""
    async def handler(req: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0.03)
        return json_response(GEONAMES)

    geocoder = _geocoder(mock_client(handler))
    older = CoordinateBundle(1.0, 2.0)
    newer = CoordinateBundle(47.6062, -122.3321)
    first = asyncio.create_task(geocoder.resolve_place(older))
    await asyncio.sleep(0.01)
    assert (await geocoder.resolve_place(newer)).place_name == "Seattle"

    result = await first
    assert result is older
    assert result.place_name == TIMEOUT_PLACE_NAME

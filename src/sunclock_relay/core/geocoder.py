"""
Sunclock relay — Reverse Geocoder

Resolves a place name for a coordinate bundle via geonames.org
"find nearby place name":

    http://api.geonames.org/findNearbyPlaceNameJSON?lat=47.3&lng=9&maxRows=1&username=demo

Phone-UI only. Failure is never fatal: the bundle always comes back,
with a sentinel place name when the lookup did not succeed.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from sunclock_relay.core.bundle import CoordinateBundle
from sunclock_relay.core.guard import TimeoutGuard

logger = logging.getLogger(__name__)

TIMEOUT_PLACE_NAME = "??? geonames.org timeout ???"
ERROR_PLACE_NAME = "??? geonames.org error ???"


class ReverseGeocoder:
    def __init__(
        self,
        url: str,
        username: str,
        guard: TimeoutGuard,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.username = username
        self.guard = guard
        self._client = client

    async def resolve_place(self, bundle: CoordinateBundle) -> CoordinateBundle:
        """Fill place name, range, region and country into *bundle* in place."""

        def _timed_out() -> CoordinateBundle:
            bundle.place_name = TIMEOUT_PLACE_NAME
            return bundle

        try:
            result = await self.guard.race(self._lookup(bundle), _timed_out)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            logger.debug(f"geonames lookup failed: {exc}")
            bundle.place_name = ERROR_PLACE_NAME
            return bundle

        if result is not bundle:
            # a newer lookup aborted this one and answered for a different bundle
            logger.debug("geonames lookup superseded")
            bundle.place_name = TIMEOUT_PLACE_NAME
        return bundle

    async def _lookup(self, bundle: CoordinateBundle) -> CoordinateBundle:
        params = {
            "lat": bundle.latitude,
            "lng": bundle.longitude,
            "maxRows": 1,
            "username": self.username,
        }
        logger.info(f"calling {self.url} lat={bundle.latitude} lng={bundle.longitude}")
        data = await self._get(params)
        logger.debug(f"geonames response: {data}")

        place = data["geonames"][0]
        bundle.place_name = place["toponymName"]
        bundle.distance_km = place.get("distance")
        bundle.region = place.get("adminName1")
        bundle.country = place.get("countryName")
        return bundle

    async def _get(self, params: dict) -> dict:
        if self._client is not None:
            resp = await self._client.get(self.url, params=params)
            resp.raise_for_status()
            return resp.json()
        async with httpx.AsyncClient() as client:
            resp = await client.get(self.url, params=params)
            resp.raise_for_status()
            return resp.json()

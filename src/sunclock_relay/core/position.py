"""
Sunclock relay — Position Providers

The phone's "current position" query, modelled on the browser geolocation
API: a provider either returns a Position or raises PositionError carrying
a W3C error code.

Providers:
1. StaticPositionProvider — fixed coordinates from .env (SUNCLOCK_LAT / SUNCLOCK_LON)
2. IpInfoPositionProvider — ipinfo.io IP geolocation (online only)

LocationAdapter wraps one provider call in the 15 s guard timer and turns
every outcome into a LocationResult.
"""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from sunclock_relay.core.guard import TimeoutGuard

logger = logging.getLogger(__name__)

# W3C PositionError codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

# Guard-synthesized failure. Code 0 is outside the provider's code space.
NO_RESPONSE_CODE = 0
NO_RESPONSE_MESSAGE = "No response from getCurrentPosition"


class PositionError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"({code}) {message}")
        self.code = code
        self.message = message


@dataclass
class Position:
    latitude: float
    longitude: float
    accuracy: float = 0.0
    timestamp: float = 0.0    # epoch seconds when the fix was taken


@dataclass
class PositionOptions:
    high_accuracy: bool = False
    timeout_ms: int = 10000
    maximum_age_ms: int = 60000

    def as_provider_options(self) -> dict:
        """
        Options in the geolocation API's shape.

        The high-accuracy key carries a trailing space, so providers never
        see it and the request always runs at default accuracy.
        """
        return {
            "enableHighAccuracy ": self.high_accuracy,
            "timeout": self.timeout_ms,
            "maximumAge": self.maximum_age_ms,
        }


LocationResult = Union[Position, PositionError]


# ── Providers ─────────────────────────────────────────────────────────────────

class PositionProvider(ABC):
    name: str = "provider"

    def __init__(self) -> None:
        self._last: Optional[Position] = None

    async def get_current_position(self, options: dict) -> Position:
        """
        Resolve the current position honouring ``timeout`` and ``maximumAge``.
        Raises PositionError on failure.
        """
        max_age = options.get("maximumAge", 0) / 1000
        if self._last is not None and time.time() - self._last.timestamp <= max_age:
            logger.debug(f"{self.name}: reusing cached fix")
            return self._last

        timeout = options.get("timeout", 0) / 1000 or None
        try:
            pos = await asyncio.wait_for(self._locate(options), timeout)
        except asyncio.TimeoutError:
            raise PositionError(TIMEOUT, "Timeout expired") from None
        self._last = pos
        return pos

    @abstractmethod
    async def _locate(self, options: dict) -> Position: ...

    def reset(self) -> None:
        self._last = None


class StaticPositionProvider(PositionProvider):
    name = "static"

    def __init__(self, lat: float, lon: float) -> None:
        super().__init__()
        self._lat = lat
        self._lon = lon

    async def _locate(self, options: dict) -> Position:
        if self._lat == 0.0 and self._lon == 0.0:
            raise PositionError(POSITION_UNAVAILABLE, "No static position configured")
        return Position(latitude=self._lat, longitude=self._lon, timestamp=time.time())


class IpInfoPositionProvider(PositionProvider):
    name = "ipinfo"

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None) -> None:
        super().__init__()
        self._url = url
        self._client = client

    async def _locate(self, options: dict) -> Position:
        try:
            data = await self._fetch()
        except httpx.TimeoutException:
            raise PositionError(TIMEOUT, "Timeout expired") from None
        except httpx.HTTPError as exc:
            raise PositionError(POSITION_UNAVAILABLE, f"ipinfo.io failed: {exc}") from None

        loc_str = data.get("loc", "") if isinstance(data, dict) else ""
        parts = loc_str.split(",")
        try:
            lat, lon = float(parts[0]), float(parts[1])
        except (ValueError, IndexError):
            raise PositionError(POSITION_UNAVAILABLE, f"ipinfo.io returned no location: {loc_str!r}") from None
        return Position(latitude=lat, longitude=lon, timestamp=time.time())

    async def _fetch(self) -> dict:
        if self._client is not None:
            resp = await self._client.get(self._url)
            resp.raise_for_status()
            return resp.json()
        async with httpx.AsyncClient() as client:
            resp = await client.get(self._url)
            resp.raise_for_status()
            return resp.json()


# ── Adapter ───────────────────────────────────────────────────────────────────

class LocationAdapter:
    """One guarded provider call, normalised to a LocationResult."""

    def __init__(self, provider: PositionProvider, guard: TimeoutGuard) -> None:
        self.provider = provider
        self.guard = guard

    async def request_position(self, options: PositionOptions) -> LocationResult:
        try:
            result = await self.guard.race(
                self.provider.get_current_position(options.as_provider_options()),
                lambda: PositionError(NO_RESPONSE_CODE, NO_RESPONSE_MESSAGE),
            )
        except PositionError as exc:
            logger.warning(f"location error ({exc.code}): {exc.message}")
            return exc

        if isinstance(result, PositionError):
            logger.warning("outer timeout error (getCurrentPosition() guard fired)")
        return result

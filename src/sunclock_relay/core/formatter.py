"""
Sunclock relay — Result Formatter

Turns a position or an error into one of two shapes:
  device  → app message with scaled-integer coordinates
  screen  → coordinate bundle in the show-coordinates page's URL fragment
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Optional

from sunclock_relay.core.bundle import CoordinateBundle
from sunclock_relay.core.session import RequestContext
from sunclock_relay.host import Host

logger = logging.getLogger(__name__)

COORD_SCALE = 1_000_000


def scale_coord(degrees: float) -> int:
    # The watch link carries int32 only; round half up rather than truncate.
    return math.floor(degrees * COORD_SCALE + 0.5)


def utc_offset_seconds(now: Optional[datetime] = None) -> int:
    """
    Seconds from local time to UTC, positive west of Greenwich
    (PST gives +28800), matching the watch's time_t arithmetic.
    """
    now = now or datetime.now().astimezone()
    offset = now.utcoffset()
    if offset is None:
        return 0
    return -int(offset.total_seconds())


def device_success(latitude: float, longitude: float, utc_offset: int) -> dict[str, Any]:
    return {
        "latitudeData": scale_coord(latitude),
        "longitudeData": scale_coord(longitude),
        "utcOffset": utc_offset,
    }


def device_error(code: int, message: str) -> dict[str, Any]:
    return {"locationFailCode": code, "locationFailMessage": message}


class ResultFormatter:
    def __init__(self, host: Host, show_coords_url: str, coords_sent_url: str) -> None:
        self.host = host
        self.show_coords_url = show_coords_url
        self.coords_sent_url = coords_sent_url

    async def success(
        self,
        ctx: RequestContext,
        latitude: float,
        longitude: float,
        utc_offset: int,
    ) -> None:
        if ctx.send_to_device:
            await self.host.send_app_message(device_success(latitude, longitude, utc_offset))
            if ctx.take_confirmation():
                await self.host.open_url(self.coords_sent_url)
        else:
            await self.display(CoordinateBundle(latitude, longitude, utc_offset))

    async def error(self, ctx: RequestContext, code: int, message: str) -> None:
        if ctx.send_to_device:
            await self.host.send_app_message(device_error(code, message))
        else:
            await self.display(CoordinateBundle.failure(code, message))

    async def display(self, bundle: CoordinateBundle) -> None:
        await self.host.open_url(self.screen_url(bundle))

    def screen_url(self, bundle: CoordinateBundle) -> str:
        return f"{self.show_coords_url}#{bundle.encode()}"

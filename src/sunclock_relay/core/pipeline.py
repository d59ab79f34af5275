"""
Sunclock relay — Coordinate Pipeline

location query (guarded) → [flare lookup] → formatter → watch or screen
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from sunclock_relay.core.flares import FlareLookup, format_flare
from sunclock_relay.core.formatter import ResultFormatter, utc_offset_seconds
from sunclock_relay.core.position import LocationAdapter, PositionError, PositionOptions
from sunclock_relay.core.session import RequestContext

logger = logging.getLogger(__name__)


class CoordinatePipeline:
    def __init__(
        self,
        adapter: LocationAdapter,
        formatter: ResultFormatter,
        options: PositionOptions,
        flare_lookup: Optional[FlareLookup] = None,
        utc_offset: Callable[[], int] = utc_offset_seconds,
    ) -> None:
        self.adapter = adapter
        self.formatter = formatter
        self.options = options
        self.flare_lookup = flare_lookup
        self._utc_offset = utc_offset

    async def read_coords(self, ctx: RequestContext) -> None:
        """Run one request cycle. Exactly one reply goes to ctx's channel."""
        result = await self.adapter.request_position(self.options)

        if isinstance(result, PositionError):
            await self.formatter.error(ctx, result.code, result.message)
            return

        flares = await self.flare_lookup.fetch() if self.flare_lookup else []
        utc_offset = self._utc_offset()
        logger.info(
            f"location success, sending lat/long {result.latitude} / {result.longitude}, "
            f"utcOff secs = {utc_offset}, flare = {format_flare(flares[0] if flares else None)}"
        )
        await self.formatter.success(ctx, result.latitude, result.longitude, utc_offset)

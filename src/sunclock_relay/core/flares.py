"""
Sunclock relay — Iridium Flares

Upcoming satellite flares, scraped from a third-party HTML table. Purely
decorative: any failure yields an empty list.

Row grammar (one flare per table row, matched non-greedily, in page order):

    <a href="flaredetails.aspx…">TIME</a></td>
    <td align="center">MAG</td>
    <td align="center">ALT°</td>
    <td align="center">AZ°…</td>

    TIME  "Mon DD, HH:MM:SS" (UTC; the year is the current UTC year)
    MAG   signed decimal magnitude, e.g. "-2.3"
    ALT   integer altitude in degrees (ignored)
    AZ    integer azimuth in degrees, possibly followed by a compass point

Usage:
    flares = await flare_lookup.fetch()
    log.info(format_flare(flares[0] if flares else None))
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from sunclock_relay.core.guard import TimeoutGuard

logger = logging.getLogger(__name__)

_ROW_RE = re.compile(
    r'<a href="flaredetails\.aspx.+?">(.+?)</a></td>'
    r'<td align="center">(.+?)</td>'
    r'<td align="center">\d+?°</td>'
    r'<td align="center">(\d+)°.+?</td>'
)

# Table times carry no year; the current one is prepended before parsing
# so that Feb 29 resolves in leap years.
_TIME_FORMATS = (
    "%Y %b %d, %H:%M:%S",
    "%Y %d %b, %H:%M:%S",
)
_DATED_FORMATS = (
    "%b %d %Y, %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
)

DEFAULT_FLARE_TEXT = "00:00 (+3.1)"


@dataclass
class Flare:
    timestamp: datetime      # UTC
    brightness: float        # magnitude, negative is brighter
    azimuth: int             # degrees


def _parse_time(text: str, now: datetime) -> Optional[datetime]:
    text = re.sub(r"\s+", " ", text.strip())
    candidates = [(f"{now.year} {text}", fmt) for fmt in _TIME_FORMATS]
    candidates += [(text, fmt) for fmt in _DATED_FORMATS]
    for value, fmt in candidates:
        try:
            dt = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return dt.replace(tzinfo=timezone.utc)
    return None


def parse_flares(html: str, now: Optional[datetime] = None) -> list[Flare]:
    """Extract flare rows from *html* in page order. Unreadable rows are skipped."""
    now = now or datetime.now(timezone.utc)
    flares: list[Flare] = []
    for m in _ROW_RE.finditer(html):
        when = _parse_time(m.group(1), now)
        try:
            brightness = float(m.group(2).strip())
        except ValueError:
            when = None
        if when is None:
            logger.debug("skipping unreadable flare row: %r", m.group(0)[:120])
            continue
        flares.append(Flare(timestamp=when, brightness=brightness, azimuth=int(m.group(3))))
    return flares


def format_flare(flare: Optional[Flare]) -> str:
    """Short "H:M (mag)" label, UTC hour and unpadded minute."""
    if flare is None:
        return DEFAULT_FLARE_TEXT
    return f"{flare.timestamp.hour}:{flare.timestamp.minute} ({flare.brightness:+.1f})"


class FlareLookup:
    def __init__(
        self,
        url: str,
        guard_seconds: float,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.guard_seconds = guard_seconds
        self._client = client

    async def fetch(self) -> list[Flare]:
        """
        Fetch and parse the flare page. Never raises; failures give [].
        Each fetch has its own guard so overlapping requests never abort
        one another.
        """
        guard = TimeoutGuard("flares", self.guard_seconds)
        try:
            return await guard.race(self._fetch(), list)
        except (httpx.HTTPError, UnicodeDecodeError) as exc:
            logger.debug(f"flare lookup failed: {exc}")
            return []

    async def _fetch(self) -> list[Flare]:
        html = await self._get()
        flares = parse_flares(html)
        logger.debug(f"parsed {len(flares)} flares")
        return flares

    async def _get(self) -> str:
        if self._client is not None:
            resp = await self._client.get(self.url)
            resp.raise_for_status()
            return resp.text
        async with httpx.AsyncClient(follow_redirects=True) as client:
            resp = await client.get(self.url)
            resp.raise_for_status()
            return resp.text

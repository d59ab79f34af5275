"""
Sunclock relay — Application wiring + host bridge

build_router() assembles the services for the configured variant.
run_bridge() feeds host events, one JSON object per line, into the router:

    {"type": "ready"}
    {"type": "appmessage", "payload": {"getLatLong": 1}}
    {"type": "appmessage", "wire": "<hex of a packed app message>"}
    {"type": "showConfiguration"}
    {"type": "webviewclosed", "response": "show-coords"}

Each event runs as its own task so a slow location query never blocks the
next event.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Optional, TextIO

import httpx

from sunclock_relay.appmessage import AppMessageError, unpack
from sunclock_relay.config import Config, config as default_config
from sunclock_relay.core.flares import FlareLookup
from sunclock_relay.core.formatter import ResultFormatter
from sunclock_relay.core.geocoder import ReverseGeocoder
from sunclock_relay.core.guard import TimeoutGuard
from sunclock_relay.core.pipeline import CoordinatePipeline
from sunclock_relay.core.position import (
    IpInfoPositionProvider,
    LocationAdapter,
    PositionOptions,
    PositionProvider,
    StaticPositionProvider,
)
from sunclock_relay.core.router import EventRouter
from sunclock_relay.host import Host

logger = logging.getLogger(__name__)


def build_provider(cfg: Config, client: Optional[httpx.AsyncClient] = None) -> PositionProvider:
    if cfg.position_source == "static":
        return StaticPositionProvider(cfg.static_lat, cfg.static_lon)
    return IpInfoPositionProvider(cfg.ipinfo_url, client=client)


def build_options(cfg: Config) -> PositionOptions:
    return PositionOptions(
        high_accuracy=cfg.location_high_accuracy,
        timeout_ms=cfg.location_timeout_ms,
        maximum_age_ms=cfg.location_max_age_ms,
    )


def build_flare_lookup(cfg: Config, client: Optional[httpx.AsyncClient] = None) -> FlareLookup:
    return FlareLookup(cfg.flares_url, cfg.flares_guard_seconds, client=client)


def build_geocoder(cfg: Config, client: Optional[httpx.AsyncClient] = None) -> ReverseGeocoder:
    return ReverseGeocoder(
        cfg.geonames_url,
        cfg.geonames_username,
        TimeoutGuard("geonames", cfg.geocode_guard_seconds),
        client=client,
    )


def build_router(
    host: Host,
    cfg: Optional[Config] = None,
    provider: Optional[PositionProvider] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> EventRouter:
    cfg = cfg or default_config
    provider = provider or build_provider(cfg, client)

    formatter = ResultFormatter(host, cfg.show_coords_url, cfg.coords_sent_url)
    adapter = LocationAdapter(provider, TimeoutGuard("location", cfg.location_guard_seconds))
    pipeline = CoordinatePipeline(
        adapter,
        formatter,
        build_options(cfg),
        flare_lookup=build_flare_lookup(cfg, client) if cfg.flares_enabled else None,
    )
    return EventRouter(
        host,
        pipeline,
        formatter,
        cfg.main_config_url,
        geocoder=build_geocoder(cfg, client) if cfg.config_screen_enabled else None,
        config_screen=cfg.config_screen_enabled,
    )


def decode_event(line: str) -> Optional[dict]:
    """Parse one bridge line. Returns None for blank or unreadable lines."""
    line = line.strip()
    if not line:
        return None
    try:
        event = json.loads(line)
    except json.JSONDecodeError as exc:
        logger.warning(f"bad event line: {exc}")
        return None
    if not isinstance(event, dict):
        logger.warning("bad event line: not an object")
        return None

    if event.get("type") == "appmessage" and "wire" in event:
        try:
            event["payload"] = unpack(bytes.fromhex(event.pop("wire")))
        except (AppMessageError, ValueError) as exc:
            logger.warning(f"bad app message: {exc}")
            return None
    return event


def _log_task_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"event handler {task.get_name()} failed: {exc!r}", exc_info=exc)


async def run_bridge(router: EventRouter, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdin
    loop = asyncio.get_running_loop()
    tasks: set[asyncio.Task] = set()

    while True:
        line = await loop.run_in_executor(None, stream.readline)
        if not line:
            break
        event = decode_event(line)
        if event is None:
            continue
        task = asyncio.create_task(router.dispatch(event), name=f"event-{event.get('type')}")
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        task.add_done_callback(_log_task_result)

    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)

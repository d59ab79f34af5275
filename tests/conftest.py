"""Shared fixtures: a recording host, scriptable providers, fake HTTP."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from sunclock_relay.config import Config
from sunclock_relay.core.position import Position, PositionError, PositionProvider
from sunclock_relay.host import Host


class RecordingHost(Host):
    """Collects everything the relay sends, in order."""

    def __init__(self) -> None:
        self.actions: list[tuple[str, Any]] = []

    async def send_app_message(self, payload: dict[str, Any]) -> None:
        self.actions.append(("appmessage", payload))

    async def open_url(self, url: str) -> None:
        self.actions.append(("openURL", url))

    @property
    def messages(self) -> list[dict]:
        return [v for k, v in self.actions if k == "appmessage"]

    @property
    def urls(self) -> list[str]:
        return [v for k, v in self.actions if k == "openURL"]


class ScriptedProvider(PositionProvider):
    """Returns a fixed position, raises a fixed error, or never answers."""

    name = "scripted"

    def __init__(
        self,
        position: Position | None = None,
        error: PositionError | None = None,
        delay: float = 0.0,
        hang: bool = False,
    ) -> None:
        super().__init__()
        self.position = position
        self.error = error
        self.delay = delay
        self.hang = hang
        self.calls: list[dict] = []

    async def _locate(self, options: dict) -> Position:
        self.calls.append(options)
        if self.hang:
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        assert self.position is not None
        return self.position


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_response(data: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(data).encode(),
                          headers={"Content-Type": "application/json"})


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def cfg() -> Config:
    """Fast guards, fixed URLs, full variant."""
    return Config(
        variant="full",
        config_base_url="http://cfg.test/",
        location_guard_seconds=0.2,
        location_timeout_ms=0,
        location_max_age_ms=0,
        geocode_guard_seconds=0.1,
        flares_guard_seconds=0.1,
        geonames_url="http://geo.test/findNearbyPlaceNameJSON",
        geonames_username="tester",
        flares_url="http://flares.test/iridium.html",
        position_source="static",
    )

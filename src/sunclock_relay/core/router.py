"""
Sunclock relay — Event Router

Entry point for host events:

    ready              → nothing, wait for the watch
    appmessage         → getLatLong present: read coords, reply to the watch
    showConfiguration  → open the main config page
    webviewclosed      → act on the page's response string (see ScreenResponse)

A "CANCELLED" webview response replays the last real response, if any.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sunclock_relay.core.bundle import BundleDecodeError, CoordinateBundle, decode_component
from sunclock_relay.core.formatter import ResultFormatter
from sunclock_relay.core.geocoder import ReverseGeocoder
from sunclock_relay.core.pipeline import CoordinatePipeline
from sunclock_relay.core.session import RequestContext, Session
from sunclock_relay.host import Host

logger = logging.getLogger(__name__)

DECODE_PREFIX = "decode-"


class ScreenResponseError(ValueError):
    pass


class ResponseKind(enum.Enum):
    CANCEL = "cancel"
    SHOW_COORDS = "show-coords"
    SEND_COORDS = "send-coords"
    SHOW_CONFIG = "show-config"
    DECODE = "decode"
    CONFIG_RESULT = "config-result"


@dataclass(frozen=True)
class ScreenResponse:
    kind: ResponseKind
    bundle: Optional[CoordinateBundle] = None   # DECODE
    data: Any = None                            # CONFIG_RESULT

    @classmethod
    def parse(cls, text: str) -> "ScreenResponse":
        """Decode a webview response string. Raises ScreenResponseError."""
        for kind in (ResponseKind.CANCEL, ResponseKind.SHOW_COORDS,
                     ResponseKind.SEND_COORDS, ResponseKind.SHOW_CONFIG):
            if text == kind.value:
                return cls(kind)

        try:
            if text.startswith(DECODE_PREFIX):
                bundle = CoordinateBundle.decode(text[len(DECODE_PREFIX):])
                return cls(ResponseKind.DECODE, bundle=bundle)
            return cls(ResponseKind.CONFIG_RESULT, data=decode_component(text))
        except BundleDecodeError as exc:
            raise ScreenResponseError(f"unreadable webview response {text[:60]!r}: {exc}") from exc


class EventRouter:
    def __init__(
        self,
        host: Host,
        pipeline: CoordinatePipeline,
        formatter: ResultFormatter,
        main_config_url: str,
        geocoder: Optional[ReverseGeocoder] = None,
        session: Optional[Session] = None,
        config_screen: bool = True,
    ) -> None:
        self.host = host
        self.pipeline = pipeline
        self.formatter = formatter
        self.main_config_url = main_config_url
        self.geocoder = geocoder
        self.session = session or Session()
        self.config_screen = config_screen

    async def dispatch(self, event: dict[str, Any]) -> None:
        kind = event.get("type")
        if kind == "ready":
            await self.on_ready(event)
        elif kind == "appmessage":
            await self.on_app_message(event.get("payload") or {})
        elif kind == "showConfiguration":
            await self.on_show_configuration()
        elif kind == "webviewclosed":
            await self.on_webview_closed(event.get("response", ""))
        else:
            logger.warning(f"ignoring unknown host event: {kind!r}")

    # ── Handlers ──────────────────────────────────────────────────────────

    async def on_ready(self, event: Optional[dict] = None) -> None:
        # wait for a request from the watch
        logger.info(f"connect! ready type {(event or {}).get('type', 'ready')}")

    async def on_app_message(self, payload: dict[str, Any]) -> None:
        if "latLongTimeout" in payload:
            # historical, not used now
            logger.info(f"latLongTimeout value received: {payload['latLongTimeout']}")

        if "getLatLong" not in payload:
            logger.debug(f"app message without request marker: {sorted(map(str, payload))}")
            return

        logger.info("lat/long request received")
        await self._read_coords(RequestContext(send_to_device=True, show_confirmation=False))

    async def on_show_configuration(self) -> None:
        if not self.config_screen:
            logger.debug("configuration screen disabled")
            return
        logger.info("launching configuration")
        await self.host.open_url(self.main_config_url)

    async def on_webview_closed(self, response: str) -> None:
        if not self.config_screen:
            logger.debug("configuration screen disabled")
            return

        logger.info(f"webview closed, response: {response}")
        effective = self.session.resolve(response)
        if effective is None:
            logger.info("no real response to use in lieu of CANCELLED")
            return
        if response == "CANCELLED":
            logger.info("retrying previous after CANCELLED")

        try:
            parsed = ScreenResponse.parse(effective)
        except ScreenResponseError as exc:
            logger.warning(str(exc))
            return

        await self._on_screen_response(parsed)

    async def _on_screen_response(self, resp: ScreenResponse) -> None:
        if resp.kind is ResponseKind.CANCEL:
            logger.info("configuration cancelled")
        elif resp.kind is ResponseKind.SHOW_COORDS:
            logger.info("launching coords disp query")
            await self._read_coords(RequestContext(send_to_device=False, show_confirmation=False))
        elif resp.kind is ResponseKind.SEND_COORDS:
            logger.info("sending coords to watch")
            await self._read_coords(RequestContext(send_to_device=True, show_confirmation=True))
        elif resp.kind is ResponseKind.SHOW_CONFIG:
            logger.info("re-displaying main config window")
            await self.host.open_url(self.main_config_url)
        elif resp.kind is ResponseKind.DECODE:
            await self._reverse_geocode(resp.bundle)
        else:
            logger.info(f"conf returned: {resp.data}")

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _read_coords(self, ctx: RequestContext) -> None:
        try:
            await self.pipeline.read_coords(ctx)
        except asyncio.CancelledError:
            logger.info("coordinate request cancelled")
            raise

    async def _reverse_geocode(self, bundle: Optional[CoordinateBundle]) -> None:
        if bundle is None:
            return
        if self.geocoder is None:
            logger.debug("reverse geocoding disabled, showing bundle as-is")
            await self.formatter.display(bundle)
            return
        logger.info(f"decoding {bundle.latitude}, {bundle.longitude}")
        await self.formatter.display(await self.geocoder.resolve_place(bundle))

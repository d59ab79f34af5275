"""
Sunclock relay — Host interface

What the phone app offers us: a channel to the watch and a configuration
webview. JsonLinesHost is the bridge used by ``sunclock-relay run``; it
writes one JSON action per line:

    {"action": "appmessage", "payload": {...}, "wire": "<hex>"}
    {"action": "openURL", "url": "http://..."}
"""
from __future__ import annotations

import json
import logging
import sys
from abc import ABC, abstractmethod
from typing import Any, TextIO

from sunclock_relay.appmessage import pack

logger = logging.getLogger(__name__)


class Host(ABC):
    @abstractmethod
    async def send_app_message(self, payload: dict[str, Any]) -> None: ...

    @abstractmethod
    async def open_url(self, url: str) -> None: ...


class JsonLinesHost(Host):
    def __init__(self, out: TextIO | None = None, wire: bool = False) -> None:
        self._out = out or sys.stdout
        self._wire = wire

    async def send_app_message(self, payload: dict[str, Any]) -> None:
        record: dict[str, Any] = {"action": "appmessage", "payload": payload}
        if self._wire:
            record["wire"] = pack(payload).hex()
        self._emit(record)

    async def open_url(self, url: str) -> None:
        logger.info(f"Warping to: {url}")
        self._emit({"action": "openURL", "url": url})

    def _emit(self, record: dict[str, Any]) -> None:
        self._out.write(json.dumps(record, ensure_ascii=False) + "\n")
        self._out.flush()

"""
Sunclock relay — Timeout Guard

A single named timer that fires a synthetic failure when the operation it
guards never completes. Each guard is a single slot: arming it again, or
racing a new operation through it, first clears whatever was armed before.

Usage:
    guard = TimeoutGuard("location", 15.0)
    result = await guard.race(provider.get_current_position(opts), on_timeout)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Race:
    outcome: asyncio.Future          # resolves to (ok, value)
    successor: Optional["_Race"] = None


class TimeoutGuard:
    def __init__(self, name: str, seconds: float) -> None:
        self.name = name
        self.seconds = seconds
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Future] = None
        self._race: Optional[_Race] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, on_fire: Callable[[], Any], seconds: float | None = None) -> None:
        """Schedule *on_fire* once after *seconds* unless disarmed first."""
        self.disarm()
        delay = self.seconds if seconds is None else seconds
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(delay, self._fire, on_fire)

    def disarm(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, on_fire: Callable[[], Any]) -> None:
        self._handle = None
        logger.warning("%s guard fired after %.1fs", self.name, self.seconds)
        on_fire()

    async def race(
        self,
        operation: Awaitable[T],
        on_timeout: Callable[[], T],
    ) -> T:
        """
        Run *operation* against this guard's timer.
        Returns the operation's result, or ``on_timeout()`` if the guard fires
        first. Exceptions raised by the operation propagate unchanged.

        An operation still running from a previous race is cancelled; that
        earlier race then answers with the newer race's outcome, so every
        caller still gets exactly one result.
        """
        previous = self._race
        self.cancel()

        loop = asyncio.get_running_loop()
        task = asyncio.ensure_future(operation)
        current = _Race(loop.create_future())
        if previous is not None and not previous.outcome.done():
            previous.successor = current
        self._task = task
        self._race = current
        fired = loop.create_future()

        def _expire() -> None:
            if not fired.done():
                fired.set_result(None)

        self.arm(_expire)
        handle = self._handle
        try:
            await asyncio.wait({task, fired}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            current.outcome.cancel()
            raise
        finally:
            # leave a newer race's timer alone
            if self._handle is handle:
                self.disarm()
            if self._task is task:
                self._task = None

        try:
            # A response that landed in the same loop tick as the guard still wins.
            if task.done():
                if task.cancelled():
                    if current.successor is None:
                        raise asyncio.CancelledError()
                    logger.debug("%s guard: sharing the newer operation's outcome", self.name)
                    ok, value = await asyncio.shield(current.successor.outcome)
                else:
                    exc = task.exception()
                    ok, value = (False, exc) if exc is not None else (True, task.result())
            else:
                task.cancel()
                ok, value = True, on_timeout()
        except BaseException:
            current.outcome.cancel()
            raise
        finally:
            if self._race is current:
                self._race = None

        current.outcome.set_result((ok, value))
        if not ok:
            raise value
        return value

    def cancel(self) -> None:
        """Disarm the timer and abort any in-flight operation."""
        self.disarm()
        if self._task is not None and not self._task.done():
            logger.debug("%s guard: cancelling previous operation", self.name)
            self._task.cancel()
        self._task = None
        self._race = None

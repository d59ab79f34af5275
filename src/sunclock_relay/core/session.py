"""
Sunclock relay — Session State

RequestContext travels with one coordinate request from the event that
started it to the reply. Session outlives requests and remembers the last
real (non-CANCELLED) configuration screen response.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RequestContext:
    send_to_device: bool = True        # False: show on the phone's config screen
    show_confirmation: bool = False    # one-shot "coords sent" page after sending

    def take_confirmation(self) -> bool:
        """Return the confirmation flag and clear it."""
        show, self.show_confirmation = self.show_confirmation, False
        return show


class Session:
    def __init__(self) -> None:
        self.last_real_response: str = ""

    def resolve(self, response: str) -> str | None:
        """
        Apply the CANCELLED fallback.
        Returns the response to act on, or None when there is nothing to retry.
        """
        if response != "CANCELLED":
            self.last_real_response = response
            return response
        if not self.last_real_response:
            return None
        return self.last_real_response

    def reset(self) -> None:
        self.last_real_response = ""

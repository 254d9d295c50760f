"""
Cooperative cancellation for long-running client calls.

A token is checked before and after every transport call. A call that
observes cancellation returns its empty/failure result and discards
anything it received.
"""

from __future__ import annotations
from typing import Optional
import threading


class CancellationToken:

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to `timeout` seconds; True as soon as cancelled."""
        return self._event.wait(timeout)


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.is_cancelled

from __future__ import annotations

import threading

from polyllm.service.errors import Cancelled


class CancellationToken:
    """
    Shared cancellation signal checked at each provider call boundary.

    Cancelling never interrupts network I/O already in flight; it stops
    further steps, scorers and not-yet-started calls.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("Operation cancelled by caller")


__all__ = ["CancellationToken"]

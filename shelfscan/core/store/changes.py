# Path: shelfscan/core/store/changes.py
# Purpose: Deliver committed-mutation notifications from the store to explicit subscribers.
# Layer: core/store.
# Details: Each subscription owns a queue; iteration ends when the subscription is closed.

from __future__ import annotations

import queue
from typing import Callable, Iterator, Optional

from shelfscan.core.models import ChangeEvent

_CLOSED = object()


class ChangeSubscription:
    """A stream of ChangeEvents, fed after each committed mutation batch."""

    def __init__(self, on_close: Callable[["ChangeSubscription"], None]) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._on_close = on_close
        self.closed = False

    def deliver(self, event: ChangeEvent) -> None:
        if not self.closed:
            self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[ChangeEvent]:
        """Return the next event, or None on timeout or once closed."""

        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._queue.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[ChangeEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._on_close(self)
        self._queue.put(_CLOSED)

# Path: shelfscan/core/capture/session.py
# Purpose: Feed camera frames into image search at a bounded rate.
# Layer: core/capture.
# Details: A frame gate throttles input; one background search at a time; stale results are discarded.

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Protocol

from PIL import Image

from shelfscan.core.errors import CaptureUnavailable
from shelfscan.core.models import Record
from shelfscan.core.search import SearchCoordinator

logger = logging.getLogger(__name__)

ResultsCallback = Callable[[List[Record]], None]


class CameraSource(Protocol):
    """Device that pushes frames into a session once started."""

    def start(self, on_frame: Callable[[Image.Image], None]) -> None:
        """Begin delivering frames; raise if the device cannot be used."""

    def stop(self) -> None:
        """Stop delivering frames."""


class FrameGate:
    """Accept at most one frame per ``interval`` seconds.

    The first frame only primes the gate and is rejected.
    """

    def __init__(self, interval: float = 0.2, clock: Callable[[], float] = time.monotonic) -> None:
        self.interval = interval
        self.clock = clock
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def accept(self) -> bool:
        now = self.clock()
        with self._lock:
            if self._last is None:
                self._last = now
                return False
            if now - self._last < self.interval:
                return False
            self._last = now
            return True

    def reset(self) -> None:
        with self._lock:
            self._last = None


class ScanSession:
    """Live scanning loop between a camera and the search coordinator."""

    def __init__(
        self,
        coordinator: SearchCoordinator,
        on_results: ResultsCallback,
        gate: Optional[FrameGate] = None,
        source: Optional[CameraSource] = None,
    ) -> None:
        self.coordinator = coordinator
        self.on_results = on_results
        self.gate = gate or FrameGate()
        self.source = source
        self._lock = threading.Lock()
        self._generation = 0
        self._running = False
        self._in_flight = False
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start accepting frames.

        Raises:
            CaptureUnavailable: the camera source could not be started.
        """

        with self._lock:
            if self._running:
                return
            self._generation += 1
            self._running = True
            self._in_flight = False
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scan")
        self.gate.reset()

        if self.source is not None:
            try:
                self.source.start(self.submit_frame)
            except Exception as exc:  # noqa: BLE001 - any device failure means capture is unavailable
                self.stop()
                raise CaptureUnavailable(f"Camera could not be started: {exc}") from exc
        logger.info("Scan session started")

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            executor, self._executor = self._executor, None
        if self.source is not None:
            self.source.stop()
        if executor is not None:
            executor.shutdown(wait=False)
        logger.info("Scan session stopped")

    def submit_frame(self, image: Image.Image) -> bool:
        """Offer a frame; returns True when it was handed to a search."""

        with self._lock:
            if not self._running or self._executor is None:
                return False
            if self._in_flight:
                return False
            if not self.gate.accept():
                return False
            self._in_flight = True
            generation = self._generation
            executor = self._executor
        executor.submit(self._search, image, generation)
        return True

    def _search(self, image: Image.Image, generation: int) -> None:
        try:
            records = self.coordinator.search_by_image(image)
        except Exception as exc:  # noqa: BLE001 - a failed frame is skipped, the session keeps running
            logger.warning(f"Frame search failed: {exc}")
            records = None
        finally:
            with self._lock:
                current = generation == self._generation
                if current:
                    self._in_flight = False

        if records is None:
            return
        if not current:
            logger.debug("Discarding results of a frame from a previous session")
            return
        self.on_results(records)

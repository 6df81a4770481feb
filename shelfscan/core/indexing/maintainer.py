# Path: shelfscan/core/indexing/maintainer.py
# Purpose: Keep vector indexes in step with the documents they are computed from.
# Layer: core/indexing.
# Details: Drains stale entries in committed batches; one drain per index at a time, triggered by store changes.

from __future__ import annotations

import io
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

import numpy as np
from PIL import Image

from shelfscan.core.embedders import EmbeddingExtractor
from shelfscan.core.models import ChangeOrigin
from shelfscan.core.store import ChangeSubscription, DocumentStore
from shelfscan.core.vector_store import IndexUpdate, StaleEntry, VectorIndex

logger = logging.getLogger(__name__)


class DrainState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"


@dataclass
class _DrainSlot:
    active: bool = False
    rerun: bool = False


class IndexMaintainer:
    """Background updater for lazily maintained vector indexes.

    ``request_drain`` is single-flight per index: a trigger that arrives while a
    drain is running only flags a re-run, and the running drain polls for stale
    entries again before it goes idle. Before ``start`` drains run inline in the
    calling thread; afterwards they run on a small thread pool.
    """

    def __init__(
        self,
        store: DocumentStore,
        extractor: EmbeddingExtractor,
        indexes: Sequence[VectorIndex],
        batch_size: int = 10,
        max_workers: int = 2,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive.")
        self.store = store
        self.extractor = extractor
        self.indexes: List[VectorIndex] = list(indexes)
        self.batch_size = batch_size
        self.max_workers = max_workers
        self._slots: Dict[str, _DrainSlot] = {index.name: _DrainSlot() for index in self.indexes}
        self._condition = threading.Condition()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._subscription: Optional[ChangeSubscription] = None
        self._listener: Optional[threading.Thread] = None
        self._seen_sequence = 0

    # Lifecycle
    def start(self) -> None:
        """Subscribe to store changes and run a catch-up drain for every index."""

        if self._executor is not None:
            return
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="index-drain")
        self._subscription = self.store.subscribe()
        with self._condition:
            self._seen_sequence = self.store.sequence
        self._listener = threading.Thread(target=self._listen, name="index-maintainer", daemon=True)
        self._listener.start()
        logger.info(f"Index maintainer started for {', '.join(index.name for index in self.indexes)}")
        for index in self.indexes:
            self.request_drain(index)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
        if self._listener is not None:
            self._listener.join()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        self._subscription = None
        self._listener = None
        self._executor = None

    def _listen(self) -> None:
        assert self._subscription is not None
        for event in self._subscription:
            # Vector write-backs never make anything stale.
            if event.origin != ChangeOrigin.INDEX:
                for index in self.indexes:
                    self.request_drain(index)
            with self._condition:
                self._seen_sequence = max(self._seen_sequence, event.sequence)
                self._condition.notify_all()

    # Scheduling
    def request_drain(self, index: VectorIndex) -> bool:
        """Trigger a drain of ``index``; returns False when one was already running."""

        slot = self._slots[index.name]
        with self._condition:
            if slot.active:
                slot.rerun = True
                return False
            slot.active = True
            slot.rerun = False

        executor = self._executor
        if executor is None:
            self._run(index)
        else:
            executor.submit(self._run_logged, index)
        return True

    def _run_logged(self, index: VectorIndex) -> None:
        try:
            self._run(index)
        except Exception:  # noqa: BLE001 - the pool would otherwise drop the error silently
            logger.exception(f"Drain of {index.name} failed")

    def _run(self, index: VectorIndex) -> None:
        slot = self._slots[index.name]
        try:
            while True:
                self.drain(index)
                with self._condition:
                    if not slot.rerun:
                        break
                    slot.rerun = False
        finally:
            with self._condition:
                slot.active = False
                slot.rerun = False
                self._condition.notify_all()

    def state(self, index: VectorIndex) -> DrainState:
        with self._condition:
            return DrainState.DRAINING if self._slots[index.name].active else DrainState.IDLE

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every delivered change has been handled and no drain is running."""

        def settled() -> bool:
            if any(slot.active for slot in self._slots.values()):
                return False
            return self._subscription is None or self._seen_sequence >= self.store.sequence

        with self._condition:
            return self._condition.wait_for(settled, timeout=timeout)

    # Draining
    def drain(self, index: VectorIndex) -> int:
        """Process stale entries batch by batch until none are left; returns vectors committed.

        Entries whose source cannot be embedded are logged, left stale, and not
        offered again during this drain. Each batch is committed atomically, so
        an interruption before the commit leaves the whole batch stale.
        """

        failed: Set[str] = set()
        committed = 0
        while True:
            entries = index.stale_entries(self.batch_size, exclude=failed)
            if not entries:
                break
            updates: List[IndexUpdate] = []
            for entry in entries:
                vector = self._compute(index, entry)
                if vector is None:
                    failed.add(entry.doc_id)
                    continue
                updates.append(IndexUpdate(doc_id=entry.doc_id, source_digest=entry.source_digest, vector=vector))
            if updates:
                committed += index.commit(updates)
            logger.debug(f"{index.name}: batch of {len(entries)} stale, {len(updates)} embedded")

        if committed or failed:
            logger.info(f"{index.name}: committed {committed} vectors, {len(failed)} entries left stale")
        return committed

    def _compute(self, index: VectorIndex, entry: StaleEntry) -> Optional[np.ndarray]:
        blob = index.source(entry)
        if blob is None:
            logger.warning(f"{index.name}: source blob {entry.source_digest} of {entry.doc_id} is missing")
            return None
        try:
            with Image.open(io.BytesIO(blob.content)) as image:
                image.load()
                vector = self.extractor.embedding(image, index.attention)
        except Exception as exc:  # noqa: BLE001 - one bad entry must not stall the drain
            logger.warning(f"{index.name}: could not embed {entry.doc_id}: {exc}")
            return None
        if vector is None:
            logger.warning(f"{index.name}: no embedding for {entry.doc_id}")
        return vector

# Path: shelfscan/core/sync.py
# Purpose: Apply catalog changes pulled from a remote replication channel.
# Layer: core.
# Details: The transport is external; writes go through the store so the index maintainer sees them.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Protocol

from shelfscan.core.models import ChangeOrigin, Document
from shelfscan.core.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteChange:
    """A replicated document revision; ``data`` is None for a deletion."""

    doc_id: str
    data: Optional[Dict[str, Any]] = None

    @property
    def deleted(self) -> bool:
        return self.data is None


class SyncChannel(Protocol):
    """Pull-only replication channel."""

    def pull(self) -> Iterable[RemoteChange]:
        """Return the changes received since the previous pull."""


class SyncWorker:
    """Write pulled changes into the local store with ``sync`` origin."""

    def __init__(self, store: DocumentStore, channel: SyncChannel) -> None:
        self.store = store
        self.channel = channel

    def apply(self, change: RemoteChange) -> bool:
        if change.deleted:
            return self.store.delete(change.doc_id, origin=ChangeOrigin.SYNC)
        return self.store.put(Document(id=change.doc_id, data=dict(change.data or {})), origin=ChangeOrigin.SYNC)

    def run_once(self) -> int:
        """Pull once and apply every change; returns how many were applied."""

        applied = 0
        for change in self.channel.pull():
            if self.apply(change):
                applied += 1
            else:
                logger.warning(f"Could not apply replicated change to {change.doc_id}")
        if applied:
            logger.info(f"Applied {applied} replicated changes")
        return applied

# Path: shelfscan/core/vector_store/base.py
# Purpose: Define the VectorIndex interface for lazily maintained embedding indexes.
# Layer: core/vector_store.
# Details: Provides abstract methods for nearest-neighbor search, staleness discovery, and batch commits.

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Collection, List, Optional, Sequence

import numpy as np

from shelfscan.core.models import Blob
from shelfscan.core.preprocessing import Attention


@dataclass(frozen=True)
class VectorMatch:
    """A candidate returned by a vector query."""

    doc_id: str
    distance: float
    name: Optional[str] = None


@dataclass(frozen=True)
class StaleEntry:
    """A document whose source blob changed since its vector was last computed."""

    doc_id: str
    source_digest: str


@dataclass(frozen=True)
class IndexUpdate:
    """A freshly computed vector for the source blob version it was computed from."""

    doc_id: str
    source_digest: str
    vector: np.ndarray


class VectorIndex(ABC):
    """Abstract base class for lazily populated vector indexes."""

    name: str
    dim: int
    attention: Attention

    @abstractmethod
    def nearest(
        self, vector: np.ndarray, k: int, max_distance: float, inclusive: bool = True
    ) -> List[VectorMatch]:
        """Return up to k matches within the distance bound, ordered by distance then name."""

    @abstractmethod
    def stale_entries(self, limit: int, exclude: Collection[str] = ()) -> List[StaleEntry]:
        """Return up to ``limit`` entries whose vectors are missing or out of date."""

    @abstractmethod
    def source(self, entry: StaleEntry) -> Optional[Blob]:
        """Return the source blob an entry's vector must be computed from."""

    @abstractmethod
    def commit(self, updates: Sequence[IndexUpdate]) -> int:
        """Atomically publish a batch of vectors; returns how many were applied."""

    def is_fresh(self) -> bool:
        """Return True when no entry is stale."""

        return not self.stale_entries(1)

# Path: shelfscan/core/search/strategies.py
# Purpose: Define the image search paths the coordinator fans out to.
# Layer: core/search.
# Details: Each strategy turns a query image into records, or None when it has no signal.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from PIL import Image

from shelfscan.core.embedders import BarcodeReader, EmbeddingExtractor
from shelfscan.core.models import Product, Record, record_from_document
from shelfscan.core.preprocessing import FACES, ZoomAttention
from shelfscan.core.store import DocumentStore
from shelfscan.core.vector_store import VectorIndex, VectorMatch

logger = logging.getLogger(__name__)


def filter_relative_distance(matches: Sequence[VectorMatch], factor: float) -> List[VectorMatch]:
    """Keep only matches within ``factor`` times the best distance, preserving order."""

    if not matches:
        return []
    cutoff = min(match.distance for match in matches) * factor
    return [match for match in matches if match.distance <= cutoff]


def load_records(store: DocumentStore, matches: Sequence[VectorMatch]) -> List[Record]:
    """Resolve vector matches to records, dropping documents that vanished or are incomplete."""

    records: List[Record] = []
    for match in matches:
        document = store.get(match.doc_id)
        record = record_from_document(document) if document is not None else None
        if record is not None:
            records.append(record)
    return records


class SearchStrategy(ABC):
    """Interface for one sub-search of an image query."""

    id: str
    description: str

    @abstractmethod
    def run(self, image: Image.Image) -> Optional[List[Record]]:
        """Return matching records, or None when the query carries no usable signal."""


class BarcodeSearch(SearchStrategy):
    """Exact product lookup by a barcode decoded from the frame."""

    id = "barcode"
    description = "Decode a barcode and look the product up by equality."

    def __init__(self, store: DocumentStore, reader: BarcodeReader) -> None:
        self.store = store
        self.reader = reader

    def run(self, image: Image.Image) -> Optional[List[Record]]:
        payload = self.reader.decode(image)
        if not payload:
            return None
        document = self.store.find_by_barcode(payload)
        record = record_from_document(document) if document is not None else None
        if isinstance(record, Product):
            logger.debug(f"Barcode {payload} matched {record.id}")
            return [record]
        return []


class FaceSearch(SearchStrategy):
    """Single best booking whose customer face is very close to the face in the frame."""

    id = "face"
    description = "Embed the first detected face and query the booking face index."

    def __init__(
        self,
        store: DocumentStore,
        index: VectorIndex,
        extractor: EmbeddingExtractor,
        max_distance: float = 0.1,
    ) -> None:
        self.store = store
        self.index = index
        self.extractor = extractor
        self.max_distance = max_distance

    def run(self, image: Image.Image) -> Optional[List[Record]]:
        vector = self.extractor.embedding(image, FACES)
        if vector is None:
            return None
        matches = self.index.nearest(vector, k=1, max_distance=self.max_distance, inclusive=False)
        return load_records(self.store, matches)


class ProductImageSearch(SearchStrategy):
    """Visual product match over several zoom levels.

    Zoom levels are evaluated in order and each non-empty result replaces the
    previous one, so the tightest zoom that still has matches wins.
    """

    id = "product"
    description = "Embed zoomed center crops and query the product embedding index."

    def __init__(
        self,
        store: DocumentStore,
        index: VectorIndex,
        extractor: EmbeddingExtractor,
        zoom_factors: Sequence[float] = (1.0, 2.0),
        candidate_count: int = 10,
        max_distance: float = 0.25,
        relative_factor: float = 1.40,
    ) -> None:
        self.store = store
        self.index = index
        self.extractor = extractor
        self.zoom_factors = tuple(zoom_factors)
        self.candidate_count = candidate_count
        self.max_distance = max_distance
        self.relative_factor = relative_factor

    def run(self, image: Image.Image) -> Optional[List[Record]]:
        best: List[VectorMatch] = []
        embedded = False
        for factor in self.zoom_factors:
            vector = self.extractor.embedding(image, ZoomAttention(factors=(factor,)))
            if vector is None:
                continue
            embedded = True
            matches = self.index.nearest(vector, k=self.candidate_count, max_distance=self.max_distance)
            matches = filter_relative_distance(matches, self.relative_factor)
            if matches:
                best = matches
        if not embedded:
            return None
        return load_records(self.store, best)

# Path: shelfscan/core/search/coordinator.py
# Purpose: Combine barcode, face, product image, and text search into one result list.
# Layer: core/search.
# Details: Image sub-searches run concurrently and are joined before a fixed precedence is applied.

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Sequence

from PIL import Image

from shelfscan.core.models import Product, Record, RecordKind, record_from_document
from shelfscan.core.store import DocumentStore

from .strategies import SearchStrategy

logger = logging.getLogger(__name__)

WILDCARD = "*"


def normalize_text_query(text: str) -> str:
    """Trim the query and append a prefix wildcard unless it already ends with one."""

    query = text.strip()
    if query and not query.endswith(WILDCARD):
        query += WILDCARD
    return query


class SearchCoordinator:
    """High-level service answering image and text queries.

    ``strategies`` are listed in precedence order. Every strategy runs to
    completion for every image query; only then is the first non-empty result
    returned, so a slow high-precedence path is never preempted by a fast
    lower one.
    """

    def __init__(self, store: DocumentStore, strategies: Sequence[SearchStrategy], max_workers: int = 3) -> None:
        self.store = store
        self.strategies: List[SearchStrategy] = list(strategies)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="search")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def search_by_image(self, image: Image.Image) -> List[Record]:
        """
        Run every image strategy concurrently and apply precedence.

        External calls:
        - core/search/strategies.py::BarcodeSearch.run - exact barcode lookup.
        - core/search/strategies.py::FaceSearch.run - booking face match.
        - core/search/strategies.py::ProductImageSearch.run - zoomed visual product match.
        """

        try:
            image.load()
        except (OSError, ValueError) as exc:
            logger.warning(f"Unreadable query image: {exc}")
            return []
        futures = [(strategy, self._executor.submit(strategy.run, image)) for strategy in self.strategies]
        outcomes = [(strategy, self._outcome(strategy, future)) for strategy, future in futures]

        for strategy, records in outcomes:
            if records:
                logger.debug(f"Image search answered by {strategy.id} with {len(records)} records")
                return records
        return []

    @staticmethod
    def _outcome(strategy: SearchStrategy, future: "Future[Optional[List[Record]]]") -> Optional[List[Record]]:
        try:
            return future.result()
        except Exception as exc:  # noqa: BLE001 - a failing path counts as no signal
            logger.warning(f"Search path {strategy.id} failed: {exc}")
            return None

    def search_by_text(self, text: str, limit: Optional[int] = None) -> List[Product]:
        """Prefix full-text search over product names and categories, ordered by rank then name."""

        query = normalize_text_query(text)
        if not query:
            return []
        products: List[Product] = []
        for document in self.store.search_text(query, doc_type=RecordKind.PRODUCT.value, limit=limit):
            record = record_from_document(document)
            if isinstance(record, Product):
                products.append(record)
        return products

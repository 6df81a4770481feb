# Path: shelfscan/bootstrap.py
# Purpose: Wire the store, vision, indexing, search, and cart services together.
# Layer: app.
# Details: Explicit construction from AppSettings; callers own the returned Services and must close them.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from shelfscan.config import AppSettings
from shelfscan.core.cart import CartLedger
from shelfscan.core.embedders import (
    BarcodeReader,
    Embedder,
    EmbeddingExtractor,
    FeaturePrintEmbedder,
    ZbarBarcodeReader,
)
from shelfscan.core.indexing import IndexMaintainer
from shelfscan.core.preprocessing import ImageProcessor
from shelfscan.core.search import BarcodeSearch, FaceSearch, ProductImageSearch, SearchCoordinator
from shelfscan.core.store import DocumentStore
from shelfscan.core.vector_store import LazyVectorIndex, booking_face_index, product_embedding_index

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


@dataclass
class Services:
    """Everything an interface layer needs, built once per process."""

    settings: AppSettings
    store: DocumentStore
    extractor: EmbeddingExtractor
    product_index: LazyVectorIndex
    face_index: LazyVectorIndex
    maintainer: IndexMaintainer
    coordinator: SearchCoordinator
    ledger: CartLedger

    @property
    def indexes(self) -> List[LazyVectorIndex]:
        return [self.product_index, self.face_index]

    def close(self) -> None:
        self.maintainer.stop()
        self.coordinator.close()
        self.store.close()


def build_services(
    settings: AppSettings,
    embedder: Optional[Embedder] = None,
    processor: Optional[ImageProcessor] = None,
    barcode_reader: Optional[BarcodeReader] = None,
    start_maintainer: bool = True,
) -> Services:
    """
    Construct and start the application services.

    Raises:
        StoreInitializationError: the document store could not be opened; this is fatal.
    """

    store = DocumentStore(settings.database_path).open()

    size = settings.embedder.target_size
    processor = processor or ImageProcessor(target_size=(size, size), margin=settings.embedder.salient_margin)
    embedder = embedder or FeaturePrintEmbedder(dim=settings.embedder.dim)
    extractor = EmbeddingExtractor(embedder=embedder, processor=processor, dim=settings.embedder.dim)

    product_index = product_embedding_index(store, dim=settings.embedder.dim)
    face_index = booking_face_index(store, dim=settings.embedder.dim)
    maintainer = IndexMaintainer(
        store,
        extractor,
        [product_index, face_index],
        batch_size=settings.indexing.batch_size,
        max_workers=settings.indexing.max_workers,
    )

    search = settings.search
    coordinator = SearchCoordinator(
        store,
        strategies=[
            BarcodeSearch(store, barcode_reader or ZbarBarcodeReader()),
            FaceSearch(store, face_index, extractor, max_distance=search.face_max_distance),
            ProductImageSearch(
                store,
                product_index,
                extractor,
                zoom_factors=search.zoom_factors,
                candidate_count=search.candidate_count,
                max_distance=search.product_max_distance,
                relative_factor=search.relative_distance_factor,
            ),
        ],
        max_workers=search.max_workers,
    )

    services = Services(
        settings=settings,
        store=store,
        extractor=extractor,
        product_index=product_index,
        face_index=face_index,
        maintainer=maintainer,
        coordinator=coordinator,
        ledger=CartLedger(store),
    )
    if start_maintainer:
        maintainer.start()
    logger.info(f"Services ready using {settings.database_path}")
    return services

# Path: shelfscan/core/search/__init__.py
# Purpose: Package initializer for search strategies and the coordinator.
# Layer: core/search.
# Details: Exposes SearchCoordinator and the barcode, face, and product image strategies.

from .coordinator import SearchCoordinator, normalize_text_query
from .strategies import (
    BarcodeSearch,
    FaceSearch,
    ProductImageSearch,
    SearchStrategy,
    filter_relative_distance,
    load_records,
)

__all__ = [
    "BarcodeSearch",
    "FaceSearch",
    "ProductImageSearch",
    "SearchCoordinator",
    "SearchStrategy",
    "filter_relative_distance",
    "load_records",
    "normalize_text_query",
]

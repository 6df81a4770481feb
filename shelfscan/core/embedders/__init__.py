# Path: shelfscan/core/embedders/__init__.py
# Purpose: Package initializer for embedder implementations and interfaces.
# Layer: core/embedders.
# Details: Exposes the base interface, the reference embedder, the extractor, and barcode readers.

from .barcode import BarcodeReader, ZbarBarcodeReader
from .base import Embedder
from .extractor import EMBEDDING_DIM, EmbeddingExtractor
from .feature_print import FeaturePrintEmbedder

__all__ = [
    "EMBEDDING_DIM",
    "BarcodeReader",
    "Embedder",
    "EmbeddingExtractor",
    "FeaturePrintEmbedder",
    "ZbarBarcodeReader",
]

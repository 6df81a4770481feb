# Path: shelfscan/core/vector_store/__init__.py
# Purpose: Package initializer for vector index interfaces and implementations.
# Layer: core/vector_store.
# Details: Exposes the base vector index contract and the lazy cosine index stored in the document store.

from .base import IndexUpdate, StaleEntry, VectorIndex, VectorMatch
from .lazy_index import LazyVectorIndex, booking_face_index, product_embedding_index

__all__ = [
    "IndexUpdate",
    "LazyVectorIndex",
    "StaleEntry",
    "VectorIndex",
    "VectorMatch",
    "booking_face_index",
    "product_embedding_index",
]

# Path: shelfscan/core/embedders/base.py
# Purpose: Define the Embedder interface for image feature embeddings.
# Layer: core/embedders.
# Details: Provides abstract methods to ensure pluggable vision backends.

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from PIL import Image


class Embedder(ABC):
    """Abstract base class for the opaque vision model that produces feature prints."""

    name: str
    dim: int

    @abstractmethod
    def embed_image(self, image: Image.Image) -> np.ndarray:
        """Return an embedding for an already normalized image.

        Implementations raise ``EmbeddingUnavailable`` when no feature print can
        be produced.
        """

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float32)
        return (vector / norm).astype(np.float32)

# Path: shelfscan/core/embedders/extractor.py
# Purpose: Combine preprocessing and the embedder into validated feature embeddings.
# Layer: core/embedders.
# Details: Validates element type and length; failures surface as EmbeddingUnavailable or "no signal".

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
from PIL import Image

from shelfscan.core.errors import EmbeddingUnavailable
from shelfscan.core.preprocessing import NO_ATTENTION, Attention, ImageProcessor

from .base import Embedder

logger = logging.getLogger(__name__)

EMBEDDING_DIM = 768


class EmbeddingExtractor:
    """Produce fixed-length float32 embeddings for camera frames and catalog images."""

    def __init__(self, embedder: Embedder, processor: ImageProcessor, dim: int = EMBEDDING_DIM) -> None:
        self.embedder = embedder
        self.processor = processor
        self.dim = dim

    def extract(self, image: Image.Image) -> np.ndarray:
        """Embed an already normalized image.

        Raises:
            EmbeddingUnavailable: the backend failed or returned an element type
                or length that cannot be interpreted.
        """

        try:
            raw = self.embedder.embed_image(image)
        except EmbeddingUnavailable:
            raise
        except Exception as exc:  # noqa: BLE001 - any backend failure means no feature print
            raise EmbeddingUnavailable(f"{self.embedder.name} failed: {exc}") from exc
        return self._validate(raw)

    def embeddings(self, image: Image.Image, attention: Attention = NO_ATTENTION) -> List[np.ndarray]:
        """Embed every image the attention mode produces, dropping those that fail."""

        vectors: List[np.ndarray] = []
        for processed in self.processor.process(image, attention):
            try:
                vectors.append(self.extract(processed))
            except EmbeddingUnavailable as exc:
                logger.debug(f"Skipping unembeddable crop: {exc}")
        return vectors

    def embedding(self, image: Image.Image, attention: Attention = NO_ATTENTION) -> Optional[np.ndarray]:
        """Embed the first image the attention mode produces, or None when there is no signal."""

        processed = self.processor.process(image, attention)
        if not processed:
            return None
        try:
            return self.extract(processed[0])
        except EmbeddingUnavailable as exc:
            logger.debug(f"No embedding for image: {exc}")
            return None

    def _validate(self, raw: object) -> np.ndarray:
        vector = np.asarray(raw)
        if vector.dtype not in (np.dtype(np.float32), np.dtype(np.float64)):
            raise EmbeddingUnavailable(f"Unsupported embedding element type: {vector.dtype}")
        if vector.shape != (self.dim,):
            raise EmbeddingUnavailable(f"Expected {self.dim} components, got shape {vector.shape}")
        if not np.all(np.isfinite(vector)):
            raise EmbeddingUnavailable("Embedding contains non-finite components")
        return vector.astype(np.float32)

# Path: shelfscan/core/embedders/feature_print.py
# Purpose: Provide a lightweight feature-print embedder.
# Layer: core/embedders.
# Details: Uses a deterministic downsampled color grid as a placeholder for an on-device vision model.

from __future__ import annotations

import math

import numpy as np
from PIL import Image

from shelfscan.core.errors import EmbeddingUnavailable

from .base import Embedder


class FeaturePrintEmbedder(Embedder):
    """Deterministic embedder that mimics a feature print with a zero-centered color grid.

    For the default 768 dimensions the grid is 16x16 RGB cells. Transparent
    letterbox padding is composited onto black before sampling.
    """

    def __init__(self, dim: int = 768, name: str = "feature_print") -> None:
        self.dim = dim
        self.name = name
        self.grid = max(1, int(math.sqrt(dim / 3)))

    def embed_image(self, image: Image.Image) -> np.ndarray:
        """Generate a deterministic embedding from pooled pixel colors."""

        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
        rgb = Image.alpha_composite(background, rgba).convert("RGB")

        cells = rgb.resize((self.grid, self.grid), Image.Resampling.BILINEAR)
        vector = np.asarray(cells, dtype=np.float32).flatten() / 255.0
        padded = np.pad(vector, (0, max(0, self.dim - vector.size)), mode="wrap")[: self.dim]

        centered = padded - padded.mean()
        if not np.any(centered):
            raise EmbeddingUnavailable("Image has no visual features to describe.")
        return self._normalize(centered)

# Path: shelfscan/core/embedders/barcode.py
# Purpose: Decode barcode payloads from camera frames.
# Layer: core/embedders.
# Details: zbar-backed reader covering the standard 1D/2D symbologies, behind a small interface.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class BarcodeReader(ABC):
    """Interface for barcode decoders."""

    @abstractmethod
    def decode(self, image: Image.Image) -> Optional[str]:
        """Return the first decodable payload, or None when no symbol is found."""


class ZbarBarcodeReader(BarcodeReader):
    """Decode barcodes with zbar through pyzbar."""

    def decode(self, image: Image.Image) -> Optional[str]:
        try:
            from pyzbar.pyzbar import decode as zbar_decode  # type: ignore[import]
        except ImportError as exc:  # pragma: no cover - runtime dependency (needs the zbar shared library)
            raise RuntimeError("pyzbar and the zbar library are required for barcode decoding.") from exc

        symbols = zbar_decode(np.asarray(image.convert("L")))
        for symbol in symbols:
            data = getattr(symbol, "data", b"")
            if not data:
                continue
            try:
                return data.decode("utf-8")
            except UnicodeDecodeError:
                return data.decode("latin-1", errors="ignore")
        return None

"""Shared test fixtures for shelfscan tests."""

import io

import numpy as np
import pytest
from PIL import Image

from shelfscan.core.embedders import Embedder, EmbeddingExtractor
from shelfscan.core.models import (
    Blob,
    Booking,
    Product,
    document_from_booking,
    document_from_product,
)
from shelfscan.core.preprocessing import ImageProcessor, NormalizedRect, Saliency
from shelfscan.core.store import DocumentStore

DIM = 768

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)


def solid_image(color, size=(64, 64)):
    return Image.new("RGB", size, color)


def png_bytes(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def color_blob(color, size=(64, 64)):
    return Blob(content=png_bytes(solid_image(color, size)), content_type="image/png")


class ColorEmbedder(Embedder):
    """Maps the color at the center of an image onto the first three components."""

    name = "color"

    def __init__(self, dim=DIM):
        self.dim = dim
        self.calls = 0

    def embed_image(self, image):
        self.calls += 1
        rgb = image.convert("RGB")
        r, g, b = rgb.getpixel((rgb.width // 2, rgb.height // 2))
        vector = np.zeros(self.dim, dtype=np.float32)
        vector[:3] = [r / 255.0, g / 255.0, b / 255.0]
        return self._normalize(vector)


class StaticFaceDetector:
    """Face detector returning preconfigured rectangles."""

    def __init__(self, faces=None, error=None):
        self.faces = list(faces or [])
        self.error = error

    def detect(self, image):
        if self.error is not None:
            raise self.error
        return list(self.faces)


class StaticSaliency:
    """Saliency detector returning preconfigured regions."""

    def __init__(self, regions=None, error=None):
        self.regions = list(regions or [])
        self.error = error

    def detect(self, image):
        if self.error is not None:
            raise self.error
        return list(self.regions)


@pytest.fixture
def store():
    """In-memory document store."""
    document_store = DocumentStore(":memory:").open()
    yield document_store
    document_store.close()


@pytest.fixture
def face_detector():
    """Reports one face covering the whole frame."""
    return StaticFaceDetector(faces=[NormalizedRect(0.0, 0.0, 1.0, 1.0)])


@pytest.fixture
def saliency():
    return StaticSaliency()


@pytest.fixture
def processor(face_detector, saliency):
    return ImageProcessor(
        saliency_detectors={Saliency.ATTENTION: saliency, Saliency.OBJECTNESS: saliency},
        face_detector=face_detector,
    )


@pytest.fixture
def embedder():
    return ColorEmbedder()


@pytest.fixture
def extractor(embedder, processor):
    return EmbeddingExtractor(embedder=embedder, processor=processor, dim=DIM)


@pytest.fixture
def add_product(store):
    """Store a product whose image is a solid color."""

    def _add(doc_id, name, price="1.00", color=RED, barcode=None, category="grocery", location="Aisle 1"):
        product = Product(
            id=doc_id,
            name=name,
            price=price,
            location=location,
            category=category,
            image=color_blob(color),
            barcode=barcode,
        )
        assert store.put(document_from_product(product))
        return product

    return _add


@pytest.fixture
def add_booking(store):
    """Store a booking whose face image is a solid color."""

    def _add(doc_id, face_color=BLUE):
        booking = Booking(id=doc_id, image=color_blob((200, 200, 200)), face=color_blob(face_color))
        assert store.put(document_from_booking(booking))
        return booking

    return _add

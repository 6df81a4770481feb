# Path: shelfscan/core/models/domain.py
# Purpose: Define domain models shared across storage, indexing, search, and cart workflows.
# Layer: core/models.
# Details: Lightweight dataclasses plus converters between records and their persisted document shapes.

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from shelfscan.core.errors import InvalidRecord

CART_ID = "cart"

# Fields owned by the index maintainer, mapped to the blob field they are computed from.
EMBEDDING_FIELD = "embedding"
EMBEDDING_DIGEST_FIELD = "embeddingDigest"
FACE_EMBEDDING_FIELD = "faceEmbedding"
FACE_EMBEDDING_DIGEST_FIELD = "faceEmbeddingDigest"
INDEX_OWNED_FIELDS: Dict[str, str] = {
    EMBEDDING_FIELD: "image",
    EMBEDDING_DIGEST_FIELD: "image",
    FACE_EMBEDDING_FIELD: "face",
    FACE_EMBEDDING_DIGEST_FIELD: "face",
}


class RecordKind(str, Enum):
    """Document types held by the store."""

    PRODUCT = "product"
    BOOKING = "booking"
    CART = "cart"


class ChangeOrigin(str, Enum):
    """Writer responsible for a committed mutation."""

    LOCAL = "local"
    SYNC = "sync"
    INDEX = "index"


@dataclass(frozen=True)
class Blob:
    """Binary attachment identified by its content digest."""

    content: bytes = field(repr=False)
    content_type: str = "image/png"

    @property
    def digest(self) -> str:
        return content_digest(self.content)

    @property
    def length(self) -> int:
        return len(self.content)


def content_digest(content: bytes) -> str:
    """Return the sha1-based identity used for blobs."""

    return "sha1-" + base64.b64encode(hashlib.sha1(content).digest()).decode("ascii")


@dataclass
class Document:
    """A stored document: a stable id plus a JSON-like body that may hold blobs."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> Optional[str]:
        return self.data.get("type")

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class DisplayFields:
    """Fields shown for any record; record equality is defined over these."""

    title: Optional[str]
    subtitle: Optional[str]
    details: Optional[str]
    image_digest: str


class _DisplayEquality:
    """Structural equality over display fields shared by product and booking records."""

    @property
    def display(self) -> DisplayFields:  # pragma: no cover - overridden
        raise NotImplementedError

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _DisplayEquality):
            return NotImplemented
        return self.display == other.display

    def __hash__(self) -> int:
        return hash(self.display)


@dataclass(eq=False)
class Product(_DisplayEquality):
    """Catalog product that can be found by barcode, text, or image."""

    id: str
    name: str
    price: Decimal
    location: str
    category: str
    image: Blob
    barcode: Optional[str] = None
    embedding: Optional[np.ndarray] = field(default=None, repr=False)

    kind = RecordKind.PRODUCT

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidRecord(f"Product {self.id!r} requires a name.")
        self.price = to_decimal(self.price)
        if self.price < 0:
            raise InvalidRecord(f"Product {self.id!r} has a negative price.")

    @property
    def display(self) -> DisplayFields:
        return DisplayFields(
            title=self.name,
            subtitle="$%.2f" % self.price,
            details=self.location,
            image_digest=self.image.digest,
        )


@dataclass(eq=False)
class Booking(_DisplayEquality):
    """Reservation matched by the customer's face."""

    id: str
    image: Blob
    face: Optional[Blob] = None
    face_embedding: Optional[np.ndarray] = field(default=None, repr=False)

    kind = RecordKind.BOOKING

    @property
    def display(self) -> DisplayFields:
        return DisplayFields(title=None, subtitle=None, details=None, image_digest=self.image.digest)


Record = Union[Product, Booking]


@dataclass(frozen=True)
class CartLine:
    """Single cart entry; lines are appended and never edited."""

    name: str
    price: Decimal


@dataclass
class Cart:
    """Singleton cart aggregate."""

    items: List[CartLine] = field(default_factory=list)
    total: Decimal = Decimal("0")


@dataclass(frozen=True)
class ChangeEvent:
    """Notification emitted after a committed mutation batch."""

    doc_ids: Tuple[str, ...]
    origin: ChangeOrigin = ChangeOrigin.LOCAL
    sequence: int = 0


def to_decimal(value: Any) -> Decimal:
    """Convert prices from JSON numbers or strings without binary float artifacts."""

    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidRecord(f"Invalid decimal value: {value!r}") from exc


def _vector(value: Any) -> Optional[np.ndarray]:
    if value is None:
        return None
    return np.asarray(value, dtype=np.float32)


def document_from_product(product: Product) -> Document:
    """Build the persisted product shape. Embeddings are left to the index maintainer."""

    data: Dict[str, Any] = {
        "type": RecordKind.PRODUCT.value,
        "name": product.name,
        "price": float(product.price),
        "location": product.location,
        "category": product.category,
        "image": product.image,
    }
    if product.barcode:
        data["barcode"] = product.barcode
    return Document(id=product.id, data=data)


def document_from_booking(booking: Booking) -> Document:
    """Build the persisted booking shape."""

    data: Dict[str, Any] = {"type": RecordKind.BOOKING.value, "image": booking.image}
    if booking.face is not None:
        data["face"] = booking.face
    return Document(id=booking.id, data=data)


def record_from_document(document: Document) -> Optional[Record]:
    """Project a stored document onto its record type, or None if it is not a complete record."""

    image = document.get("image")
    if not isinstance(image, Blob):
        return None
    if document.type == RecordKind.PRODUCT.value:
        try:
            return Product(
                id=document.id,
                name=document.get("name"),
                price=document.get("price"),
                location=document.get("location") or "",
                category=document.get("category") or "",
                image=image,
                barcode=document.get("barcode"),
                embedding=_vector(document.get(EMBEDDING_FIELD)),
            )
        except InvalidRecord:
            return None
    if document.type == RecordKind.BOOKING.value:
        face = document.get("face")
        return Booking(
            id=document.id,
            image=image,
            face=face if isinstance(face, Blob) else None,
            face_embedding=_vector(document.get(FACE_EMBEDDING_FIELD)),
        )
    return None


def cart_from_document(document: Optional[Document]) -> Cart:
    """Read the cart projection; a missing document is an empty cart."""

    if document is None:
        return Cart()
    items = [
        CartLine(name=str(item.get("name", "")), price=to_decimal(item.get("price", 0)))
        for item in document.get("items") or []
    ]
    return Cart(items=items, total=to_decimal(document.get("total", 0)))

# Path: shelfscan/core/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: core/models.
# Details: Exposes dataclasses used across storage, indexing, search, and cart layers.

from .domain import (
    CART_ID,
    EMBEDDING_DIGEST_FIELD,
    EMBEDDING_FIELD,
    FACE_EMBEDDING_DIGEST_FIELD,
    FACE_EMBEDDING_FIELD,
    Blob,
    Booking,
    Cart,
    CartLine,
    ChangeEvent,
    ChangeOrigin,
    DisplayFields,
    Document,
    Product,
    Record,
    RecordKind,
    cart_from_document,
    content_digest,
    document_from_booking,
    document_from_product,
    record_from_document,
    to_decimal,
)

__all__ = [
    "CART_ID",
    "EMBEDDING_DIGEST_FIELD",
    "EMBEDDING_FIELD",
    "FACE_EMBEDDING_DIGEST_FIELD",
    "FACE_EMBEDDING_FIELD",
    "Blob",
    "Booking",
    "Cart",
    "CartLine",
    "ChangeEvent",
    "ChangeOrigin",
    "DisplayFields",
    "Document",
    "Product",
    "Record",
    "RecordKind",
    "cart_from_document",
    "content_digest",
    "document_from_booking",
    "document_from_product",
    "record_from_document",
    "to_decimal",
]

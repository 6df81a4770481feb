# Path: shelfscan/core/cart/ledger.py
# Purpose: Maintain the singleton shopping cart document.
# Layer: core/cart.
# Details: Lines are appended through an atomic read-modify-write; the total is recomputed from every line.

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from shelfscan.core.errors import StoreError
from shelfscan.core.models import CART_ID, Cart, Document, Product, RecordKind, cart_from_document, to_decimal
from shelfscan.core.store import DocumentStore

logger = logging.getLogger(__name__)


class CartLedger:
    """Cart aggregate stored as one document with id ``cart``."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def add_to_cart(self, product: Product) -> bool:
        """Append a line for ``product``; returns False when the cart could not be saved."""

        def append(current: Optional[Document]) -> Document:
            data = dict(current.data) if current is not None else {"type": RecordKind.CART.value}
            items = list(data.get("items") or [])
            items.append({"name": product.name, "price": product.price})
            data["items"] = items
            data["total"] = sum((to_decimal(item["price"]) for item in items), Decimal("0"))
            return Document(id=CART_ID, data=data)

        try:
            self.store.update(CART_ID, append)
        except StoreError as exc:
            logger.error(f"Could not add {product.name!r} to the cart: {exc}")
            return False
        return True

    def cart(self) -> Cart:
        return cart_from_document(self.store.get(CART_ID))

    def cart_total(self) -> Decimal:
        """The persisted total; zero when there is no cart."""

        return self.cart().total

    def clear_cart(self) -> None:
        if self.store.delete(CART_ID):
            logger.info("Cart cleared")

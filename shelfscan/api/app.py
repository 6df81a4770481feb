# Path: shelfscan/api/app.py
# Purpose: Expose a FastAPI application for product search and the cart.
# Layer: api.
# Details: Thin HTTP mapping over the SearchCoordinator and CartLedger built by bootstrap.

import io
from typing import Any, Dict, List

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from shelfscan.bootstrap import Services
from shelfscan.core.models import Booking, Cart, Product, Record, record_from_document


class AddToCartRequest(BaseModel):
    product_id: str


def record_payload(record: Record) -> Dict[str, Any]:
    """Serialize a record with its display fields."""

    display = record.display
    payload: Dict[str, Any] = {
        "id": record.id,
        "kind": record.kind.value,
        "title": display.title,
        "subtitle": display.subtitle,
        "details": display.details,
        "image_digest": display.image_digest,
    }
    if isinstance(record, Product):
        payload.update(
            name=record.name,
            price=str(record.price),
            location=record.location,
            category=record.category,
            barcode=record.barcode,
        )
    elif isinstance(record, Booking):
        payload["has_face"] = record.face is not None
    return payload


def cart_payload(cart: Cart) -> Dict[str, Any]:
    return {
        "items": [{"name": line.name, "price": str(line.price)} for line in cart.items],
        "total": str(cart.total),
    }


def create_app(services: Services):  # type: ignore[override]
    """Create a FastAPI app instance bound to the given services."""

    from fastapi import FastAPI, HTTPException, Request
    from fastapi.concurrency import run_in_threadpool

    app = FastAPI(title="shelfscan API", version="0.1.0")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        """Return service status and whether every vector index is up to date."""

        return {
            "status": "ok",
            "indexes": {index.name: index.is_fresh() for index in services.indexes},
        }

    @app.post("/search/image")
    async def search_image(request: Request) -> Dict[str, List[Dict[str, Any]]]:
        """Search with the raw image bytes of the request body."""

        body = await request.body()
        try:
            image = Image.open(io.BytesIO(body))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise HTTPException(status_code=400, detail=f"Unreadable image: {exc}") from exc
        records = await run_in_threadpool(services.coordinator.search_by_image, image)
        return {"results": [record_payload(record) for record in records]}

    @app.get("/search/text")
    def search_text(q: str = "") -> Dict[str, List[Dict[str, Any]]]:
        products = services.coordinator.search_by_text(q)
        return {"results": [record_payload(product) for product in products]}

    @app.get("/cart")
    def get_cart() -> Dict[str, Any]:
        return cart_payload(services.ledger.cart())

    @app.post("/cart/items")
    def add_cart_item(payload: AddToCartRequest) -> Dict[str, Any]:
        document = services.store.get(payload.product_id)
        record = record_from_document(document) if document is not None else None
        if not isinstance(record, Product):
            raise HTTPException(status_code=404, detail=f"Unknown product: {payload.product_id}")
        if not services.ledger.add_to_cart(record):
            raise HTTPException(status_code=503, detail="The cart could not be saved.")
        return cart_payload(services.ledger.cart())

    @app.delete("/cart")
    def clear_cart() -> Dict[str, Any]:
        services.ledger.clear_cart()
        return cart_payload(services.ledger.cart())

    return app

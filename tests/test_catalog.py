"""Tests for bulk catalog import."""

import json
from decimal import Decimal

from shelfscan.core.indexing import CatalogImporter
from shelfscan.core.models import Booking, Product, record_from_document

from conftest import GREEN, RED, png_bytes, solid_image


def write_catalog(folder):
    (folder / "apple.png").write_bytes(png_bytes(solid_image(RED)))
    (folder / "face.png").write_bytes(png_bytes(solid_image(GREEN)))
    manifest = {
        "products": [
            {"id": "apple", "name": "Apple", "price": "0.45", "location": "Aisle 3", "category": "fruit", "image": "apple.png", "barcode": "123"},
            {"id": "ghost", "name": "Ghost", "price": "1.00", "image": "missing.png"},
            {"id": "free", "name": "", "price": "1.00", "image": "apple.png"},
        ],
        "bookings": [{"id": "b1", "image": "apple.png", "face": "face.png"}],
    }
    path = folder / "catalog.json"
    path.write_text(json.dumps(manifest))
    return path


class TestCatalogImporter:
    def test_imports_valid_entries_and_skips_the_rest(self, store, tmp_path):
        report = CatalogImporter(store, tmp_path).import_manifest(write_catalog(tmp_path), show_progress=False)

        assert report.imported == 2
        assert sorted(report.skipped) == ["free", "ghost"]

        apple = record_from_document(store.get("apple"))
        assert isinstance(apple, Product)
        assert apple.price == Decimal("0.45")
        assert apple.barcode == "123"
        assert apple.image.content_type == "image/png"

        booking = record_from_document(store.get("b1"))
        assert isinstance(booking, Booking)
        assert booking.face is not None

    def test_imported_products_are_text_searchable(self, store, tmp_path):
        CatalogImporter(store, tmp_path).import_manifest(write_catalog(tmp_path), show_progress=False)
        assert [document.id for document in store.search_text("fru*")] == ["apple"]

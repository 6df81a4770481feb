# Path: shelfscan/core/indexing/catalog.py
# Purpose: Bulk-load catalog products and bookings into the document store.
# Layer: core/indexing.
# Details: Reads a JSON manifest whose image fields name files in an image folder; shows tqdm progress.

from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

from tqdm import tqdm

from shelfscan.core.errors import InvalidRecord
from shelfscan.core.models import (
    Blob,
    Booking,
    ChangeOrigin,
    Document,
    Product,
    document_from_booking,
    document_from_product,
)
from shelfscan.core.store import DocumentStore

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".webp"}


@dataclass
class ImportReport:
    """Outcome of a catalog import."""

    imported: int = 0
    skipped: List[str] = field(default_factory=list)


class CatalogImporter:
    """Import a catalog manifest.

    The manifest is a JSON object with optional ``products`` and ``bookings``
    lists. Products carry ``id``, ``name``, ``price``, ``location``,
    ``category``, ``image`` and optionally ``barcode``; bookings carry ``id``,
    ``image`` and optionally ``face``. Image fields are paths relative to the
    image folder. Embeddings are not computed here; the index maintainer picks
    the new documents up as stale.
    """

    def __init__(self, store: DocumentStore, image_folder: Path, batch_size: int = 50) -> None:
        self.store = store
        self.image_folder = Path(image_folder)
        self.batch_size = batch_size

    def import_manifest(self, manifest_path: Path, show_progress: bool = True) -> ImportReport:
        with open(manifest_path, "r", encoding="utf-8") as handle:
            manifest = json.load(handle)
        return self.import_entries(manifest, show_progress=show_progress)

    def import_entries(self, manifest: Mapping[str, Any], show_progress: bool = True) -> ImportReport:
        entries = [("product", entry) for entry in manifest.get("products", [])]
        entries += [("booking", entry) for entry in manifest.get("bookings", [])]

        report = ImportReport()
        batch: List[Document] = []
        for kind, entry in tqdm(entries, desc="Importing catalog", unit="doc", disable=not show_progress):
            document = self._document(kind, entry)
            if document is None:
                report.skipped.append(str(entry.get("id", "?")))
                continue
            batch.append(document)
            if len(batch) >= self.batch_size:
                report.imported += self._flush(batch)
                batch = []

        if batch:
            report.imported += self._flush(batch)
        if report.skipped:
            logger.warning(f"Skipped {len(report.skipped)} catalog entries: {', '.join(report.skipped)}")
        logger.info(f"Imported {report.imported} catalog documents")
        return report

    def _flush(self, documents: List[Document]) -> int:
        if not self.store.put_many(documents, origin=ChangeOrigin.LOCAL):
            logger.error(f"Failed to write a batch of {len(documents)} catalog documents")
            return 0
        return len(documents)

    def _document(self, kind: str, entry: Mapping[str, Any]) -> Optional[Document]:
        doc_id = entry.get("id")
        if not doc_id:
            logger.warning(f"Catalog {kind} without an id: {entry!r}")
            return None
        image = self._load_blob(entry.get("image"))
        if image is None:
            return None
        try:
            if kind == "product":
                product = Product(
                    id=str(doc_id),
                    name=entry.get("name") or "",
                    price=entry.get("price", 0),
                    location=entry.get("location") or "",
                    category=entry.get("category") or "",
                    image=image,
                    barcode=entry.get("barcode"),
                )
                return document_from_product(product)
            face = self._load_blob(entry.get("face")) if entry.get("face") else None
            return document_from_booking(Booking(id=str(doc_id), image=image, face=face))
        except InvalidRecord as exc:
            logger.warning(f"Invalid catalog {kind} {doc_id!r}: {exc}")
            return None

    def _load_blob(self, relative: Optional[str]) -> Optional[Blob]:
        """Read an image file from the image folder, returning None if it cannot be used."""

        if not relative:
            return None
        path = self.image_folder / relative
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            logger.warning(f"Unsupported image type: {path}")
            return None
        try:
            content = path.read_bytes()
        except OSError as exc:
            logger.warning(f"Could not read {path}: {exc}")
            return None
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return Blob(content=content, content_type=content_type)


# Path: shelfscan/core/store/document_store.py
# Purpose: Persist typed documents with blob attachments and the indexes search relies on.
# Layer: core/store.
# Details: SQLite-backed; JSON bodies, content-addressed blobs, value indexes, FTS5, and change notifications.

from __future__ import annotations

import json
import logging
import re
import sqlite3
import threading
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

import numpy as np

from shelfscan.core.errors import StoreError, StoreInitializationError
from shelfscan.core.models import Blob, ChangeEvent, ChangeOrigin, Document, RecordKind
from shelfscan.core.models.domain import INDEX_OWNED_FIELDS

from .changes import ChangeSubscription

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    type TEXT,
    body TEXT NOT NULL,
    revision INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS blobs (
    digest TEXT PRIMARY KEY,
    content_type TEXT NOT NULL,
    data BLOB NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_type ON documents(type);
CREATE INDEX IF NOT EXISTS idx_documents_name ON documents(json_extract(body, '$.name'));
CREATE INDEX IF NOT EXISTS idx_documents_barcode ON documents(json_extract(body, '$.barcode'));
CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(doc_id UNINDEXED, name, category);
"""

BLOB_MARKER = "@type"
_FIELD_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
RANGE_OPERATORS = {"lt": "<", "lte": "<=", "gt": ">", "gte": ">="}
MALFORMED_MATCH_MARKERS = ("fts5: syntax error", "unterminated string")


@dataclass(frozen=True)
class Patch:
    """Conditional field update of one document.

    ``expect`` maps dotted paths (``"image.digest"``) to the values they must
    still hold for the patch to apply.
    """

    doc_id: str
    fields: Dict[str, Any]
    expect: Dict[str, Any] = field(default_factory=dict)


def json_path(field_name: str) -> str:
    """Translate a dotted field name into a SQLite JSON path, rejecting anything else."""

    if not _FIELD_PATTERN.match(field_name):
        raise ValueError(f"Invalid field name: {field_name!r}")
    return "$." + field_name


def _field_expression(field_name: str) -> str:
    if field_name == "type":
        return "type"
    if field_name == "id":
        return "id"
    return f"json_extract(body, '{json_path(field_name)}')"


def _predicate(key: str) -> Tuple[str, str]:
    """Split ``"price__lt"`` into its field and SQL operator; plain keys compare for equality."""

    field_name, _, suffix = key.rpartition("__")
    if field_name and suffix in RANGE_OPERATORS:
        return field_name, RANGE_OPERATORS[suffix]
    return key, "="


def _is_malformed_match(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in MALFORMED_MATCH_MARKERS)


def _lookup(body: Mapping[str, Any], dotted: str) -> Any:
    value: Any = body
    for part in dotted.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


class DocumentStore:
    """Document store shared by the capture pipeline, the index maintainer, and sync.

    A single connection is serialized by an internal lock, so every mutation is
    atomic per document and readers never see half-written bodies.
    """

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        self.path = str(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._subscribers: List[ChangeSubscription] = []
        self._subscribers_lock = threading.Lock()
        self._sequence = 0

    # Lifecycle
    def open(self) -> "DocumentStore":
        """Open the database and create tables and indexes.

        Raises:
            StoreInitializationError: the schema or an index could not be created.
        """

        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            if self.path != ":memory:":
                conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)
            conn.commit()
        except (sqlite3.Error, OSError) as exc:
            raise StoreInitializationError(f"Could not initialize document store at {self.path}: {exc}") from exc
        self._conn = conn
        logger.info(f"Opened document store at {self.path}")
        return self

    def close(self) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.close()
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "DocumentStore":
        return self.open() if self._conn is None else self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreError("Document store is not open.")
        return self._conn

    @property
    def sequence(self) -> int:
        """Number of committed mutation batches since the store was opened."""

        return self._sequence

    # Change notifications
    def subscribe(self) -> ChangeSubscription:
        """Open a new change stream; close it to unsubscribe."""

        subscription = ChangeSubscription(on_close=self._unsubscribe)
        with self._subscribers_lock:
            self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: ChangeSubscription) -> None:
        with self._subscribers_lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def _committed(self, doc_ids: Sequence[str], origin: ChangeOrigin) -> ChangeEvent:
        self._sequence += 1
        return ChangeEvent(doc_ids=tuple(doc_ids), origin=origin, sequence=self._sequence)

    def _publish(self, event: ChangeEvent) -> None:
        with self._subscribers_lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.deliver(event)

    # Reads
    def get(self, doc_id: str) -> Optional[Document]:
        """Point lookup; returns None when missing or when the store cannot be read."""

        try:
            with self._lock:
                row = self.connection.execute("SELECT id, body FROM documents WHERE id = ?", (doc_id,)).fetchone()
                return self._document(row) if row else None
        except sqlite3.Error as exc:
            logger.error(f"DocumentStore.get({doc_id!r}) failed: {exc}")
            return None

    def query(
        self,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Predicate scan over scalar fields.

        ``where`` keys are field names for equality (a None value matches a
        missing field) or carry a ``__lt``, ``__lte``, ``__gt`` or ``__gte``
        suffix for range comparisons, e.g. ``{"type": "product", "price__lt": 2}``.
        ``order_by`` entries are field names, prefixed with ``-`` for descending order.
        """

        clauses: List[str] = []
        params: List[Any] = []
        for key, value in (where or {}).items():
            field_name, operator = _predicate(key)
            expression = _field_expression(field_name)
            if value is None:
                if operator != "=":
                    raise ValueError(f"Range predicate {key!r} needs a value")
                clauses.append(f"{expression} IS NULL")
            else:
                clauses.append(f"{expression} {operator} ?")
                params.append(float(value) if isinstance(value, Decimal) else value)

        sql = "SELECT id, body FROM documents"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        if order_by:
            orderings = []
            for entry in order_by:
                descending = entry.startswith("-")
                orderings.append(_field_expression(entry.lstrip("-")) + (" DESC" if descending else ""))
            sql += " ORDER BY " + ", ".join(orderings)
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        try:
            with self._lock:
                rows = self.connection.execute(sql, params).fetchall()
                return [self._document(row) for row in rows]
        except sqlite3.Error as exc:
            logger.error(f"DocumentStore.query failed: {exc}")
            return []

    def find_by_barcode(self, barcode: str) -> Optional[Document]:
        """Equality lookup on the product barcode value index."""

        results = self.query(where={"type": RecordKind.PRODUCT.value, "barcode": barcode}, limit=1)
        return results[0] if results else None

    def search_text(
        self, expression: str, doc_type: str = RecordKind.PRODUCT.value, limit: Optional[int] = None
    ) -> List[Document]:
        """Full-text match over name and category, ordered by relevance then name.

        Malformed expressions (typically a query still being typed) yield an
        empty result instead of an error.
        """

        sql = """
            SELECT documents.id, documents.body
            FROM (
                SELECT doc_id, rank AS score FROM documents_fts WHERE documents_fts MATCH ?
            ) AS hits
            JOIN documents ON documents.id = hits.doc_id
            WHERE documents.type = ?
            ORDER BY hits.score, json_extract(documents.body, '$.name')
        """
        params: List[Any] = [expression, doc_type]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        try:
            with self._lock:
                rows = self.connection.execute(sql, params).fetchall()
                return [self._document(row) for row in rows]
        except sqlite3.OperationalError as exc:
            if _is_malformed_match(exc):
                logger.debug(f"Ignoring malformed full-text query {expression!r}: {exc}")
            else:
                logger.error(f"DocumentStore.search_text failed: {exc}")
            return []
        except sqlite3.Error as exc:
            logger.error(f"DocumentStore.search_text failed: {exc}")
            return []

    def select(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Run a read-only statement for index implementations.

        Raises:
            StoreError: the statement failed.
        """

        try:
            with self._lock:
                return self.connection.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Index read failed: {exc}") from exc

    def blob(self, digest: str) -> Optional[Blob]:
        """Return the blob stored under ``digest``."""

        try:
            with self._lock:
                return self._load_blob(digest)
        except sqlite3.Error as exc:
            logger.error(f"DocumentStore.blob({digest!r}) failed: {exc}")
            return None

    def count(self, doc_type: Optional[str] = None) -> int:
        with self._lock:
            if doc_type is None:
                row = self.connection.execute("SELECT COUNT(*) FROM documents").fetchone()
            else:
                row = self.connection.execute("SELECT COUNT(*) FROM documents WHERE type = ?", (doc_type,)).fetchone()
        return int(row[0])

    # Writes
    def put(self, document: Document, origin: ChangeOrigin = ChangeOrigin.LOCAL) -> bool:
        """Insert or replace a document; index-owned fields are kept from the stored version."""

        try:
            with self._lock:
                with self.connection:
                    self._write(document)
                event = self._committed([document.id], origin)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.error(f"DocumentStore.put({document.id!r}) failed: {exc}")
            return False
        self._publish(event)
        return True

    def put_many(self, documents: Iterable[Document], origin: ChangeOrigin = ChangeOrigin.LOCAL) -> bool:
        """Write several documents in one transaction and one notification."""

        documents = list(documents)
        if not documents:
            return True
        try:
            with self._lock:
                with self.connection:
                    for document in documents:
                        self._write(document)
                event = self._committed([document.id for document in documents], origin)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.error(f"DocumentStore.put_many failed: {exc}")
            return False
        self._publish(event)
        return True

    def delete(self, doc_id: str, origin: ChangeOrigin = ChangeOrigin.LOCAL) -> bool:
        """Delete a document; returns True when a document was removed."""

        try:
            with self._lock:
                with self.connection:
                    cursor = self.connection.execute("DELETE FROM documents WHERE id = ?", (doc_id,))
                    self.connection.execute("DELETE FROM documents_fts WHERE doc_id = ?", (doc_id,))
                if cursor.rowcount == 0:
                    return False
                event = self._committed([doc_id], origin)
        except sqlite3.Error as exc:
            logger.error(f"DocumentStore.delete({doc_id!r}) failed: {exc}")
            return False
        self._publish(event)
        return True

    def update(
        self,
        doc_id: str,
        mutate: Callable[[Optional[Document]], Document],
        origin: ChangeOrigin = ChangeOrigin.LOCAL,
    ) -> Document:
        """Atomically read, transform, and write one document.

        Raises:
            StoreError: the read or the write failed; nothing was written.
        """

        try:
            with self._lock:
                current = self._read(doc_id)
                updated = mutate(current)
                with self.connection:
                    self._write(updated)
                event = self._committed([updated.id], origin)
        except sqlite3.Error as exc:
            raise StoreError(f"Update of {doc_id!r} failed: {exc}") from exc
        self._publish(event)
        return updated

    def patch_many(self, patches: Sequence[Patch], origin: ChangeOrigin = ChangeOrigin.INDEX) -> int:
        """Apply conditional patches in one transaction; returns how many applied.

        This is the only path that writes index-owned fields.

        Raises:
            StoreError: the transaction failed and nothing was written.
        """

        applied: List[str] = []
        try:
            with self._lock:
                with self.connection:
                    for patch in patches:
                        row = self.connection.execute("SELECT body FROM documents WHERE id = ?", (patch.doc_id,)).fetchone()
                        if row is None:
                            continue
                        body = json.loads(row["body"])
                        if any(_lookup(body, path) != value for path, value in patch.expect.items()):
                            continue
                        for key, value in patch.fields.items():
                            body[key] = self._encode_value(value, [])
                        self.connection.execute(
                            "UPDATE documents SET body = ?, revision = revision + 1 WHERE id = ?",
                            (json.dumps(body), patch.doc_id),
                        )
                        applied.append(patch.doc_id)
                event = self._committed(applied, origin) if applied else None
        except sqlite3.Error as exc:
            raise StoreError(f"Patch batch failed: {exc}") from exc
        if event is not None:
            self._publish(event)
        return len(applied)

    def compact(self) -> int:
        """Reclaim blobs no document references; returns the number removed."""

        with self._lock:
            referenced: Set[str] = set()
            for row in self.connection.execute("SELECT body FROM documents"):
                self._collect_digests(json.loads(row["body"]), referenced)
            digests = [row["digest"] for row in self.connection.execute("SELECT digest FROM blobs")]
            orphans = [digest for digest in digests if digest not in referenced]
            with self.connection:
                self.connection.executemany("DELETE FROM blobs WHERE digest = ?", [(digest,) for digest in orphans])
        if orphans:
            logger.info(f"Reclaimed {len(orphans)} unreferenced blobs")
        return len(orphans)

    # Internals
    def _read(self, doc_id: str) -> Optional[Document]:
        row = self.connection.execute("SELECT id, body FROM documents WHERE id = ?", (doc_id,)).fetchone()
        return self._document(row) if row else None

    def _write(self, document: Document) -> None:
        existing_row = self.connection.execute("SELECT body FROM documents WHERE id = ?", (document.id,)).fetchone()
        existing = json.loads(existing_row["body"]) if existing_row else {}

        data = {key: value for key, value in document.data.items() if key not in INDEX_OWNED_FIELDS}
        for owned_field, source_field in INDEX_OWNED_FIELDS.items():
            if owned_field in existing and source_field in data:
                data[owned_field] = existing[owned_field]

        blobs: List[Blob] = []
        body = {key: self._encode_value(value, blobs) for key, value in data.items()}
        for blob in blobs:
            self.connection.execute(
                "INSERT OR IGNORE INTO blobs (digest, content_type, data) VALUES (?, ?, ?)",
                (blob.digest, blob.content_type, sqlite3.Binary(blob.content)),
            )

        doc_type = body.get("type")
        self.connection.execute(
            """
            INSERT INTO documents (id, type, body, revision)
            VALUES (?, ?, ?, 1)
            ON CONFLICT(id) DO UPDATE SET
                type = excluded.type,
                body = excluded.body,
                revision = documents.revision + 1
            """,
            (document.id, doc_type, json.dumps(body)),
        )
        self.connection.execute("DELETE FROM documents_fts WHERE doc_id = ?", (document.id,))
        if doc_type == RecordKind.PRODUCT.value:
            self.connection.execute(
                "INSERT INTO documents_fts (doc_id, name, category) VALUES (?, ?, ?)",
                (document.id, body.get("name") or "", body.get("category") or ""),
            )

    def _encode_value(self, value: Any, blobs: List[Blob]) -> Any:
        if isinstance(value, Blob):
            blobs.append(value)
            return {
                BLOB_MARKER: "blob",
                "digest": value.digest,
                "content_type": value.content_type,
                "length": value.length,
            }
        if isinstance(value, np.ndarray):
            return [float(component) for component in value.tolist()]
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, Mapping):
            return {key: self._encode_value(item, blobs) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._encode_value(item, blobs) for item in value]
        return value

    def _decode_value(self, value: Any) -> Any:
        if isinstance(value, dict):
            if value.get(BLOB_MARKER) == "blob":
                blob = self._load_blob(value["digest"])
                return blob if blob is not None else value
            return {key: self._decode_value(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._decode_value(item) for item in value]
        return value

    def _load_blob(self, digest: str) -> Optional[Blob]:
        row = self.connection.execute("SELECT content_type, data FROM blobs WHERE digest = ?", (digest,)).fetchone()
        if row is None:
            return None
        return Blob(content=bytes(row["data"]), content_type=row["content_type"])

    def _document(self, row: sqlite3.Row) -> Document:
        body = json.loads(row["body"])
        return Document(id=row["id"], data={key: self._decode_value(value) for key, value in body.items()})

    def _collect_digests(self, value: Any, digests: Set[str]) -> None:
        if isinstance(value, dict):
            if value.get(BLOB_MARKER) == "blob":
                digests.add(value["digest"])
                return
            for item in value.values():
                self._collect_digests(item, digests)
        elif isinstance(value, list):
            for item in value:
                self._collect_digests(item, digests)

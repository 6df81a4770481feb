# Path: shelfscan/core/vector_store/lazy_index.py
# Purpose: Provide cosine-distance vector indexes stored inside the document store.
# Layer: core/vector_store.
# Details: Vectors live on the documents; searches use numpy over a snapshot refreshed on store changes.

from __future__ import annotations

import json
import logging
import threading
from typing import Collection, List, Optional, Sequence, Tuple

import numpy as np

from shelfscan.core.models import (
    EMBEDDING_DIGEST_FIELD,
    EMBEDDING_FIELD,
    FACE_EMBEDDING_DIGEST_FIELD,
    FACE_EMBEDDING_FIELD,
    Blob,
    ChangeOrigin,
    RecordKind,
)
from shelfscan.core.preprocessing import FACES, NO_ATTENTION, Attention
from shelfscan.core.store import DocumentStore, Patch, json_path

from .base import IndexUpdate, StaleEntry, VectorIndex, VectorMatch

logger = logging.getLogger(__name__)

_Snapshot = Tuple[List[str], List[Optional[str]], np.ndarray]


class LazyVectorIndex(VectorIndex):
    """Vector index over one blob field of one document type.

    A document is stale when its source blob digest differs from the digest
    recorded next to its vector (or when it has no vector yet). Vectors are
    only ever written together with that digest, conditional on the source
    blob still being the one they were computed from.
    """

    def __init__(
        self,
        store: DocumentStore,
        name: str,
        doc_type: str,
        source_field: str,
        vector_field: str,
        digest_field: str,
        attention: Attention = NO_ATTENTION,
        dim: int = 768,
    ) -> None:
        self.store = store
        self.name = name
        self.doc_type = doc_type
        self.source_field = source_field
        self.vector_field = vector_field
        self.digest_field = digest_field
        self.attention = attention
        self.dim = dim
        self._source_digest_sql = f"json_extract(body, '{json_path(source_field + '.digest')}')"
        self._vector_sql = f"json_extract(body, '{json_path(vector_field)}')"
        self._digest_sql = f"json_extract(body, '{json_path(digest_field)}')"
        self._cache: Optional[Tuple[int, _Snapshot]] = None
        self._cache_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"LazyVectorIndex(name={self.name!r}, doc_type={self.doc_type!r}, field={self.vector_field!r})"

    def nearest(
        self, vector: np.ndarray, k: int, max_distance: float, inclusive: bool = True
    ) -> List[VectorMatch]:
        """Cosine nearest neighbors among documents that have a vector, stale or not."""

        query = np.asarray(vector, dtype=np.float64)
        if query.shape != (self.dim,):
            raise ValueError(f"Query dimensionality {query.shape} does not match index dimension {self.dim}.")
        norm = np.linalg.norm(query)
        ids, names, matrix = self._snapshot()
        if not ids or norm == 0:
            return []

        distances = np.clip(1.0 - matrix @ (query / norm), 0.0, 2.0)
        ranked = sorted(range(len(ids)), key=lambda i: (float(distances[i]), names[i] or ""))[:k]

        matches: List[VectorMatch] = []
        for i in ranked:
            distance = float(distances[i])
            within = distance <= max_distance if inclusive else distance < max_distance
            if within:
                matches.append(VectorMatch(doc_id=ids[i], distance=distance, name=names[i]))
        return matches

    def stale_entries(self, limit: int, exclude: Collection[str] = ()) -> List[StaleEntry]:
        sql = f"""
            SELECT id, {self._source_digest_sql} AS source_digest
            FROM documents
            WHERE type = ?
                AND {self._source_digest_sql} IS NOT NULL
                AND ({self._digest_sql} IS NULL OR {self._digest_sql} != {self._source_digest_sql})
        """
        params: List[object] = [self.doc_type]
        excluded = sorted(exclude)
        if excluded:
            sql += f" AND id NOT IN ({', '.join('?' for _ in excluded)})"
            params.extend(excluded)
        sql += " ORDER BY id LIMIT ?"
        params.append(int(limit))

        rows = self.store.select(sql, params)
        return [StaleEntry(doc_id=row["id"], source_digest=row["source_digest"]) for row in rows]

    def source(self, entry: StaleEntry) -> Optional[Blob]:
        return self.store.blob(entry.source_digest)

    def commit(self, updates: Sequence[IndexUpdate]) -> int:
        patches = [
            Patch(
                doc_id=update.doc_id,
                fields={self.vector_field: update.vector, self.digest_field: update.source_digest},
                expect={f"{self.source_field}.digest": update.source_digest},
            )
            for update in updates
        ]
        if not patches:
            return 0
        return self.store.patch_many(patches, origin=ChangeOrigin.INDEX)

    def _snapshot(self) -> _Snapshot:
        """Return normalized vectors, reloading only when the store has changed."""

        sequence = self.store.sequence
        with self._cache_lock:
            if self._cache is not None and self._cache[0] == sequence:
                return self._cache[1]

        rows = self.store.select(
            f"""
            SELECT id, json_extract(body, '$.name') AS name, {self._vector_sql} AS vector
            FROM documents
            WHERE type = ? AND {self._vector_sql} IS NOT NULL
            ORDER BY id
            """,
            (self.doc_type,),
        )

        ids: List[str] = []
        names: List[Optional[str]] = []
        vectors: List[np.ndarray] = []
        for row in rows:
            vector = np.asarray(json.loads(row["vector"]), dtype=np.float64)
            if vector.shape != (self.dim,):
                logger.warning(f"{self.name}: ignoring {row['id']} with vector shape {vector.shape}")
                continue
            norm = np.linalg.norm(vector)
            ids.append(row["id"])
            names.append(row["name"])
            vectors.append(vector / norm if norm else vector)

        matrix = np.vstack(vectors) if vectors else np.empty((0, self.dim))
        snapshot: _Snapshot = (ids, names, matrix)
        with self._cache_lock:
            self._cache = (sequence, snapshot)
        return snapshot


def product_embedding_index(store: DocumentStore, dim: int = 768) -> LazyVectorIndex:
    """Index over product images, embedded without attention."""

    return LazyVectorIndex(
        store,
        name="product_embeddings",
        doc_type=RecordKind.PRODUCT.value,
        source_field="image",
        vector_field=EMBEDDING_FIELD,
        digest_field=EMBEDDING_DIGEST_FIELD,
        attention=NO_ATTENTION,
        dim=dim,
    )


def booking_face_index(store: DocumentStore, dim: int = 768) -> LazyVectorIndex:
    """Index over booking customer faces, embedded with face attention."""

    return LazyVectorIndex(
        store,
        name="booking_faces",
        doc_type=RecordKind.BOOKING.value,
        source_field="face",
        vector_field=FACE_EMBEDDING_FIELD,
        digest_field=FACE_EMBEDDING_DIGEST_FIELD,
        attention=FACES,
        dim=dim,
    )

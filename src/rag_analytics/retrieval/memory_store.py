"""In-process vector store backed by a numpy matrix.

Useful for local runs, demos and tests; nothing is persisted.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np

from rag_analytics.errors import VectorStoreError
from rag_analytics.retrieval.base import VectorStoreBase
from rag_analytics.retrieval.models import MetadataFilter, VectorRecord

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStoreBase):
    """Cosine-similarity store holding every record in memory.

    Batch inserts are atomic with respect to concurrent searches: a
    search sees either none or all of a batch.
    """

    def __init__(self, collection_name: str = "in_memory") -> None:
        super().__init__(collection_name)
        self._lock = threading.Lock()
        self._records: list[VectorRecord] = []
        self._matrix: np.ndarray | None = None  # row-normalised embeddings

    @property
    def dimension(self) -> int | None:
        return self._matrix.shape[1] if self._matrix is not None else None

    # -- VectorStoreBase overrides --------------------------------------------

    def add_records(self, records: list[VectorRecord]) -> None:
        if not records:
            return

        dims = {r.dimension for r in records}
        if len(dims) != 1:
            raise VectorStoreError(f"Batch mixes embedding dimensions: {sorted(dims)}")
        (dim,) = dims

        batch = _normalise(np.asarray([r.embedding for r in records], dtype=np.float64))
        with self._lock:
            if self._matrix is not None and self._matrix.shape[1] != dim:
                raise VectorStoreError(
                    f"Embedding dimension {dim} does not match store dimension {self._matrix.shape[1]}"
                )
            self._matrix = batch if self._matrix is None else np.vstack([self._matrix, batch])
            self._records = self._records + list(records)
        logger.debug("Stored %d records in %r", len(records), self.collection_name)

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 4,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            records, matrix = self._records, self._matrix
        if matrix is None or k <= 0:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        if query.shape != (matrix.shape[1],):
            raise VectorStoreError(
                f"Query dimension {query.shape[-1] if query.ndim else 0} does not match "
                f"store dimension {matrix.shape[1]}"
            )

        scores = matrix @ _normalise(query[np.newaxis, :])[0]
        # stable sort keeps insertion order among ties
        order = np.argsort(-scores, kind="stable")

        hits: list[dict[str, Any]] = []
        for idx in order:
            record = records[idx]
            if filters and not all(f.matches(record.metadata) for f in filters):
                continue
            hits.append(
                {
                    "id": record.id,
                    "content": record.content,
                    "score": float(scores[idx]),
                    "metadata": dict(record.metadata),
                }
            )
            if len(hits) == k:
                break
        return hits

    def count(self) -> int:
        return len(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records = []
            self._matrix = None

    def delete(self, ids: list[str]) -> None:
        doomed = set(ids)
        with self._lock:
            keep = [i for i, r in enumerate(self._records) if r.id not in doomed]
            self._records = [self._records[i] for i in keep]
            self._matrix = self._matrix[keep] if self._matrix is not None and keep else None


def _normalise(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms

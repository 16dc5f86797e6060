"""Semantic retriever — embed the query, search the store, attach citations.

Usage::

    from rag_analytics.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever(store, embeddings, default_k=4)
    for r in retriever.retrieve("What did the Fed do in March?"):
        print(r.citation.short_ref(), r.content[:80])
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.embeddings import Embeddings

from rag_analytics.retrieval.base import VectorStoreBase
from rag_analytics.retrieval.models import Citation, MetadataFilter, RetrievalResult

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """Top-K similarity retriever over any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embeddings:
        The embedding model used at ingestion time.  Querying with a
        different model would compare vectors from unrelated spaces.
    default_k:
        Default number of results returned by :meth:`retrieve`.
    score_threshold:
        Minimum similarity score; results below this are discarded.  The
        default of ``0.0`` keeps every non-negative cosine score and drops
        chunks pointing away from the query.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embeddings: Embeddings,
        *,
        default_k: int = 4,
        score_threshold: float = 0.0,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self.default_k = default_k
        self.score_threshold = score_threshold

    @property
    def store(self) -> VectorStoreBase:
        return self._store

    # -- public API -----------------------------------------------------------

    def retrieve(
        self,
        query: str,
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Embed *query* and return the most similar stored chunks.

        Returns an empty list when the store is empty.  Embedding failures
        propagate as :class:`~rag_analytics.errors.EmbeddingServiceError`,
        store failures as :class:`~rag_analytics.errors.VectorStoreError`.
        """
        embedding = self._embeddings.embed_query(query)
        return self.retrieve_by_embedding(embedding, k=k, filters=filters)

    def retrieve_by_embedding(
        self,
        embedding: list[float],
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`retrieve` but accepts a pre-computed embedding."""
        k = k or self.default_k
        raw_hits = self._store.similarity_search(embedding, k=k, filters=filters)
        results = self._to_results(raw_hits)
        logger.info("Retrieved %d/%d chunks (k=%d)", len(results), len(raw_hits), k)
        return results

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            score = hit.get("score")
            if score is not None and score < self.score_threshold:
                continue

            meta = hit.get("metadata", {})
            citation = Citation(
                document_id=hit.get("id"),
                source=meta.get("source", "unknown"),
                page=meta.get("page"),
                chunk_index=meta.get("chunk_index"),
                score=score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        return results

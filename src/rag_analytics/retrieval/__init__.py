"""
Retrieval — vector storage, similarity search, and citation tracking.

This module wraps the vector store behind a clean interface so that the
query service never needs to know which DB is backing retrieval.

Public surface
--------------
- :class:`SemanticRetriever` — embeds a query and returns cited results.
- :class:`VectorStoreBase` — abstract backend.
- :class:`InMemoryVectorStore` — numpy cosine store.
- :class:`ChromaVectorStore` — Chroma backend (lazy import).
- :class:`VectorRecord`, :class:`Citation`, :class:`RetrievalResult`,
  :class:`MetadataFilter` — data models.
- :func:`get_vector_store` — build the configured backend.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rag_analytics.retrieval.base import VectorStoreBase
from rag_analytics.retrieval.memory_store import InMemoryVectorStore
from rag_analytics.retrieval.models import Citation, MetadataFilter, RetrievalResult, VectorRecord
from rag_analytics.retrieval.retriever import SemanticRetriever

if TYPE_CHECKING:
    from rag_analytics.config import Settings

__all__ = [
    "Citation",
    "ChromaVectorStore",
    "InMemoryVectorStore",
    "MetadataFilter",
    "RetrievalResult",
    "SemanticRetriever",
    "VectorRecord",
    "VectorStoreBase",
    "get_vector_store",
]


def get_vector_store(settings: Settings) -> VectorStoreBase:
    """Instantiate the backend selected by ``settings.vectorstore_backend``."""
    if settings.vectorstore_backend == "memory":
        return InMemoryVectorStore(settings.chroma_collection)

    from rag_analytics.retrieval.chroma_store import ChromaVectorStore

    return ChromaVectorStore.connect(
        settings.chroma_collection,
        host=settings.chroma_host,
        port=settings.chroma_port,
        persist_directory=settings.chroma_persist_directory,
        embedding_model=settings.embedding_model,
        initialize_schema=settings.vectorstore_initialize_schema,
    )


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from rag_analytics.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

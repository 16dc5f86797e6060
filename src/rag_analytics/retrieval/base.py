"""Abstract base class for vector-store backends.

Adding a new backend (pgvector, Qdrant …) only requires subclassing
:class:`VectorStoreBase` and implementing the abstract methods.  The
rest of the stack is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rag_analytics.retrieval.models import MetadataFilter, VectorRecord


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Implementations must use one similarity metric for both insertion and
    search (cosine for every backend shipped here) and raise
    :class:`~rag_analytics.errors.VectorStoreError` on failure.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / table.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add_records(self, records: list[VectorRecord]) -> None:
        """Append *records* in a single batch.

        No deduplication is performed: adding the same content twice
        stores it twice.
        """
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 4,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* results matching *query_embedding*.

        Each result dict **must** contain:

        * ``"id"`` – record identifier
        * ``"content"`` – the chunk text
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – associated metadata dict

        An empty store returns an empty list.
        """
        ...

    @abstractmethod
    def count(self) -> int:
        """Number of records currently stored."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove every record from the collection."""
        ...

    # -- optional overrides ---------------------------------------------------

    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        return True

    def delete(self, ids: list[str]) -> None:
        """Delete records by their IDs.  Backends that cannot delete raise."""
        raise NotImplementedError(f"{type(self).__name__} does not support delete")

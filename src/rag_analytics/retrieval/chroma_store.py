"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import logging
from typing import Any

import chromadb

from rag_analytics.errors import VectorStoreError
from rag_analytics.retrieval.base import VectorStoreBase
from rag_analytics.retrieval.models import MetadataFilter, VectorRecord

logger = logging.getLogger(__name__)

_OP_MAP = {
    "eq": "$eq",
    "ne": "$ne",
    "in": "$in",
    "nin": "$nin",
}


def _build_chroma_where(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Convert a list of :class:`MetadataFilter` to Chroma ``where`` syntax."""
    if not filters:
        return None

    clauses: list[dict[str, Any]] = []
    for f in filters:
        chroma_op = _OP_MAP.get(f.operator)
        if chroma_op is None:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {chroma_op: f.value}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _flatten_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    # Chroma metadata values must be flat str/int/float/bool
    return {k: v for k, v in metadata.items() if isinstance(v, (str, int, float, bool))}


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store using cosine distance.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    client:
        A ready ``chromadb`` client (``HttpClient``, ``PersistentClient``
        or ``EphemeralClient``).  See :func:`connect` for building one
        from host/port settings.
    embedding_model:
        Name of the embedding model feeding this collection.  It is
        recorded in the collection metadata; reopening the collection with
        a different model raises :class:`VectorStoreError` because the
        stored vectors would no longer be comparable.
    initialize_schema:
        Create the collection when it does not exist.  When ``False`` a
        missing collection is an error.
    """

    def __init__(
        self,
        collection_name: str,
        *,
        client: Any,
        embedding_model: str,
        initialize_schema: bool = True,
    ) -> None:
        super().__init__(collection_name)
        self._client = client
        self._embedding_model = embedding_model
        self._initialize_schema = initialize_schema
        self._collection = self._open_collection()

    @classmethod
    def connect(
        cls,
        collection_name: str,
        *,
        host: str,
        port: int,
        persist_directory: str,
        embedding_model: str,
        initialize_schema: bool = True,
    ) -> ChromaVectorStore:
        """Connect to a Chroma server, or open a local persistent store when *host* is empty."""
        try:
            if host:
                client = chromadb.HttpClient(host=host, port=port)
            else:
                client = chromadb.PersistentClient(path=persist_directory)
        except Exception as exc:
            raise VectorStoreError(f"Could not connect to Chroma: {exc}") from exc
        return cls(
            collection_name,
            client=client,
            embedding_model=embedding_model,
            initialize_schema=initialize_schema,
        )

    def _collection_metadata(self) -> dict[str, Any]:
        return {"hnsw:space": "cosine", "embedding_model": self._embedding_model}

    def _create_collection(self) -> Any:
        try:
            return self._client.create_collection(
                name=self.collection_name,
                metadata=self._collection_metadata(),
                embedding_function=None,
            )
        except Exception as exc:
            raise VectorStoreError(
                f"Could not create Chroma collection {self.collection_name!r}: {exc}"
            ) from exc

    def _open_collection(self) -> Any:
        # get_or_create_collection may overwrite stored metadata, so look first
        try:
            collection = self._client.get_collection(name=self.collection_name, embedding_function=None)
        except Exception as exc:
            if not self._initialize_schema:
                raise VectorStoreError(
                    f"Chroma collection {self.collection_name!r} does not exist and schema "
                    f"initialisation is disabled: {exc}"
                ) from exc
            logger.info("Creating Chroma collection %r", self.collection_name)
            return self._create_collection()

        stored_model = (collection.metadata or {}).get("embedding_model")
        if stored_model and stored_model != self._embedding_model:
            raise VectorStoreError(
                f"Collection {self.collection_name!r} was built with embedding model "
                f"{stored_model!r}, not {self._embedding_model!r}; clear it before re-ingesting"
            )
        return collection

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise VectorStoreError(
                f"Chroma collection {self.collection_name!r} was dropped and could not be "
                "recreated; call clear() again once the server is reachable"
            )
        return self._collection

    # -- VectorStoreBase overrides --------------------------------------------

    def add_records(self, records: list[VectorRecord]) -> None:
        if not records:
            return
        collection = self._require_collection()
        try:
            collection.add(
                ids=[r.id for r in records],
                embeddings=[r.embedding for r in records],
                documents=[r.content for r in records],
                metadatas=[_flatten_metadata(r.metadata) or None for r in records],
            )
        except Exception as exc:
            raise VectorStoreError(f"Chroma insert of {len(records)} records failed: {exc}") from exc

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 4,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        where = _build_chroma_where(filters) if filters else None
        if self.count() == 0:
            return []

        collection = self._require_collection()
        try:
            results = collection.query(
                query_embeddings=[query_embedding],
                n_results=k,
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError(f"Chroma query failed: {exc}") from exc

        hits: list[dict[str, Any]] = []
        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        for doc_id, content, meta, dist in zip(ids, docs, metas, distances):
            # cosine space: distance = 1 - cosine similarity
            hits.append(
                {
                    "id": doc_id,
                    "content": content or "",
                    "score": 1.0 - dist,
                    "metadata": meta or {},
                }
            )
        return hits

    def count(self) -> int:
        collection = self._require_collection()
        try:
            return collection.count()
        except Exception as exc:
            raise VectorStoreError(f"Chroma count failed: {exc}") from exc

    def clear(self) -> None:
        """Drop the collection and create an empty one with the same metadata.

        If the re-create fails the store is left without a collection and
        every later call raises :class:`VectorStoreError` until a
        subsequent ``clear()`` succeeds.
        """
        if self._collection is not None:
            try:
                self._client.delete_collection(self.collection_name)
            except Exception as exc:
                raise VectorStoreError(f"Could not drop collection {self.collection_name!r}: {exc}") from exc
            self._collection = None
        self._collection = self._create_collection()

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    def delete(self, ids: list[str]) -> None:
        collection = self._require_collection()
        try:
            collection.delete(ids=ids)
        except Exception as exc:
            raise VectorStoreError(f"Chroma delete failed: {exc}") from exc

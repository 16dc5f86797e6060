"""Ingestion pipeline: load → chunk → embed → store.

Run once at startup, before the query service takes traffic::

    pipeline = IngestionPipeline(chunker, embeddings, store)
    stored = pipeline.ingest_all(settings.document_paths)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from rag_analytics.ingestion.loader import expand_paths, load_pdf
from rag_analytics.retrieval.models import VectorRecord

if TYPE_CHECKING:
    from langchain_core.documents import Document
    from langchain_core.embeddings import Embeddings

    from rag_analytics.ingestion.chunker import TokenChunker
    from rag_analytics.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Turn source documents into :class:`VectorRecord` rows.

    Parameters
    ----------
    chunker:
        Token-bounded splitter.
    embeddings:
        Embedding model; must be the one the query side uses.
    store:
        Destination vector store.
    loader:
        Callable mapping a path to page-level documents.  Defaults to
        :func:`~rag_analytics.ingestion.loader.load_pdf`.
    """

    def __init__(
        self,
        chunker: TokenChunker,
        embeddings: Embeddings,
        store: VectorStoreBase,
        *,
        loader: Callable[[str | Path], list[Document]] = load_pdf,
    ) -> None:
        self.chunker = chunker
        self.embeddings = embeddings
        self.store = store
        self._loader = loader

    def ingest(self, path: str | Path) -> int:
        """Ingest one document and return the number of records stored.

        Raises
        ------
        DocumentReadError
            The document is missing or unparsable.
        EmbeddingServiceError
            The embedding call failed; nothing is written.
        VectorStoreError
            The batch insert failed.
        """
        t0 = time.monotonic()
        pages = self._loader(path)
        return self.ingest_documents(pages, label=str(path), started=t0)

    def ingest_documents(self, pages: list[Document], *, label: str = "<documents>", started: float | None = None) -> int:
        """Chunk, embed and store already-loaded page documents."""
        t0 = started if started is not None else time.monotonic()
        chunks = self.chunker.split_documents(pages)
        if not chunks:
            logger.warning("No extractable text in %s; nothing stored", label)
            return 0

        vectors = self.embeddings.embed_documents([c.text for c in chunks])
        records = [
            VectorRecord(content=chunk.text, embedding=vector, metadata={**chunk.metadata, "token_count": chunk.token_count})
            for chunk, vector in zip(chunks, vectors)
        ]
        self.store.add_records(records)

        logger.info(
            "Ingested %s: %d page(s) → %d chunk(s) in %.2fs",
            label,
            len(pages),
            len(records),
            time.monotonic() - t0,
        )
        return len(records)

    def ingest_all(self, paths: list[str | Path]) -> int:
        """Ingest every PDF found under *paths*; return the total stored."""
        files = expand_paths(paths)
        total = sum(self.ingest(path) for path in files)
        logger.info("Ingestion complete: %d record(s) from %d document(s)", total, len(files))
        return total

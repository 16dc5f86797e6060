"""Build the object graph once at process start.

Every collaborator is constructed from :class:`~rag_analytics.config.Settings`
here and handed to its consumers by reference; nothing below this module
reads global settings.  Tests pass fakes through the keyword overrides.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from rag_analytics.ingestion.chunker import TokenChunker
from rag_analytics.ingestion.embedder import GuardedEmbeddings, get_embedding_function
from rag_analytics.ingestion.pipeline import IngestionPipeline
from rag_analytics.qa.generator import AnswerGenerator
from rag_analytics.qa.llm import get_llm
from rag_analytics.qa.service import QueryService
from rag_analytics.retrieval import get_vector_store
from rag_analytics.retrieval.retriever import SemanticRetriever

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings
    from langchain_core.runnables import Runnable

    from rag_analytics.config import Settings
    from rag_analytics.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


@dataclass
class Components:
    """The wired application: one store, one embedding model, two pipelines."""

    store: VectorStoreBase
    embeddings: Embeddings
    ingestion: IngestionPipeline
    query_service: QueryService


def build_components(
    settings: Settings,
    *,
    store: VectorStoreBase | None = None,
    embeddings: Embeddings | None = None,
    llm: Runnable | None = None,
    token_counter: Callable[[str], int] | None = None,
) -> Components:
    """Construct every collaborator from *settings*.

    Overrides replace the corresponding production object; an override
    embedding model is still wrapped in :class:`GuardedEmbeddings`.
    """
    if embeddings is None:
        guarded = get_embedding_function(settings)
    elif isinstance(embeddings, GuardedEmbeddings):
        guarded = embeddings
    else:
        guarded = GuardedEmbeddings(embeddings, model_name=settings.embedding_model)

    store = store if store is not None else get_vector_store(settings)

    chunker = TokenChunker(
        settings.chunk_size_tokens,
        settings.chunk_overlap_tokens,
        min_chunk_length=settings.min_chunk_length,
        encoding_name=settings.token_encoding,
        token_counter=token_counter,
    )
    retriever = SemanticRetriever(
        store,
        guarded,
        default_k=settings.retrieval_top_k,
        score_threshold=settings.retrieval_score_threshold,
    )
    generator = AnswerGenerator(llm if llm is not None else get_llm(settings))

    return Components(
        store=store,
        embeddings=guarded,
        ingestion=IngestionPipeline(chunker, guarded, store),
        query_service=QueryService(retriever, generator, top_k=settings.retrieval_top_k),
    )


def run_startup_ingestion(
    components: Components,
    settings: Settings,
    paths: list[str | Path] | None = None,
) -> int:
    """Startup phase: optionally clear the store, then ingest *paths*.

    Falls back to ``settings.document_paths``.  Errors propagate; the
    caller decides the exit code.
    """
    if settings.vectorstore_clear_on_startup:
        logger.info("Clearing collection %r before ingestion", components.store.collection_name)
        components.store.clear()
    targets = paths if paths is not None else list(settings.document_paths)
    return components.ingestion.ingest_all(targets)

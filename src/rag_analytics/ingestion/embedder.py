"""Embedding model construction and failure translation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langchain_core.embeddings import Embeddings

from rag_analytics.errors import EmbeddingServiceError, RAGError, translate_openai_error

if TYPE_CHECKING:
    from rag_analytics.config import Settings

logger = logging.getLogger(__name__)


class GuardedEmbeddings(Embeddings):
    """Wrap any LangChain ``Embeddings`` so every failure is an :class:`EmbeddingServiceError`.

    Ingestion and querying share one instance, which guarantees both sides
    use the same model and dimensionality.
    """

    def __init__(self, inner: Embeddings, *, model_name: str = "unknown") -> None:
        self.inner = inner
        self.model_name = model_name

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            vectors = self.inner.embed_documents(texts)
        except RAGError:
            raise
        except Exception as exc:
            logger.error("Embedding %d texts with %s failed", len(texts), self.model_name, exc_info=True)
            raise translate_openai_error(exc, EmbeddingServiceError, operation="embedding request") from exc
        if len(vectors) != len(texts):
            raise EmbeddingServiceError(
                f"Embedding service returned {len(vectors)} vectors for {len(texts)} texts"
            )
        return vectors

    def embed_query(self, text: str) -> list[float]:
        try:
            vector = self.inner.embed_query(text)
        except RAGError:
            raise
        except Exception as exc:
            logger.error("Embedding query with %s failed", self.model_name, exc_info=True)
            raise translate_openai_error(exc, EmbeddingServiceError, operation="embedding request") from exc
        if not vector:
            raise EmbeddingServiceError("Embedding service returned an empty vector")
        return vector


def get_embedding_function(settings: Settings) -> GuardedEmbeddings:
    """Return the configured embedding model wrapped in :class:`GuardedEmbeddings`.

    ``openai`` (default) talks to the OpenAI API, or to ``llm_base_url``
    when set.  ``huggingface`` runs a local sentence-transformer and
    needs the ``huggingface`` extra.
    """
    if settings.embedding_provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        inner: Embeddings = HuggingFaceEmbeddings(model_name=settings.embedding_model)
    else:
        from langchain_openai import OpenAIEmbeddings

        kwargs: dict = {
            "model": settings.embedding_model,
            "timeout": settings.request_timeout,
            "max_retries": settings.max_retries,
            "api_key": settings.openai_api_key or "EMPTY",
        }
        if settings.llm_base_url:
            logger.info("Using OpenAI-compatible embedding endpoint: %s", settings.llm_base_url)
            kwargs["base_url"] = settings.llm_base_url
        inner = OpenAIEmbeddings(**kwargs)

    return GuardedEmbeddings(inner, model_name=settings.embedding_model)

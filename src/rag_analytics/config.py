"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from rag_analytics.errors import ConfigurationError

DEFAULT_QUESTION = (
    "How did the Federal Reserve's recent interest rate cut impact various "
    "asset classes according to the analysis"
)


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for a local endpoint)")
    chat_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("chat_model", "chat.model"),
        description="Generative model identifier",
    )
    chat_temperature: float = 0.0
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL of an OpenAI-compatible API. Leave empty to use the "
            "OpenAI cloud."
        ),
    )
    request_timeout: float = Field(default=30.0, gt=0, description="Upstream call timeout in seconds")
    max_retries: int = Field(default=0, ge=0, description="Client-side retries for transient upstream failures")

    # Embedding
    embedding_provider: Literal["openai", "huggingface"] = "openai"
    embedding_model: str = "text-embedding-3-small"

    # Vector store
    vectorstore_backend: Literal["chroma", "memory"] = "chroma"
    vectorstore_initialize_schema: bool = Field(
        default=True,
        validation_alias=AliasChoices("vectorstore_initialize_schema", "vectorstore.initialize-schema"),
    )
    vectorstore_clear_on_startup: bool = False
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "rag_analytics"
    chroma_persist_directory: str = ".chroma"

    # Ingestion
    document_paths: list[str] = Field(default_factory=lambda: ["data/documents"])
    chunk_size_tokens: int = Field(default=512, gt=0)
    chunk_overlap_tokens: int = Field(default=64, ge=0)
    min_chunk_length: int = Field(default=5, ge=0)
    token_encoding: str = "cl100k_base"

    # Retrieval
    retrieval_top_k: int = Field(default=4, gt=0)
    retrieval_score_threshold: float = 0.0

    # Serving
    default_question: str = DEFAULT_QUESTION
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "populate_by_name": True}

    def require_credentials(self) -> None:
        """Fail fast when no upstream credential is configured.

        A custom ``llm_base_url`` (self-hosted, OpenAI-compatible server)
        may run without a key.
        """
        if not self.openai_api_key and not self.llm_base_url:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set; export it or point LLM_BASE_URL at an "
                "OpenAI-compatible endpoint"
            )


# Module-level instance used by the CLI; tests build their own.
settings = Settings()

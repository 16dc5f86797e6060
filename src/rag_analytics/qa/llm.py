"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` (vLLM, Ollama,
   Azure proxy …).  ``ChatOpenAI`` works unchanged against any server
   exposing ``/v1/chat/completions``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langchain_openai import ChatOpenAI

if TYPE_CHECKING:
    from rag_analytics.config import Settings

logger = logging.getLogger(__name__)


def get_llm(settings: Settings) -> ChatOpenAI:
    """Return the configured chat model.

    Timeout and retry budget come from settings so an unreachable
    upstream surfaces as an error instead of hanging the request.
    """
    kwargs: dict = {
        "model": settings.chat_model,
        "temperature": settings.chat_temperature,
        "timeout": settings.request_timeout,
        "max_retries": settings.max_retries,
    }

    if settings.llm_base_url:
        logger.info("Using OpenAI-compatible chat endpoint: %s", settings.llm_base_url)
        kwargs["base_url"] = settings.llm_base_url
        # Self-hosted servers rarely check the key; the client requires a non-empty value.
        kwargs["api_key"] = settings.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = settings.openai_api_key

    return ChatOpenAI(**kwargs)

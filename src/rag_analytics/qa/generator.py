"""Send an assembled prompt to the chat model and return its text."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rag_analytics.errors import (
    ContentPolicyError,
    GenerationServiceError,
    RAGError,
    translate_openai_error,
)

if TYPE_CHECKING:
    from langchain_core.runnables import Runnable

    from rag_analytics.qa.prompts import PromptContext

logger = logging.getLogger(__name__)


class AnswerGenerator:
    """Invoke a chat model with a :class:`PromptContext`.

    Parameters
    ----------
    llm:
        Any LangChain runnable that accepts a list of messages and
        returns a message (``ChatOpenAI`` in production).
    """

    def __init__(self, llm: Runnable) -> None:
        self._llm = llm

    def generate(self, prompt: PromptContext) -> str:
        """Return the model's completion verbatim.

        Raises
        ------
        ContentPolicyError
            The model refused, or the request was blocked by a content filter.
        GenerationServiceError
            Any transport, quota, auth or API failure.
        """
        try:
            response = self._llm.invoke(prompt.to_messages())
        except RAGError:
            raise
        except Exception as exc:
            logger.error("Chat completion failed", exc_info=True)
            raise translate_openai_error(exc, GenerationServiceError, operation="chat completion") from exc

        _raise_for_refusal(response)
        content = getattr(response, "content", response)
        if not isinstance(content, str):
            raise GenerationServiceError(f"Unexpected completion payload: {type(content).__name__}")
        return content


def _raise_for_refusal(response: Any) -> None:
    metadata = getattr(response, "response_metadata", None) or {}
    if metadata.get("finish_reason") == "content_filter":
        raise ContentPolicyError("Completion was blocked by the content filter")

    refusal = (getattr(response, "additional_kwargs", None) or {}).get("refusal")
    if refusal:
        raise ContentPolicyError(f"Model refused to answer: {refusal}")

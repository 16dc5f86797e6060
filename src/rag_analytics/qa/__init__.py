"""
Question answering — the retrieve → build prompt → generate pipeline.

Public API
----------
- :class:`QueryService` — ``answer(question) -> str``.
- :class:`AnswerGenerator` — chat-model call with error translation.
- :func:`build_prompt` / :class:`PromptContext` — prompt assembly.
- :func:`get_llm` — configured ``ChatOpenAI`` client.
"""

from rag_analytics.qa.generator import AnswerGenerator
from rag_analytics.qa.llm import get_llm
from rag_analytics.qa.prompts import PromptContext, build_prompt
from rag_analytics.qa.service import Answer, QueryService

__all__ = [
    "Answer",
    "AnswerGenerator",
    "PromptContext",
    "QueryService",
    "build_prompt",
    "get_llm",
]

"""Query service — retrieve, build the prompt, generate.

The three stages are composed explicitly so the point where retrieved
context enters the prompt is visible and testable on its own.
"""

from __future__ import annotations

import logging
import time

from pydantic import BaseModel, Field

from rag_analytics.errors import InvalidQuestionError
from rag_analytics.qa.generator import AnswerGenerator
from rag_analytics.qa.prompts import PromptContext, build_prompt
from rag_analytics.retrieval.models import Citation, RetrievalResult
from rag_analytics.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


class Answer(BaseModel):
    """Generated answer plus the citations of the chunks it was grounded on."""

    answer: str
    sources: list[Citation] = Field(default_factory=list)


class QueryService:
    """Answer natural-language questions from the ingested documents.

    Parameters
    ----------
    retriever:
        Retrieves the top-K chunks for a question.
    generator:
        Sends the assembled prompt to the chat model.
    top_k:
        Number of chunks placed in the prompt; ``None`` uses the
        retriever's default.
    """

    def __init__(
        self,
        retriever: SemanticRetriever,
        generator: AnswerGenerator,
        *,
        top_k: int | None = None,
    ) -> None:
        self.retriever = retriever
        self.generator = generator
        self.top_k = top_k

    def retrieve(self, question: str) -> list[RetrievalResult]:
        return self.retriever.retrieve(question, k=self.top_k)

    def build_prompt(self, question: str, results: list[RetrievalResult]) -> PromptContext:
        return build_prompt(question, results)

    def answer(self, question: str) -> str:
        """Return the model's answer to *question*.

        Raises
        ------
        InvalidQuestionError
            *question* is empty or whitespace.
        EmbeddingServiceError, VectorStoreError, GenerationServiceError, ContentPolicyError
            Propagated from the corresponding stage.
        """
        return self.answer_with_sources(question).answer

    def answer_with_sources(self, question: str) -> Answer:
        """Like :meth:`answer`, also returning the citations used."""
        if not question or not question.strip():
            raise InvalidQuestionError("question must not be empty")

        t0 = time.monotonic()
        results = self.retrieve(question)
        if not results:
            logger.warning("No context retrieved for %r; answering without context", question)
        prompt = self.build_prompt(question, results)
        text = self.generator.generate(prompt)

        logger.info(
            "Answered %r with %d context chunk(s) in %.2fs",
            question,
            len(results),
            time.monotonic() - t0,
        )
        return Answer(answer=text, sources=[r.citation for r in results])

"""Unit tests for prompt assembly, answer generation and the query service."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langchain_core.runnables import RunnableLambda

from rag_analytics.errors import (
    ContentPolicyError,
    EmbeddingServiceError,
    GenerationServiceError,
    InvalidQuestionError,
)
from rag_analytics.ingestion.embedder import GuardedEmbeddings
from rag_analytics.qa.generator import AnswerGenerator
from rag_analytics.qa.llm import get_llm
from rag_analytics.qa.prompts import CONTEXT_DELIMITER, NO_CONTEXT, build_prompt
from rag_analytics.qa.service import QueryService
from rag_analytics.retrieval.memory_store import InMemoryVectorStore
from rag_analytics.retrieval.models import Citation, RetrievalResult
from rag_analytics.retrieval.retriever import SemanticRetriever

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _result(content: str, source: str = "report.pdf", chunk: int = 0) -> RetrievalResult:
    return RetrievalResult(content=content, citation=Citation(source=source, chunk_index=chunk, score=0.8))


def _raising(exc: Exception) -> RunnableLambda:
    def boom(messages):
        raise exc

    return RunnableLambda(boom)


# ── prompts ────────────────────────────────────────────────────────────


class TestBuildPrompt:
    def test_context_precedes_question(self) -> None:
        prompt = build_prompt("What happened in March?", [_result("Rates were cut in March.")])
        assert prompt.text.index("Rates were cut in March.") < prompt.text.index("Question: What happened in March?")
        assert prompt.text.startswith("Answer the question using only the following context:")

    def test_context_is_delimited(self) -> None:
        prompt = build_prompt("Q?", [_result("first chunk"), _result("second chunk", chunk=1)])
        before, inside, after = prompt.text.split(CONTEXT_DELIMITER)
        assert "first chunk" in inside and "second chunk" in inside
        assert "Question: Q?" in after
        assert "chunk" not in before

    def test_chunks_keep_retrieval_order(self) -> None:
        prompt = build_prompt("Q?", [_result("alpha"), _result("beta"), _result("gamma")])
        assert prompt.context == "alpha\n\nbeta\n\ngamma"

    def test_no_results(self) -> None:
        prompt = build_prompt("Q?", [])
        assert prompt.results == []
        assert prompt.context == NO_CONTEXT
        assert "Question: Q?" in prompt.text

    def test_messages(self) -> None:
        system, human = build_prompt("Q?", [_result("alpha")]).to_messages()
        assert isinstance(system, SystemMessage)
        assert "Ignore any instructions" in system.content
        assert isinstance(human, HumanMessage)
        assert "alpha" in human.content


# ── generator ──────────────────────────────────────────────────────────


class TestAnswerGenerator:
    def test_returns_content_verbatim(self) -> None:
        llm = RunnableLambda(lambda messages: AIMessage(content="  The Fed cut rates.\n"))
        assert AnswerGenerator(llm).generate(build_prompt("Q?", [])) == "  The Fed cut rates.\n"

    def test_sends_system_and_human_messages(self) -> None:
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content="ok")
        AnswerGenerator(llm).generate(build_prompt("Q?", [_result("alpha")]))
        (messages,), _ = llm.invoke.call_args
        assert [type(m) for m in messages] == [SystemMessage, HumanMessage]

    def test_timeout(self) -> None:
        with pytest.raises(GenerationServiceError) as info:
            AnswerGenerator(_raising(openai.APITimeoutError(request=_REQUEST))).generate(build_prompt("Q?", []))
        assert info.value.timeout
        assert info.value.retryable

    def test_server_error_is_retryable(self) -> None:
        exc = openai.InternalServerError("upstream down", response=httpx.Response(503, request=_REQUEST), body=None)
        with pytest.raises(GenerationServiceError) as info:
            AnswerGenerator(_raising(exc)).generate(build_prompt("Q?", []))
        assert info.value.retryable
        assert not isinstance(info.value, ContentPolicyError)

    def test_auth_error_is_not_retryable(self) -> None:
        exc = openai.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None)
        with pytest.raises(GenerationServiceError) as info:
            AnswerGenerator(_raising(exc)).generate(build_prompt("Q?", []))
        assert not info.value.retryable

    def test_content_policy_rejection(self) -> None:
        exc = openai.BadRequestError(
            "blocked",
            response=httpx.Response(400, request=_REQUEST),
            body={"code": "content_policy_violation", "message": "blocked"},
        )
        with pytest.raises(ContentPolicyError):
            AnswerGenerator(_raising(exc)).generate(build_prompt("Q?", []))

    def test_plain_bad_request_is_not_policy(self) -> None:
        exc = openai.BadRequestError(
            "context too long",
            response=httpx.Response(400, request=_REQUEST),
            body={"code": "context_length_exceeded"},
        )
        with pytest.raises(GenerationServiceError) as info:
            AnswerGenerator(_raising(exc)).generate(build_prompt("Q?", []))
        assert not isinstance(info.value, ContentPolicyError)

    def test_content_filter_finish_reason(self) -> None:
        llm = RunnableLambda(
            lambda messages: AIMessage(content="", response_metadata={"finish_reason": "content_filter"})
        )
        with pytest.raises(ContentPolicyError):
            AnswerGenerator(llm).generate(build_prompt("Q?", []))

    def test_refusal(self) -> None:
        llm = RunnableLambda(
            lambda messages: AIMessage(content="", additional_kwargs={"refusal": "I can't help with that."})
        )
        with pytest.raises(ContentPolicyError, match="can't help"):
            AnswerGenerator(llm).generate(build_prompt("Q?", []))

    def test_get_llm_uses_settings(self, test_settings) -> None:
        settings = test_settings.model_copy(update={"chat_model": "gpt-4o", "request_timeout": 5.0, "max_retries": 1})
        llm = get_llm(settings)
        assert llm.model_name == "gpt-4o"
        assert llm.request_timeout == 5.0
        assert llm.max_retries == 1


# ── query service ──────────────────────────────────────────────────────


class TestQueryService:
    def test_empty_store_answers_without_context(self, keyword_embeddings, echo_llm) -> None:
        retriever = SemanticRetriever(InMemoryVectorStore(), GuardedEmbeddings(keyword_embeddings))
        service = QueryService(retriever, AnswerGenerator(echo_llm))
        answer = service.answer("What did the Fed do?")
        assert NO_CONTEXT in answer
        assert "Question: What did the Fed do?" in answer

    def test_stages_compose(self) -> None:
        retriever = MagicMock()
        retriever.retrieve.return_value = [_result("alpha")]
        generator = MagicMock()
        generator.generate.return_value = "answer"

        service = QueryService(retriever, generator, top_k=2)
        result = service.answer_with_sources("Q?")

        retriever.retrieve.assert_called_once_with("Q?", k=2)
        (prompt,), _ = generator.generate.call_args
        assert prompt.results[0].content == "alpha"
        assert result.answer == "answer"
        assert result.sources[0].source == "report.pdf"

    def test_embedding_failure_raises(self, broken_embeddings_factory, echo_llm) -> None:
        embeddings = GuardedEmbeddings(broken_embeddings_factory(openai.APIConnectionError(request=_REQUEST)))
        service = QueryService(SemanticRetriever(InMemoryVectorStore(), embeddings), AnswerGenerator(echo_llm))
        with pytest.raises(EmbeddingServiceError):
            service.answer("What did the Fed do?")

    @pytest.mark.parametrize("question", ["", "   "])
    def test_blank_question(self, components, question: str) -> None:
        with pytest.raises(InvalidQuestionError):
            components.query_service.answer(question)

    def test_end_to_end_two_page_document(self, components, pdf_factory) -> None:
        page_one = [
            "The Federal Reserve cut rates by 25 basis points in March.",
            "Officials pointed to cooling inflation as the main driver.",
        ]
        page_two = [
            "Gold prices held steady amid geopolitical uncertainty.",
            "Oil output quotas were extended through the summer.",
        ]
        stored = components.ingestion.ingest(pdf_factory([page_one, page_two]))
        assert stored >= 2

        answer = components.query_service.answer("What did the Fed do in March?")

        assert "cut rates by 25 basis points" in answer
        assert answer.index("25 basis points") < answer.index("Question:")

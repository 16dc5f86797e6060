"""FastAPI application exposing the query service over HTTP."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from rag_analytics.errors import InvalidQuestionError, RAGError, UpstreamServiceError, VectorStoreError
from rag_analytics.qa.service import QueryService
from rag_analytics.retrieval.models import Citation

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class QueryRequest(BaseModel):
    """Incoming question from the user."""

    query: str


class QueryResponse(BaseModel):
    """Answer returned by the service."""

    answer: str
    sources: list[Citation] = []


# ── Error mapping ─────────────────────────────────────────────────────
def _status_for(exc: RAGError) -> int:
    if isinstance(exc, InvalidQuestionError):
        return 400
    if isinstance(exc, UpstreamServiceError):
        return 504 if exc.timeout else 502
    if isinstance(exc, VectorStoreError):
        return 503
    return 500


async def _rag_error_handler(request: Request, exc: RAGError) -> JSONResponse:
    status = _status_for(exc)
    logger.warning("%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(
        status_code=status,
        content={"error": exc.code, "detail": str(exc)},
        headers={"X-Error-Code": exc.code},
    )


# ── Dependencies ──────────────────────────────────────────────────────
def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def create_app(query_service: QueryService, *, default_question: str = "") -> FastAPI:
    """Build the API around an already-wired :class:`QueryService`.

    Ingestion is not triggered here; the process driver runs it before
    serving (see :mod:`rag_analytics.cli`).
    """
    app = FastAPI(
        title="RAG Analytics API",
        version="0.1.0",
        description="Answers questions from ingested PDF documents.",
    )
    app.state.query_service = query_service
    app.state.default_question = default_question
    app.add_exception_handler(RAGError, _rag_error_handler)  # type: ignore[arg-type]

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/", response_class=PlainTextResponse)
    def ask(
        request: Request,
        q: str | None = Query(default=None, description="Question to answer"),
        service: QueryService = Depends(get_query_service),
    ) -> str:
        """Answer *q* (or the configured default question) as plain text."""
        question = q if q is not None else request.app.state.default_question
        return _answer(service, question).answer

    @app.post("/query", response_model=QueryResponse)
    def query(body: QueryRequest, service: QueryService = Depends(get_query_service)) -> QueryResponse:
        """Answer a question and list the chunks it was grounded on."""
        result = _answer(service, body.query)
        return QueryResponse(answer=result.answer, sources=result.sources)

    @app.get("/health")
    def health(service: QueryService = Depends(get_query_service)) -> JSONResponse:
        """Liveness / readiness probe."""
        store = service.retriever.store
        if not store.health_check():
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return JSONResponse(content={"status": "ok", "records": store.count()})

    return app


def _answer(service: QueryService, question: str):  # noqa: ANN202
    if not question or not question.strip():
        raise InvalidQuestionError("question must not be empty")
    return service.answer_with_sources(question)

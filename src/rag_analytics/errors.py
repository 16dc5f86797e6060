"""Exception hierarchy shared by every layer.

Library exceptions (``openai``, ``chromadb``, ``pypdf`` …) are translated
into these types at the seam where the library is called, so callers
only ever need to handle :class:`RAGError` subclasses.
"""

from __future__ import annotations

import httpx
import openai


class RAGError(Exception):
    """Base class for all application errors.

    Attributes
    ----------
    code:
        Short machine-readable identifier, surfaced by the HTTP layer.
    """

    code = "rag_error"


class ConfigurationError(RAGError):
    """Required configuration (credentials, paths …) is missing or invalid."""

    code = "configuration"


class DocumentReadError(RAGError):
    """A source document is missing or could not be parsed."""

    code = "document_read"


class InvalidQuestionError(RAGError, ValueError):
    """The question is empty or whitespace only."""

    code = "invalid_question"


class VectorStoreError(RAGError):
    """An insert or query against the vector store failed."""

    code = "vector_store"


class UpstreamServiceError(RAGError):
    """A call to a hosted model API failed.

    Attributes
    ----------
    retryable:
        ``True`` for transient failures (timeouts, connection resets,
        429 / 5xx responses); ``False`` for auth, quota and validation
        failures that will not succeed on retry.
    timeout:
        ``True`` when the call exceeded the configured timeout.
    """

    code = "upstream"

    def __init__(self, message: str, *, retryable: bool = False, timeout: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.timeout = timeout


class EmbeddingServiceError(UpstreamServiceError):
    """The embedding model call failed."""

    code = "embedding_service"


class GenerationServiceError(UpstreamServiceError):
    """The chat-completion call failed."""

    code = "generation_service"


class ContentPolicyError(GenerationServiceError):
    """The upstream model refused to answer."""

    code = "content_policy"


def translate_openai_error(
    exc: Exception,
    error_cls: type[UpstreamServiceError],
    *,
    operation: str,
) -> UpstreamServiceError:
    """Map an ``openai`` / ``httpx`` exception onto *error_cls*.

    Content-policy rejections are mapped to :class:`ContentPolicyError`
    when *error_cls* is a generation error. The returned exception is not
    raised; callers do ``raise translate_openai_error(...) from exc``.
    """
    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException)):
        return error_cls(f"{operation} timed out", retryable=True, timeout=True)
    if isinstance(exc, (openai.APIConnectionError, httpx.TransportError)):
        return error_cls(f"{operation} could not reach the service: {exc}", retryable=True)
    if isinstance(exc, openai.BadRequestError) and _is_policy_code(exc.code):
        if issubclass(error_cls, GenerationServiceError):
            return ContentPolicyError(f"{operation} rejected by content policy: {exc.message}")
    if isinstance(exc, openai.RateLimitError):
        # insufficient_quota is a hard stop, plain 429 is transient
        retryable = exc.code != "insufficient_quota"
        return error_cls(f"{operation} rate limited: {exc.message}", retryable=retryable)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return error_cls(f"{operation} not authorised: {exc.message}")
    if isinstance(exc, openai.APIStatusError):
        return error_cls(
            f"{operation} failed with HTTP {exc.status_code}: {exc.message}",
            retryable=exc.status_code >= 500,
        )
    return error_cls(f"{operation} failed: {exc}")


def _is_policy_code(code: str | None) -> bool:
    return code in {"content_policy_violation", "content_filter"}

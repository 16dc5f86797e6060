"""Domain models for stored vectors, retrieval results and citations."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class MetadataFilter(BaseModel):
    """Declarative metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"source"``, ``"page"``).
    operator:
        Comparison operator — one of ``eq``, ``ne``, ``in``, ``nin``.
    value:
        The value (or list of values for ``in`` / ``nin``) to compare against.
    """

    field: str
    operator: str = "eq"
    value: Any = None

    # -- helpers for common filters ------------------------------------------

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def not_equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="ne", value=value)

    @classmethod
    def one_of(cls, field: str, values: list[Any]) -> MetadataFilter:
        return cls(field=field, operator="in", value=values)

    def matches(self, metadata: dict[str, Any]) -> bool:
        """Evaluate the filter against a metadata dict in Python."""
        actual = metadata.get(self.field)
        if self.operator == "eq":
            return actual == self.value
        if self.operator == "ne":
            return actual != self.value
        if self.operator == "in":
            return actual in self.value
        if self.operator == "nin":
            return actual not in self.value
        raise ValueError(f"Unsupported filter operator: {self.operator!r}")


class VectorRecord(BaseModel):
    """One stored row: chunk text, its embedding and its metadata.

    Records are never updated in place; re-ingesting a document appends
    new records.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def dimension(self) -> int:
        return len(self.embedding)


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source document.

    Attributes
    ----------
    document_id:
        The vector-store ID of the chunk (``None`` when unknown).
    source:
        Human-readable source locator, usually the PDF path.
    page:
        Zero-based page number inside the source PDF.
    chunk_index:
        Ordinal position of the chunk within its ingestion run.
    score:
        Cosine similarity returned by the vector store (higher = closer).
    metadata:
        Full metadata attached to the stored record.
    """

    document_id: str | None = None
    source: str = "unknown"
    page: int | None = None
    chunk_index: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def short_ref(self) -> str:
        """Return a compact ``[source p.N §chunk]`` reference string."""
        chunk = self.chunk_index if self.chunk_index is not None else "?"
        if self.page is None:
            return f"[{self.source}§{chunk}]"
        return f"[{self.source} p.{self.page + 1}§{chunk}]"


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation

    @property
    def score(self) -> float | None:
        return self.citation.score

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"

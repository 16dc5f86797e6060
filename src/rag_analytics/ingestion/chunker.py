"""Token-bounded text chunking."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Any, Callable

from langchain_text_splitters import RecursiveCharacterTextSplitter
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)

# paragraph → line → sentence → word → character
SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


class Chunk(BaseModel):
    """A bounded span of document text, the unit of embedding and retrieval."""

    model_config = ConfigDict(frozen=True)

    text: str
    token_count: int
    metadata: dict[str, Any] = Field(default_factory=dict)


def tiktoken_counter(encoding_name: str = "cl100k_base") -> Callable[[str], int]:
    """Return a function counting ``tiktoken`` tokens for *encoding_name*."""
    import tiktoken

    encoding = tiktoken.get_encoding(encoding_name)

    def count(text: str) -> int:
        return len(encoding.encode(text, disallowed_special=()))

    return count


def document_id(source: str) -> str:
    """Stable identifier for a source path."""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:16]


class TokenChunker:
    """Split documents into chunks of at most ``chunk_size`` tokens.

    Splitting prefers paragraph, then line, then sentence boundaries and
    only falls back to word and character cuts when a unit is itself too
    long.  The bound is checked on every emitted chunk; a merged chunk
    whose token count drifts above it (tokenisation is not additive) is
    re-cut on word boundaries.

    Parameters
    ----------
    chunk_size:
        Maximum number of tokens per chunk.
    chunk_overlap:
        Tokens shared by consecutive chunks of the same page.
    min_chunk_length:
        Chunks whose stripped text is shorter than this many characters
        are discarded.
    encoding_name:
        ``tiktoken`` encoding used for counting.
    token_counter:
        Custom counting function; overrides *encoding_name*.
    """

    def __init__(
        self,
        chunk_size: int = 512,
        chunk_overlap: int = 64,
        *,
        min_chunk_length: int = 5,
        encoding_name: str = "cl100k_base",
        token_counter: Callable[[str], int] | None = None,
    ) -> None:
        if chunk_overlap >= chunk_size:
            raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunk_length = min_chunk_length
        self.count_tokens = token_counter or tiktoken_counter(encoding_name)
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=self.count_tokens,
            separators=SEPARATORS,
            keep_separator="end",
            add_start_index=True,
        )

    def split_documents(self, documents: list[Document]) -> list[Chunk]:
        """Split page-level *documents* into :class:`Chunk` objects.

        Page metadata (``source``, ``page`` …) is carried over; each chunk
        also gets ``doc_id``, ``chunk_index`` and ``start_index``.
        """
        chunks: list[Chunk] = []
        for piece in self._splitter.split_documents(documents):
            base_offset = piece.metadata.get("start_index", 0)
            for text in self._enforce_bound(piece.page_content):
                if len(text.strip()) < self.min_chunk_length:
                    continue
                metadata = dict(piece.metadata)
                source = str(metadata.get("source", ""))
                if source:
                    metadata["doc_id"] = document_id(source)
                metadata["chunk_index"] = len(chunks)
                metadata["start_index"] = base_offset + max(piece.page_content.find(text), 0)
                chunks.append(Chunk(text=text, token_count=self.count_tokens(text), metadata=metadata))

        logger.info("Split %d page(s) into %d chunk(s)", len(documents), len(chunks))
        return chunks

    def split_text(self, text: str) -> list[str]:
        """Split a bare string; convenience for callers without documents."""
        return [
            piece
            for raw in self._splitter.split_text(text)
            for piece in self._enforce_bound(raw)
            if len(piece.strip()) >= self.min_chunk_length
        ]

    # -- internals ------------------------------------------------------------

    def _enforce_bound(self, text: str) -> list[str]:
        if self.count_tokens(text) <= self.chunk_size:
            return [text]
        logger.debug("Re-cutting a %d-token chunk", self.count_tokens(text))
        return self._hard_split(text)

    def _hard_split(self, text: str) -> list[str]:
        pieces: list[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if self.count_tokens(candidate) <= self.chunk_size:
                current = candidate
                continue
            if current:
                pieces.append(current)
            if self.count_tokens(word) <= self.chunk_size:
                current = word
            else:
                *full, current = self._split_chars(word)
                pieces.extend(full)
        if current:
            pieces.append(current)
        return pieces

    def _split_chars(self, word: str) -> list[str]:
        pieces: list[str] = []
        current = ""
        for char in word:
            if current and self.count_tokens(current + char) > self.chunk_size:
                pieces.append(current)
                current = char
            else:
                current += char
        pieces.append(current)
        return pieces

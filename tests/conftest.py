"""Shared pytest configuration and fixtures.

Nothing here touches the network: embeddings are a deterministic
keyword hash, the chat model echoes its prompt, and token counting is
whitespace-based.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import Any, Callable

import pytest
from langchain_core.embeddings import Embeddings
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

from rag_analytics.bootstrap import Components, build_components
from rag_analytics.config import Settings
from rag_analytics.retrieval.memory_store import InMemoryVectorStore

EMBEDDING_DIM = 256

_STOPWORDS = {
    "a", "an", "and", "as", "at", "by", "did", "do", "for", "how", "in",
    "is", "it", "of", "on", "the", "to", "was", "were", "what", "with",
}


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ─────────────────────────────────────────────────────────────


class KeywordEmbeddings(Embeddings):
    """Bag of 3-letter word stems hashed into a fixed-size vector.

    Texts sharing content words ("Fed" / "Federal", "March") end up
    close in cosine space, which is enough for deterministic retrieval
    tests.
    """

    def __init__(self, dim: int = EMBEDDING_DIM) -> None:
        self.dim = dim
        self.document_calls = 0
        self.query_calls = 0

    def _embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dim
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            if word in _STOPWORDS:
                continue
            stem = word[:3]
            vector[int(hashlib.md5(stem.encode()).hexdigest(), 16) % self.dim] += 1.0
        return vector

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls += 1
        return [self._embed(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls += 1
        return self._embed(text)


class BrokenEmbeddings(Embeddings):
    """Raises *exc* on every call."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        raise self.exc

    def embed_query(self, text: str) -> list[float]:
        raise self.exc


def whitespace_tokens(text: str) -> int:
    return len(text.split())


def _echo(messages: list[Any]) -> AIMessage:
    return AIMessage(content=messages[-1].content)


def write_pdf(path: Path, pages: list[list[str]]) -> Path:
    """Write a minimal but valid PDF with one text line per list item."""

    def esc(line: str) -> str:
        return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")

    page_ids = [4 + 2 * i for i in range(len(pages))]
    objects: dict[int, bytes] = {
        1: b"<< /Type /Catalog /Pages 2 0 R >>",
        2: (
            f"<< /Type /Pages /Kids [{' '.join(f'{p} 0 R' for p in page_ids)}] "
            f"/Count {len(pages)} >>"
        ).encode(),
        3: b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    for page_id, lines in zip(page_ids, pages):
        body = " ".join(f"({esc(line)}) Tj T*" for line in lines)
        stream = f"BT /F1 12 Tf 14 TL 72 720 Td {body} ET".encode("latin-1")
        objects[page_id] = (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
        ).encode()
        objects[page_id + 1] = (
            f"<< /Length {len(stream)} >>\nstream\n".encode() + stream + b"\nendstream"
        )

    out = bytearray(b"%PDF-1.4\n")
    offsets: dict[int, int] = {}
    for obj_id in sorted(objects):
        offsets[obj_id] = len(out)
        out += f"{obj_id} 0 obj\n".encode() + objects[obj_id] + b"\nendobj\n"

    xref_at = len(out)
    size = max(objects) + 1
    out += f"xref\n0 {size}\n0000000000 65535 f \n".encode()
    for obj_id in range(1, size):
        out += f"{offsets[obj_id]:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {size} /Root 1 0 R >>\nstartxref\n{xref_at}\n%%EOF\n".encode()

    path.write_bytes(bytes(out))
    return path


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def keyword_embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture()
def echo_llm() -> RunnableLambda:
    """Chat-model stand-in that answers with the prompt it received."""
    return RunnableLambda(_echo)


@pytest.fixture()
def token_counter() -> Callable[[str], int]:
    return whitespace_tokens


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        vectorstore_backend="memory",
        chunk_size_tokens=40,
        chunk_overlap_tokens=5,
        retrieval_top_k=4,
    )


@pytest.fixture()
def components(
    test_settings: Settings,
    keyword_embeddings: KeywordEmbeddings,
    echo_llm: RunnableLambda,
) -> Components:
    return build_components(
        test_settings,
        store=InMemoryVectorStore(),
        embeddings=keyword_embeddings,
        llm=echo_llm,
        token_counter=whitespace_tokens,
    )


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    """``pdf_factory(pages, name="doc.pdf")`` writes a PDF under ``tmp_path``."""

    def make(pages: list[list[str]], name: str = "doc.pdf") -> Path:
        return write_pdf(tmp_path / name, pages)

    return make


@pytest.fixture()
def broken_embeddings_factory() -> Callable[[Exception], BrokenEmbeddings]:
    return BrokenEmbeddings

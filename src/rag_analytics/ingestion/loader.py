"""PDF loading — a thin wrapper around LangChain's ``PyPDFLoader``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_community.document_loaders import PyPDFLoader

from rag_analytics.errors import DocumentReadError

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)


def load_pdf(path: str | Path) -> list[Document]:
    """Load a single PDF file, one ``Document`` per page.

    Raises
    ------
    DocumentReadError
        If *path* does not exist, is not a file, or cannot be parsed.
    """
    path = Path(path)
    if not path.is_file():
        raise DocumentReadError(f"Document not found: {path}")
    try:
        pages = PyPDFLoader(str(path)).load()
    except Exception as exc:
        raise DocumentReadError(f"Could not parse PDF {path}: {exc}") from exc
    logger.info("Loaded %d page(s) from %s", len(pages), path)
    return pages


def expand_paths(paths: list[str | Path], glob: str = "**/*.pdf") -> list[Path]:
    """Resolve files and directories into a sorted list of PDF files.

    Directories are searched recursively with *glob*.  Missing paths and
    directories without any PDF raise :class:`DocumentReadError`.
    """
    resolved: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found = sorted(p for p in path.glob(glob) if p.is_file())
            if not found:
                raise DocumentReadError(f"No PDF documents under {path}")
            resolved.extend(found)
        elif path.is_file():
            resolved.append(path)
        else:
            raise DocumentReadError(f"Document not found: {path}")
    return resolved

"""
Ingestion — document loading, chunking, and embedding into the vector store.

Converts PDF documents into token-bounded chunks, embeds them, and
writes one batch of records per document into the configured store.
"""

from rag_analytics.ingestion.chunker import Chunk, TokenChunker
from rag_analytics.ingestion.embedder import GuardedEmbeddings, get_embedding_function
from rag_analytics.ingestion.loader import expand_paths, load_pdf
from rag_analytics.ingestion.pipeline import IngestionPipeline

__all__ = [
    "Chunk",
    "GuardedEmbeddings",
    "IngestionPipeline",
    "TokenChunker",
    "expand_paths",
    "get_embedding_function",
    "load_pdf",
]

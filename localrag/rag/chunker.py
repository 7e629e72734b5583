"""Text chunking with overlap for RAG pipeline.

Implements fixed-size character windows to avoid tokenizer dependencies.
Python strings index by code point, so a window never splits a multi-byte
character.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import structlog

from localrag import config
from localrag.rag.errors import InvalidArgumentError
from localrag.rag.models import Chunk, Document

logger = structlog.get_logger()


@dataclass
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


def _validate_window(chunk_size, chunk_overlap) -> None:
    """Reject window settings that would never advance."""
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise InvalidArgumentError(
            f"Chunk size must be an integer, got {type(chunk_size).__name__}"
        )
    if isinstance(chunk_overlap, bool) or not isinstance(chunk_overlap, int):
        raise InvalidArgumentError(
            f"Overlap must be an integer, got {type(chunk_overlap).__name__}"
        )
    if chunk_size <= 0:
        raise InvalidArgumentError(f"Chunk size must be positive, got {chunk_size}")
    if chunk_overlap < 0:
        raise InvalidArgumentError(f"Overlap must not be negative, got {chunk_overlap}")
    if chunk_overlap >= chunk_size:
        raise InvalidArgumentError(
            f"Overlap ({chunk_overlap}) must be less than "
            f"chunk size ({chunk_size})"
        )


def _windows(text: str, chunk_size: int, chunk_overlap: int) -> List[Tuple[int, int]]:
    """Compute ``(start, end)`` offsets of every window over ``text``."""
    text_length = len(text)
    step = chunk_size - chunk_overlap
    windows = []
    start = 0

    while start < text_length:
        end = min(start + chunk_size, text_length)
        windows.append((start, end))
        if end == text_length:
            break
        start += step

    return windows


def chunk_text(text: str, chunk_size: int, chunk_overlap: int = 0) -> List[str]:
    """Split text into overlapping fixed-size windows.

    Windows start at 0 and advance by ``chunk_size - chunk_overlap``; the
    last one may be shorter than ``chunk_size``. An overlap of
    ``chunk_size - 1`` is legal but advances one character per window, so
    it produces roughly one chunk per character of input.

    Args:
        text: Text to chunk (empty text yields no chunks)
        chunk_size: Window size in characters, must be positive
        chunk_overlap: Characters repeated at the start of the next window,
            ``0 <= chunk_overlap < chunk_size``

    Returns:
        Chunk contents in document order

    Raises:
        InvalidArgumentError: If text is not a string or the window settings
            are invalid
    """
    if not isinstance(text, str):
        raise InvalidArgumentError(f"Text must be a string, got {type(text).__name__}")
    _validate_window(chunk_size, chunk_overlap)

    return [text[start:end] for start, end in _windows(text, chunk_size, chunk_overlap)]


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)

        Raises:
            InvalidArgumentError: If the settings would never advance
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        _validate_window(self.chunk_size, self.chunk_overlap)

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into overlapping chunks.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects

        Raises:
            InvalidArgumentError: If text is not a string
        """
        if not isinstance(text, str):
            raise InvalidArgumentError(f"Text must be a string, got {type(text).__name__}")

        return [
            TextChunk(
                content=text[start:end],
                char_start=start,
                char_end=end,
                chunk_index=chunk_index,
            )
            for chunk_index, (start, end) in enumerate(
                _windows(text, self.chunk_size, self.chunk_overlap)
            )
        ]

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "overlap": self.chunk_overlap,
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }


# Singleton instance for convenience
_chunker_instance = None


def get_chunker() -> TextChunker:
    """Get a singleton text chunker instance.

    Returns:
        TextChunker instance with default config
    """
    global _chunker_instance
    if _chunker_instance is None:
        _chunker_instance = TextChunker()
    return _chunker_instance


def chunk_documents(
    documents: Iterable[Document], chunker: Optional[TextChunker] = None
) -> List[Chunk]:
    """Chunk every document into ``Chunk`` records.

    Records come out in input-document order, then chunk order; ids are
    ``<document id>_<chunk index>`` with indices restarting at 0 per document.

    Args:
        documents: Documents to chunk
        chunker: Chunker carrying the window settings (default: shared
            instance built from config)

    Returns:
        List of Chunk records
    """
    chunker = chunker or get_chunker()
    chunks = []

    for doc in documents:
        for piece in chunker.chunk_text(doc.content):
            chunks.append(
                Chunk(
                    id=f"{doc.id}_{piece.chunk_index}",
                    content=piece.content,
                    source_document_id=doc.id,
                    chunk_index=piece.chunk_index,
                    char_start=piece.char_start,
                    char_end=piece.char_end,
                    source_label=doc.source_label,
                )
            )

    logger.debug(
        "documents_chunked",
        chunk_size=chunker.chunk_size,
        chunk_overlap=chunker.chunk_overlap,
        chunk_count=len(chunks),
    )

    return chunks

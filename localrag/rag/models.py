"""Records passed between the chunker, the stores and the prompt assembler."""
import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Document:
    """A raw text document supplied by the caller."""

    id: str
    content: str
    source: Optional[str] = None

    @property
    def source_label(self) -> str:
        """Human readable origin of the document (defaults to its id)."""
        return self.source or self.id


@dataclass(frozen=True)
class Chunk:
    """A contiguous window of a document's text.

    ``char_start``/``char_end`` are code point offsets into the parent
    document's content, so ``content == parent.content[char_start:char_end]``.
    """

    id: str
    content: str
    source_document_id: str
    chunk_index: int
    char_start: int = 0
    char_end: int = 0
    source_label: Optional[str] = None


@dataclass
class RetrievedItem:
    """A stored chunk returned by a similarity search."""

    id: str
    content: str
    source_document_id: Optional[str] = None
    distance: Optional[float] = None
    source_label: Optional[str] = None

    @property
    def similarity_score(self) -> Optional[float]:
        """Convert L2 distance to a 0-1 similarity score.

        Lower distance = higher similarity. Returns None when the search
        collaborator supplied no distance.
        """
        if self.distance is None:
            return None
        return math.exp(-self.distance / 2.0)

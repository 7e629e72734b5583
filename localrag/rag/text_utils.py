"""Text normalisation helpers used ahead of chunking."""
import random
import re
import string
import time
from typing import Optional

_WHITESPACE_RE = re.compile(r"\s+")
_ID_ALPHABET = string.digits + string.ascii_lowercase


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace so chunk boundaries don't depend on formatting.

    Every run of whitespace (spaces, tabs, newlines, and therefore blank
    lines) becomes a single space and the ends are trimmed. ``None`` or an
    empty string yields ``""``. Applying it twice changes nothing.

    Args:
        text: Raw document text

    Returns:
        Normalised text
    """
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def generate_document_id(filename: str = "") -> str:
    """Generate a unique document id such as ``doc_1718000000000_k3j9x0a1b``.

    The filename is accepted for call-site readability only; ids are not
    derived from it, so re-ingesting a renamed file never collides.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"doc_{millis}_{suffix}"

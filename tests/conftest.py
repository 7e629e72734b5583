"""Pytest configuration and fixtures for unit tests."""
from typing import List

import pytest

from localrag import config, db

# Test configuration
EMBEDDING_KEYWORDS = [
    "machine",
    "learning",
    "vector",
    "database",
    "language",
    "model",
    "intelligence",
    "ollama",
]


def keyword_embedding(text: str) -> List[float]:
    """Deterministic embedding: one dimension per keyword present in the text."""
    lowered = text.lower()
    return [1.0 if keyword in lowered else 0.0 for keyword in EMBEDDING_KEYWORDS]


class FakeEmbedder:
    """Stands in for the Ollama client's embedding calls."""

    def __init__(self):
        self.embedded: List[str] = []
        self.batch_calls = 0

    async def embed(self, text, model=None):
        self.embedded.append(text)
        return keyword_embedding(text)

    async def embed_batch(self, texts, model=None):
        self.batch_calls += 1
        self.embedded.extend(texts)
        return [keyword_embedding(text) for text in texts]


class FakeGenerator:
    """Stands in for the Ollama client's generate call."""

    def __init__(self, answer: str = "Machine learning lets computers learn from data."):
        self.answer = answer
        self.prompts: List[str] = []

    async def generate(self, prompt, model=None):
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture
def storage(tmp_path, monkeypatch):
    """Point the chunk database, index and documents at a temporary directory."""
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "db" / "test.sqlite")
    monkeypatch.setattr(config, "DATA_DIR", tmp_path / "db")
    monkeypatch.setattr(config, "DOCUMENTS_DIR", tmp_path / "data")
    return tmp_path


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def sample_documents():
    """Sample documents mirroring a tiny knowledge base."""
    from localrag.rag.models import Document

    return [
        Document(
            id="doc_1",
            content="AI or artificial intelligence is a field of computer science "
            "that aims to create intelligent machines.",
        ),
        Document(
            id="doc_2",
            content="ML or machine learning is a subset of AI that lets computers "
            "learn from data.",
        ),
        Document(
            id="doc_3",
            content="A vector database stores embeddings for similarity search.",
        ),
    ]

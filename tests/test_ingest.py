"""Tests for the ingest pipeline with a fake embedder and a real index."""
import pytest

from localrag import db
from localrag.rag.chunker import TextChunker
from localrag.rag.errors import InvalidArgumentError
from localrag.rag.ingest import IngestPipeline
from localrag.rag.models import Chunk, Document
from localrag.rag.retriever import Retriever
from localrag.rag.store_faiss import FAISSVectorStore

from conftest import FakeEmbedder


@pytest.fixture
def pipeline(storage, embedder):
    store = FAISSVectorStore(index_dir=storage / "db", embedder=embedder)
    return IngestPipeline(
        documents_dir=storage / "data",
        embedder=embedder,
        vector_store=store,
        chunker=TextChunker(chunk_size=300, chunk_overlap=30),
        batch_size=2,
    )


def write_documents(directory, files):
    directory.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        path = directory / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")


async def test_add_documents_stores_vectors_and_records(pipeline, sample_documents):
    stored = await pipeline.add_documents(sample_documents)

    assert stored == 3
    assert pipeline.vector_store.vector_count == 3
    assert db.get_chunk_count() == 3
    assert pipeline.stats["embeddings_generated"] == 3


async def test_chunks_are_split_into_batches(pipeline, embedder):
    pipeline.chunker = TextChunker(chunk_size=50, chunk_overlap=10)
    document = Document(id="long", content="machine learning " * 12)

    stored = await pipeline.add_documents([document])

    # 204 characters with 50/10 windows
    assert stored == 5
    assert embedder.batch_calls == 3
    records = db.get_chunks_by_vector_ids(list(range(stored)))
    assert sorted(r["chunk_id"] for r in records) == [f"long_{i}" for i in range(5)]


async def test_readding_a_document_replaces_its_chunks(pipeline, sample_documents):
    await pipeline.add_documents(sample_documents)
    updated = Document(id="doc_3", content="An updated note about vector search.")

    await pipeline.add_documents([updated])

    assert pipeline.vector_store.vector_count == 3
    assert db.get_chunk_count() == 3
    vector_ids = db.get_vector_ids_for_chunk_ids(["doc_3_0"])
    [record] = db.get_chunks_by_vector_ids(list(vector_ids.values()))
    assert record["content"] == "An updated note about vector search."


async def test_readding_a_shorter_document_removes_old_chunks(pipeline, embedder):
    pipeline.chunker = TextChunker(chunk_size=10, chunk_overlap=0)
    await pipeline.add_documents([Document(id="d", content="machine learning model")])
    assert db.get_chunk_count() == 3

    await pipeline.add_documents([Document(id="d", content="vector")])

    assert db.get_chunk_count() == 1
    assert pipeline.vector_store.vector_count == 1
    retriever = Retriever(vector_store=pipeline.vector_store, embedder=embedder, top_k=5)
    results = await retriever.retrieve("machine learning model")
    assert [(r.id, r.content) for r in results] == [("d_0", "vector")]


async def test_readding_an_empty_document_removes_it(pipeline, sample_documents):
    await pipeline.add_documents(sample_documents)

    await pipeline.add_documents([Document(id="doc_1", content="")])

    assert db.get_chunk_count() == 2
    assert pipeline.vector_store.vector_count == 2


async def test_duplicate_document_ids_rejected(pipeline):
    documents = [Document(id="x", content="machine"), Document(id="x", content="vector")]

    with pytest.raises(InvalidArgumentError, match="x"):
        await pipeline.add_documents(documents)

    assert db.get_chunk_count() == 0
    assert pipeline.vector_store.vector_count == db.get_chunk_count()


async def test_duplicate_chunk_ids_rejected(pipeline):
    chunks = [
        Chunk(id="x_0", content="machine", source_document_id="x", chunk_index=0),
        Chunk(id="x_0", content="vector", source_document_id="x", chunk_index=0),
    ]

    with pytest.raises(InvalidArgumentError):
        await pipeline.add_chunks(chunks)


async def test_source_label_is_stored(pipeline, embedder):
    await pipeline.add_documents(
        [
            Document(id="a", content="vector database", source="notes.txt"),
            Document(id="b", content="language model"),
        ]
    )

    retriever = Retriever(vector_store=pipeline.vector_store, embedder=embedder, top_k=2)
    results = await retriever.retrieve("vector database")

    assert [(r.id, r.source_label) for r in results] == [("a_0", "notes.txt"), ("b_0", "b")]


async def test_empty_documents_store_nothing(pipeline):
    assert await pipeline.add_documents([Document(id="empty", content="")]) == 0
    assert db.get_chunk_count() == 0


async def test_load_document_cleans_whitespace(pipeline, storage):
    write_documents(storage / "data", {"notes.txt": "  first line\n\n second   line "})

    document = pipeline.load_document(storage / "data" / "notes.txt")

    assert document.content == "first line second line"
    assert document.source == "notes.txt"
    assert document.id.startswith("doc_")


async def test_ingest_all(pipeline, storage):
    write_documents(
        storage / "data",
        {
            "a.txt": "Machine learning is a subset of artificial intelligence.",
            "b.txt": "Vector databases store embeddings.",
            "ignored.md": "# not a text file",
        },
    )
    progress = []

    stats = await pipeline.ingest_all(
        progress_callback=lambda current, total, path: progress.append((current, total, path.name))
    )

    assert stats["files_processed"] == 2
    assert stats["files_failed"] == 0
    assert stats["chunks_created"] == db.get_chunk_count()
    assert progress == [(1, 2, "a.txt"), (2, 2, "b.txt")]
    assert pipeline.vector_store.index_path.exists()

    metadata = db.get_latest_index_metadata()
    assert metadata["total_documents"] == 2
    assert metadata["chunk_size"] == 300
    assert metadata["chunk_overlap"] == 30


async def test_ingest_all_counts_unreadable_files(pipeline, storage):
    write_documents(
        storage / "data",
        {
            "good.txt": "A language model answers questions.",
            "bad.txt": b"\xff\xfe\xfa not utf-8",
        },
    )

    stats = await pipeline.ingest_all()

    assert stats["files_processed"] == 1
    assert stats["files_failed"] == 1


async def test_ingest_all_with_no_files(pipeline, storage):
    stats = await pipeline.ingest_all()

    assert stats["files_processed"] == 0
    assert (storage / "data").is_dir()


async def test_rebuild_clears_previous_index(pipeline, storage, sample_documents):
    await pipeline.add_documents(sample_documents)
    write_documents(storage / "data", {"only.txt": "Ollama runs models locally."})

    stats = await pipeline.ingest_all(rebuild=True)

    assert stats["files_processed"] == 1
    assert db.get_chunk_count() == 1
    assert pipeline.vector_store.vector_count == 1


async def test_partially_stored_file_is_counted(pipeline, storage):
    class FailsOnSecondBatch(FakeEmbedder):
        async def embed_batch(self, texts, model=None):
            if self.batch_calls == 1:
                self.batch_calls += 1
                raise RuntimeError("ollama went away")
            return await super().embed_batch(texts, model=model)

    pipeline.chunker = TextChunker(chunk_size=10, chunk_overlap=0)
    pipeline.embedder = FailsOnSecondBatch()
    write_documents(storage / "data", {"long.txt": "machine learning " * 3})

    stats = await pipeline.ingest_all()

    assert stats["files_failed"] == 1
    assert stats["chunks_created"] == 2
    assert db.get_chunk_count() == 2
    assert db.get_latest_index_metadata()["total_chunks"] == 2

"""Ingest pipeline for indexing plain-text documents.

Orchestrates:
- File discovery
- Text cleaning
- Text chunking
- Embedding generation
- Vector and chunk record storage (upsert by chunk id)
"""
from pathlib import Path
from typing import Callable, List, Dict, Any, Optional
import structlog

from localrag import config, db
from localrag.llm_client import ollama_client
from localrag.rag.chunker import TextChunker, chunk_documents
from localrag.rag.errors import InvalidArgumentError
from localrag.rag.models import Chunk, Document
from localrag.rag.store_faiss import FAISSVectorStore
from localrag.rag.text_utils import clean_text, generate_document_id

logger = structlog.get_logger()

ProgressCallback = Callable[[int, int, Path], None]


def _empty_stats() -> Dict[str, int]:
    return {
        "files_processed": 0,
        "files_failed": 0,
        "chunks_created": 0,
        "embeddings_generated": 0,
    }


class IngestPipeline:
    """Pipeline for ingesting documents into the RAG system."""

    def __init__(
        self,
        documents_dir: Path = None,
        embedder=None,
        vector_store: Optional[FAISSVectorStore] = None,
        chunker: Optional[TextChunker] = None,
        embedding_model: str = None,
        batch_size: int = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            documents_dir: Directory containing .txt documents (default from config)
            embedder: Object with async ``embed``/``embed_batch`` (default: Ollama client)
            vector_store: FAISS vector store (created from config if not provided)
            chunker: Chunker carrying window settings (default from config)
            embedding_model: Embedding model name (default from config)
            batch_size: Chunks embedded and stored per batch (default from config)
        """
        self.documents_dir = Path(documents_dir or config.DOCUMENTS_DIR)
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.embedder = embedder or ollama_client
        self.batch_size = batch_size or config.INGEST_BATCH_SIZE

        self.chunker = chunker or TextChunker()
        self.vector_store = vector_store or FAISSVectorStore(
            embedding_model=self.embedding_model, embedder=self.embedder
        )

        self.stats = _empty_stats()

        db.init_database()

        logger.info(
            "ingest_pipeline_initialized",
            documents_dir=str(self.documents_dir),
            embedding_model=self.embedding_model,
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
        )

    def discover_documents(self) -> List[Path]:
        """Discover all .txt files in the documents directory.

        Creates the directory if it doesn't exist yet.

        Returns:
            Sorted list of text file paths
        """
        if not self.documents_dir.exists():
            self.documents_dir.mkdir(parents=True, exist_ok=True)
            logger.info("documents_dir_created", documents_dir=str(self.documents_dir))

        files = sorted(p for p in self.documents_dir.glob("*.txt") if p.is_file())

        logger.info(
            "documents_discovered",
            count=len(files),
            documents_dir=str(self.documents_dir),
        )

        return files

    def load_document(self, file_path: Path) -> Document:
        """Read and clean one text file.

        Raises:
            UnicodeDecodeError: If the file is not valid UTF-8
        """
        content = file_path.read_text(encoding="utf-8")

        return Document(
            id=generate_document_id(file_path.name),
            content=clean_text(content),
            source=file_path.name,
        )

    async def _ensure_index(self) -> None:
        if self.vector_store.index is None:
            await self.vector_store.init_or_load()

    async def _store_batch(self, chunks: List[Chunk]) -> int:
        """Embed one batch of chunks and upsert vectors and records."""
        embeddings = await self.embedder.embed_batch(
            [chunk.content for chunk in chunks], model=self.embedding_model
        )
        if len(embeddings) != len(chunks):
            raise RuntimeError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )
        self.stats["embeddings_generated"] += len(embeddings)

        # Re-ingested chunk ids replace their previous vector and record
        stale = db.get_vector_ids_for_chunk_ids([chunk.id for chunk in chunks])
        if stale:
            await self._remove_vectors(list(stale.values()))

        start_id = db.next_vector_id()
        vector_ids = list(range(start_id, start_id + len(chunks)))

        await self.vector_store.add_vectors(embeddings, vector_ids)
        db.insert_chunks(chunks, vector_ids)

        return len(chunks)

    async def _remove_vectors(self, vector_ids: List[int]) -> None:
        """Drop vectors and their chunk records."""
        await self.vector_store.delete_by_ids(vector_ids)
        db.delete_chunks_by_vector_ids(vector_ids)
        logger.info("stale_chunks_removed", count=len(vector_ids))

    async def add_chunks(self, chunks: List[Chunk]) -> int:
        """Embed and store chunks in batches of ``batch_size``.

        Returns:
            Number of chunks stored

        Raises:
            InvalidArgumentError: If two chunks share an id
        """
        if not chunks:
            return 0

        chunk_ids = [chunk.id for chunk in chunks]
        if len(set(chunk_ids)) != len(chunk_ids):
            raise InvalidArgumentError("Chunk ids must be unique within one call")

        await self._ensure_index()

        stored = 0
        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size

        for i in range(0, len(chunks), self.batch_size):
            batch = chunks[i : i + self.batch_size]
            batch_stored = await self._store_batch(batch)
            stored += batch_stored
            self.stats["chunks_created"] += batch_stored

            logger.debug(
                "chunk_batch_stored",
                batch=i // self.batch_size + 1,
                total_batches=total_batches,
                stored_so_far=stored,
            )

        return stored

    async def add_documents(self, documents: List[Document]) -> int:
        """Chunk documents and store every chunk.

        A document id that is already indexed has all of its previous chunks
        removed first, so a shorter new version leaves nothing behind.

        Returns:
            Number of chunks stored

        Raises:
            InvalidArgumentError: If two documents share an id
        """
        document_ids = [doc.id for doc in documents]
        duplicates = sorted({d for d in document_ids if document_ids.count(d) > 1})
        if duplicates:
            raise InvalidArgumentError(
                f"Duplicate document ids: {', '.join(duplicates)}"
            )

        chunks = chunk_documents(documents, chunker=self.chunker)

        await self._ensure_index()
        previous = db.get_vector_ids_for_documents(document_ids)
        if previous:
            await self._remove_vectors(previous)

        if not chunks:
            logger.warning("no_chunks_created", document_count=len(documents))
            return 0

        stored = await self.add_chunks(chunks)

        logger.info(
            "documents_added",
            document_count=len(documents),
            chunks_created=stored,
        )

        return stored

    async def ingest_file(self, file_path: Path) -> Dict[str, Any]:
        """Ingest a single text file.

        Returns:
            Dictionary with ingestion results
        """
        logger.info("ingesting_file", path=str(file_path))

        doc = self.load_document(file_path)
        chunks_created = await self.add_documents([doc])

        self.stats["files_processed"] += 1

        logger.info(
            "file_ingested",
            path=str(file_path),
            document_id=doc.id,
            chunks_created=chunks_created,
        )

        return {
            "file_path": str(file_path),
            "document_id": doc.id,
            "chunks_created": chunks_created,
        }

    async def reset(self) -> None:
        """Clear the vector index and chunk records."""
        await self.vector_store.rebuild_index()
        db.clear_all_chunks()
        logger.info("index_and_database_cleared")

    async def ingest_all(
        self, rebuild: bool = False, progress_callback: Optional[ProgressCallback] = None
    ) -> Dict[str, Any]:
        """Ingest all text files in the documents directory.

        Args:
            rebuild: If True, clear existing index and rebuild from scratch
            progress_callback: Optional callback function(current, total, file_path)

        Returns:
            Dictionary with ingestion statistics
        """
        logger.info("starting_ingest_all", rebuild=rebuild)

        if rebuild:
            await self.reset()
        else:
            await self._ensure_index()

        files = self.discover_documents()

        self.stats = _empty_stats()

        if not files:
            logger.warning("no_documents_found", documents_dir=str(self.documents_dir))
            return self.stats

        for idx, file_path in enumerate(files, 1):
            if progress_callback:
                progress_callback(idx, len(files), file_path)

            try:
                await self.ingest_file(file_path)

            except Exception as e:
                logger.error(
                    "file_ingestion_failed",
                    path=str(file_path),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self.stats["files_failed"] += 1
                # Continue with next file instead of failing entirely

        await self.vector_store.save_index()

        db.insert_index_metadata(
            embedding_model=self.embedding_model,
            embedding_dimension=self.vector_store.dimension,
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            total_chunks=self.stats["chunks_created"],
            total_documents=self.stats["files_processed"],
            documents_directory=str(self.documents_dir),
            metadata={
                "files_failed": self.stats["files_failed"],
                "embeddings_generated": self.stats["embeddings_generated"],
            },
        )

        logger.info("ingest_all_completed", stats=self.stats)

        return self.stats

"""Retriever for semantic search over indexed documents.

Handles:
- Query embedding generation
- FAISS vector search
- Chunk retrieval from database
- Result ranking
"""
from typing import List, Optional
import structlog

from localrag import config, db
from localrag.llm_client import ollama_client
from localrag.rag.models import RetrievedItem
from localrag.rag.store_faiss import FAISSVectorStore, get_vector_store

logger = structlog.get_logger()


class Retriever:
    """Semantic retriever for RAG pipeline."""

    def __init__(
        self,
        vector_store: Optional[FAISSVectorStore] = None,
        embedder=None,
        embedding_model: str = None,
        top_k: int = None,
    ):
        """Initialize the retriever.

        Args:
            vector_store: FAISS vector store (shared store loaded if not provided)
            embedder: Object with an async ``embed(text, model=...)`` (default: Ollama client)
            embedding_model: Embedding model name (default from config)
            top_k: Number of results to retrieve (default from config)
        """
        self.vector_store = vector_store
        self.embedder = embedder or ollama_client
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.top_k = top_k or config.RETRIEVAL_TOP_K

        logger.debug(
            "retriever_initialized",
            embedding_model=self.embedding_model,
            top_k=self.top_k,
        )

    async def _ensure_vector_store(self) -> FAISSVectorStore:
        """Ensure vector store is loaded."""
        if self.vector_store is None:
            self.vector_store = await get_vector_store()
        elif self.vector_store.index is None:
            await self.vector_store.init_or_load()
        return self.vector_store

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
    ) -> List[RetrievedItem]:
        """Retrieve relevant chunks for a query.

        Args:
            query: User query text
            top_k: Number of results to return (overrides default)

        Returns:
            List of RetrievedItem objects, nearest first

        Raises:
            RuntimeError: If retrieval fails
        """
        if not query or not query.strip():
            logger.warning("empty_query_provided")
            return []

        top_k = top_k or self.top_k

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        try:
            store = await self._ensure_vector_store()

            if store.vector_count == 0:
                logger.warning("empty_index_no_results")
                return []

            query_embedding = await self.embedder.embed(query, model=self.embedding_model)

            logger.debug(
                "query_embedded",
                dimension=len(query_embedding),
                model=self.embedding_model,
            )

            vector_ids, distances = await store.search(query_embedding, top_k=top_k)

            if not vector_ids:
                logger.info("no_results_found")
                return []

            db.init_database()
            rows = {row["vector_id"]: row for row in db.get_chunks_by_vector_ids(vector_ids)}

            results = []
            for vector_id, distance in zip(vector_ids, distances):
                row = rows.get(vector_id)
                if row is None:
                    logger.warning("chunk_record_missing", vector_id=vector_id)
                    continue

                results.append(
                    RetrievedItem(
                        id=row["chunk_id"],
                        content=row["content"],
                        source_document_id=row["source_document_id"],
                        distance=distance,
                        source_label=row["source_label"],
                    )
                )

            results.sort(key=lambda r: r.distance)

            logger.info(
                "retrieval_completed",
                query_length=len(query),
                results_returned=len(results),
                top_distance=results[0].distance if results else None,
            )

            return results

        except Exception as e:
            logger.error(
                "retrieval_failed",
                error=str(e),
                error_type=type(e).__name__,
                query_preview=query[:100],
            )
            raise RuntimeError(f"Retrieval failed: {e}") from e

"""FAISS vector store for semantic search.

Handles:
- Runtime embedding dimension detection
- FAISS index initialization and loading
- Vector addition, removal and search by explicit IDs
- Metadata persistence
"""
import json
from pathlib import Path
from typing import List, Tuple, Optional, Dict, Any
import numpy as np
import faiss
import structlog

from localrag import config
from localrag.llm_client import ollama_client

logger = structlog.get_logger()

INDEX_TYPE = "IndexIDMap(IndexFlatL2)"


class FAISSVectorStore:
    """FAISS-based vector store with dimension detection and metadata."""

    def __init__(
        self,
        index_dir: Path = None,
        embedding_model: str = None,
        embedder=None,
    ):
        """Initialize the FAISS vector store.

        Args:
            index_dir: Directory to store index and metadata (default: DATA_DIR)
            embedding_model: Embedding model name (default from config)
            embedder: Object with an async ``embed(text, model=...)`` used to
                detect the embedding dimension (default: shared Ollama client)
        """
        self.index_dir = Path(index_dir or config.DATA_DIR)
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.embedder = embedder or ollama_client

        self.index_path = self.index_dir / "vectors.index"
        self.metadata_path = self.index_dir / "metadata.json"

        self.index: Optional[faiss.Index] = None
        self.dimension: Optional[int] = None
        self.metadata: Dict[str, Any] = {}

        logger.debug(
            "faiss_store_initialized",
            index_dir=str(self.index_dir),
            embedding_model=self.embedding_model,
        )

    async def get_embedding_dimension(self) -> int:
        """Detect embedding dimension by embedding a test string.

        Returns:
            Embedding dimension

        Raises:
            RuntimeError: If embedding fails
        """
        logger.info("detecting_embedding_dimension", model=self.embedding_model)

        try:
            embedding = await self.embedder.embed("test", model=self.embedding_model)

            if not embedding:
                raise RuntimeError("Empty embedding returned from Ollama")

            dimension = len(embedding)
            logger.info("embedding_dimension_detected", dimension=dimension)
            return dimension

        except Exception as e:
            logger.error(
                "embedding_dimension_detection_failed",
                model=self.embedding_model,
                error=str(e),
            )
            raise RuntimeError(
                f"Failed to detect embedding dimension: {e}"
            ) from e

    async def init_new_index(self, dimension: Optional[int] = None) -> None:
        """Initialize a new, empty FAISS index.

        Args:
            dimension: Embedding dimension (auto-detected if not provided)

        Raises:
            RuntimeError: If dimension detection fails
        """
        if dimension is None:
            dimension = await self.get_embedding_dimension()

        self.dimension = dimension

        # Exact search, wrapped so vectors carry stable IDs that survive removals
        self.index = faiss.IndexIDMap(faiss.IndexFlatL2(self.dimension))

        self.metadata = {
            "embedding_model": self.embedding_model,
            "embedding_dimension": self.dimension,
            "index_type": INDEX_TYPE,
            "vector_count": 0,
        }

        logger.info(
            "faiss_index_initialized",
            dimension=self.dimension,
            index_type=INDEX_TYPE,
        )

    async def load_index(self) -> None:
        """Load existing FAISS index from disk.

        Validates dimension compatibility with current embedding model.

        Raises:
            FileNotFoundError: If index files don't exist
            ValueError: If dimension mismatch detected
            RuntimeError: If loading fails
        """
        if not self.index_path.exists():
            raise FileNotFoundError(f"Index not found: {self.index_path}")

        if not self.metadata_path.exists():
            raise FileNotFoundError(f"Metadata not found: {self.metadata_path}")

        try:
            with open(self.metadata_path, "r") as f:
                self.metadata = json.load(f)
        except (OSError, ValueError) as e:
            raise RuntimeError(f"Failed to load metadata: {e}") from e

        stored_model = self.metadata.get("embedding_model")
        stored_dim = self.metadata.get("embedding_dimension")

        current_dim = await self.get_embedding_dimension()

        if current_dim != stored_dim:
            raise ValueError(
                f"Dimension mismatch: index was built with {stored_model} "
                f"(dim={stored_dim}), but current model {self.embedding_model} "
                f"has dim={current_dim}. Please rebuild the index."
            )

        try:
            self.index = faiss.read_index(str(self.index_path))
            self.dimension = stored_dim
        except Exception as e:
            raise RuntimeError(f"Failed to load FAISS index: {e}") from e

        logger.info(
            "faiss_index_loaded",
            dimension=self.dimension,
            vector_count=self.index.ntotal,
            model=stored_model,
        )

    async def save_index(self) -> None:
        """Save FAISS index and metadata to disk.

        Raises:
            RuntimeError: If save fails
        """
        if self.index is None:
            raise RuntimeError("No index to save. Initialize or load an index first.")

        self.index_dir.mkdir(parents=True, exist_ok=True)

        self.metadata["vector_count"] = self.index.ntotal

        try:
            faiss.write_index(self.index, str(self.index_path))
        except Exception as e:
            raise RuntimeError(f"Failed to save FAISS index: {e}") from e

        try:
            with open(self.metadata_path, "w") as f:
                json.dump(self.metadata, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save metadata: {e}") from e

        logger.info(
            "faiss_index_saved",
            index_path=str(self.index_path),
            vector_count=self.index.ntotal,
        )

    def _require_index(self) -> faiss.Index:
        if self.index is None:
            raise RuntimeError("No index initialized. Call init_or_load() first.")
        return self.index

    async def add_vectors(
        self, embeddings: List[List[float]], vector_ids: List[int]
    ) -> List[int]:
        """Add vectors to the FAISS index under the given IDs.

        Args:
            embeddings: List of embedding vectors
            vector_ids: One ID per embedding

        Returns:
            The vector IDs that were added

        Raises:
            RuntimeError: If no index initialized
            ValueError: On dimension or ID count mismatch
        """
        index = self._require_index()

        if not embeddings:
            return []

        if len(vector_ids) != len(embeddings):
            raise ValueError(
                f"Got {len(embeddings)} embeddings but {len(vector_ids)} vector IDs"
            )

        vectors = np.array(embeddings, dtype=np.float32)

        if vectors.ndim != 2 or vectors.shape[1] != self.dimension:
            got = vectors.shape[1] if vectors.ndim == 2 else None
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {got}"
            )

        index.add_with_ids(vectors, np.array(vector_ids, dtype=np.int64))

        logger.info(
            "vectors_added",
            count=len(embeddings),
            total_vectors=index.ntotal,
        )

        return list(vector_ids)

    async def delete_by_ids(self, vector_ids: List[int]) -> int:
        """Remove vectors by ID.

        Returns:
            Number of vectors removed
        """
        index = self._require_index()

        if not vector_ids:
            return 0

        removed = index.remove_ids(np.array(vector_ids, dtype=np.int64))

        logger.info("vectors_removed", count=removed, total_vectors=index.ntotal)

        return removed

    async def search(
        self, query_embedding: List[float], top_k: int = None
    ) -> Tuple[List[int], List[float]]:
        """Search for similar vectors in the index.

        Args:
            query_embedding: Query vector
            top_k: Number of results to return (default from config)

        Returns:
            Tuple of (vector_ids, distances), nearest first

        Raises:
            RuntimeError: If no index initialized
            ValueError: On query dimension mismatch
        """
        index = self._require_index()

        if top_k is None:
            top_k = config.RETRIEVAL_TOP_K

        query_vector = np.array([query_embedding], dtype=np.float32)

        if query_vector.shape[1] != self.dimension:
            raise ValueError(
                f"Query dimension mismatch: expected {self.dimension}, "
                f"got {query_vector.shape[1]}"
            )

        # Ensure we don't request more results than we have
        top_k = min(top_k, index.ntotal)

        if top_k <= 0:
            return [], []

        distances, indices = index.search(query_vector, top_k)

        vector_ids = []
        distance_scores = []
        for vector_id, distance in zip(indices[0].tolist(), distances[0].tolist()):
            # FAISS pads missing results with -1
            if vector_id < 0:
                continue
            vector_ids.append(vector_id)
            distance_scores.append(distance)

        logger.debug(
            "vector_search_completed",
            top_k=top_k,
            results_found=len(vector_ids),
        )

        return vector_ids, distance_scores

    async def init_or_load(self) -> None:
        """Initialize new index or load existing one.

        Raises:
            ValueError: If dimension mismatch on load
            RuntimeError: If initialization or loading fails
        """
        if self.index_path.exists() and self.metadata_path.exists():
            logger.info("existing_index_detected", path=str(self.index_path))
            await self.load_index()
        else:
            logger.info("no_index_found_initializing_new")
            await self.init_new_index()

    @property
    def vector_count(self) -> int:
        return self.index.ntotal if self.index is not None else 0

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the vector store.

        Returns:
            Dictionary with store statistics
        """
        if self.index is None:
            return {
                "initialized": False,
                "vector_count": 0,
                "dimension": None,
            }

        return {
            "initialized": True,
            "vector_count": self.index.ntotal,
            "dimension": self.dimension,
            "embedding_model": self.embedding_model,
            "index_exists_on_disk": self.index_path.exists(),
            "metadata": self.metadata,
        }

    async def rebuild_index(self) -> None:
        """Delete the persisted index and start an empty one."""
        logger.warning("rebuilding_index", index_dir=str(self.index_dir))

        if self.index_path.exists():
            self.index_path.unlink()
            logger.info("deleted_existing_index", path=str(self.index_path))

        if self.metadata_path.exists():
            self.metadata_path.unlink()
            logger.info("deleted_existing_metadata", path=str(self.metadata_path))

        await self.init_new_index()


# Singleton instance for convenience
_store_instance: Optional[FAISSVectorStore] = None


async def get_vector_store() -> FAISSVectorStore:
    """Get or create a singleton vector store instance.

    Returns:
        FAISSVectorStore instance

    Note: This loads the index if it exists
    """
    global _store_instance
    if _store_instance is None:
        store = FAISSVectorStore()
        await store.init_or_load()
        _store_instance = store
    return _store_instance

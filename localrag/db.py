"""Database initialization and helpers for the chunk store.

SQLite database for storing:
- Text chunks with their source document
- Mapping between FAISS vector IDs and chunk records
- Metadata about indexing runs
"""
import sqlite3
import json
from pathlib import Path
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import structlog

from localrag import config
from localrag.rag.models import Chunk

logger = structlog.get_logger()

DB_PATH: Path = config.DB_PATH


def get_connection() -> sqlite3.Connection:
    """Get a connection to the SQLite database.

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row
    """
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def init_database() -> None:
    """Initialize the database schema.

    Creates tables if they don't exist:
    - index_metadata: tracks indexing runs and configuration
    - chunks: stores text chunks keyed by their FAISS vector IDs
    """
    conn = get_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS index_metadata (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                indexed_at TEXT NOT NULL,
                embedding_model TEXT NOT NULL,
                embedding_dimension INTEGER NOT NULL,
                chunk_size INTEGER NOT NULL,
                chunk_overlap INTEGER NOT NULL,
                total_chunks INTEGER NOT NULL,
                total_documents INTEGER NOT NULL,
                documents_directory TEXT NOT NULL,
                metadata_json TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS chunks (
                vector_id INTEGER PRIMARY KEY,
                chunk_id TEXT NOT NULL UNIQUE,
                content TEXT NOT NULL,
                source_document_id TEXT NOT NULL,
                chunk_index INTEGER NOT NULL,
                char_start INTEGER NOT NULL,
                char_end INTEGER NOT NULL,
                source_label TEXT,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_chunks_source_document_id
            ON chunks(source_document_id)
        """)

        conn.commit()
        logger.debug("database_initialized", db_path=str(DB_PATH))

    except Exception as e:
        conn.rollback()
        logger.error("database_init_failed", error=str(e))
        raise
    finally:
        conn.close()


def insert_index_metadata(
    embedding_model: str,
    embedding_dimension: int,
    chunk_size: int,
    chunk_overlap: int,
    total_chunks: int,
    total_documents: int,
    documents_directory: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> int:
    """Record a new indexing run.

    Returns:
        ID of the inserted metadata row
    """
    conn = get_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("""
            INSERT INTO index_metadata (
                indexed_at, embedding_model, embedding_dimension,
                chunk_size, chunk_overlap, total_chunks, total_documents,
                documents_directory, metadata_json
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            _now(),
            embedding_model,
            embedding_dimension,
            chunk_size,
            chunk_overlap,
            total_chunks,
            total_documents,
            documents_directory,
            json.dumps(metadata) if metadata else None,
        ))

        conn.commit()
        row_id = cursor.lastrowid
        logger.info("index_metadata_inserted", id=row_id, total_chunks=total_chunks)
        return row_id

    except Exception as e:
        conn.rollback()
        logger.error("index_metadata_insert_failed", error=str(e))
        raise
    finally:
        conn.close()


def insert_chunks(chunks: List[Chunk], vector_ids: List[int]) -> int:
    """Insert chunk records, replacing any row with the same chunk id.

    Args:
        chunks: Chunk records
        vector_ids: FAISS vector ID for each chunk, same order

    Returns:
        Number of rows written
    """
    if len(chunks) != len(vector_ids):
        raise ValueError(
            f"Got {len(chunks)} chunks but {len(vector_ids)} vector IDs"
        )

    conn = get_connection()
    cursor = conn.cursor()

    try:
        created_at = _now()
        cursor.executemany("""
            INSERT OR REPLACE INTO chunks (
                vector_id, chunk_id, content, source_document_id,
                chunk_index, char_start, char_end, source_label, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, [
            (
                vector_id,
                chunk.id,
                chunk.content,
                chunk.source_document_id,
                chunk.chunk_index,
                chunk.char_start,
                chunk.char_end,
                chunk.source_label,
                created_at,
            )
            for chunk, vector_id in zip(chunks, vector_ids)
        ])

        conn.commit()
        return len(chunks)

    except Exception as e:
        conn.rollback()
        logger.error("chunk_insert_failed", error=str(e), count=len(chunks))
        raise
    finally:
        conn.close()


def get_chunks_by_vector_ids(vector_ids: List[int]) -> List[Dict[str, Any]]:
    """Retrieve chunks by their FAISS vector IDs.

    Args:
        vector_ids: List of FAISS vector IDs to retrieve

    Returns:
        List of chunk dictionaries with all fields (order not guaranteed)
    """
    if not vector_ids:
        return []

    conn = get_connection()
    cursor = conn.cursor()

    try:
        placeholders = ",".join("?" * len(vector_ids))
        cursor.execute(f"""
            SELECT
                vector_id, chunk_id, content, source_document_id,
                chunk_index, char_start, char_end, source_label, created_at
            FROM chunks
            WHERE vector_id IN ({placeholders})
        """, vector_ids)

        return [dict(row) for row in cursor.fetchall()]

    except Exception as e:
        logger.error("chunks_retrieval_failed", error=str(e))
        raise
    finally:
        conn.close()


def get_vector_ids_for_chunk_ids(chunk_ids: List[str]) -> Dict[str, int]:
    """Map already-stored chunk ids to their FAISS vector IDs."""
    if not chunk_ids:
        return {}

    conn = get_connection()
    cursor = conn.cursor()

    try:
        placeholders = ",".join("?" * len(chunk_ids))
        cursor.execute(f"""
            SELECT chunk_id, vector_id FROM chunks
            WHERE chunk_id IN ({placeholders})
        """, chunk_ids)

        return {row["chunk_id"]: row["vector_id"] for row in cursor.fetchall()}

    except Exception as e:
        logger.error("vector_id_lookup_failed", error=str(e))
        raise
    finally:
        conn.close()


def get_vector_ids_for_documents(document_ids: List[str]) -> List[int]:
    """Get the FAISS vector IDs of every stored chunk of the given documents."""
    if not document_ids:
        return []

    conn = get_connection()
    cursor = conn.cursor()

    try:
        placeholders = ",".join("?" * len(document_ids))
        cursor.execute(f"""
            SELECT vector_id FROM chunks
            WHERE source_document_id IN ({placeholders})
        """, document_ids)

        return [row["vector_id"] for row in cursor.fetchall()]

    except Exception as e:
        logger.error("document_vector_id_lookup_failed", error=str(e))
        raise
    finally:
        conn.close()


def delete_chunks_by_vector_ids(vector_ids: List[int]) -> int:
    """Delete chunk records by FAISS vector ID.

    Returns:
        Number of chunks deleted
    """
    if not vector_ids:
        return 0

    conn = get_connection()
    cursor = conn.cursor()

    try:
        placeholders = ",".join("?" * len(vector_ids))
        cursor.execute(
            f"DELETE FROM chunks WHERE vector_id IN ({placeholders})", vector_ids
        )
        conn.commit()
        return cursor.rowcount

    except Exception as e:
        conn.rollback()
        logger.error("chunks_delete_failed", error=str(e))
        raise
    finally:
        conn.close()


def next_vector_id() -> int:
    """Get the first unused FAISS vector ID."""
    conn = get_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("SELECT COALESCE(MAX(vector_id), -1) + 1 FROM chunks")
        return cursor.fetchone()[0]

    except Exception as e:
        logger.error("next_vector_id_failed", error=str(e))
        raise
    finally:
        conn.close()


def get_latest_index_metadata() -> Optional[Dict[str, Any]]:
    """Get the most recent indexing run metadata.

    Returns:
        Dictionary with metadata fields, or None if no index exists
    """
    conn = get_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("""
            SELECT * FROM index_metadata
            ORDER BY id DESC
            LIMIT 1
        """)

        row = cursor.fetchone()
        if row:
            metadata = dict(row)
            # Parse JSON metadata if present
            if metadata["metadata_json"]:
                metadata["metadata"] = json.loads(metadata["metadata_json"])
            return metadata
        return None

    except Exception as e:
        logger.error("index_metadata_retrieval_failed", error=str(e))
        raise
    finally:
        conn.close()


def clear_all_chunks() -> int:
    """Delete all chunks from the database.

    Used when rebuilding the index from scratch.

    Returns:
        Number of chunks deleted
    """
    conn = get_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("SELECT COUNT(*) FROM chunks")
        count = cursor.fetchone()[0]

        cursor.execute("DELETE FROM chunks")
        conn.commit()

        logger.info("chunks_cleared", count=count)
        return count

    except Exception as e:
        conn.rollback()
        logger.error("chunks_clear_failed", error=str(e))
        raise
    finally:
        conn.close()


def get_chunk_count() -> int:
    """Get the total number of chunks in the database.

    Returns:
        Total chunk count
    """
    conn = get_connection()
    cursor = conn.cursor()

    try:
        cursor.execute("SELECT COUNT(*) FROM chunks")
        return cursor.fetchone()[0]

    except Exception as e:
        logger.error("chunk_count_failed", error=str(e))
        raise
    finally:
        conn.close()

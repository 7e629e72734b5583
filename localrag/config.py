"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent.parent
DOCUMENTS_DIR = Path(os.getenv("DOCUMENTS_DIR", str(BASE_DIR / "data")))
DATA_DIR = Path(os.getenv("INDEX_DIR", str(BASE_DIR / "db")))

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_API_BASE_URL", "http://localhost:11434")
EMBEDDING_MODEL = os.getenv("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text")
LLM_MODEL = os.getenv("OLLAMA_LLM_MODEL", "llama2")
OLLAMA_TIMEOUT = float(os.getenv("OLLAMA_TIMEOUT", "60.0"))

# Embedding batches (keeps Ollama from running out of memory)
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "5"))
EMBED_BATCH_DELAY = float(os.getenv("EMBED_BATCH_DELAY", "0.1"))  # seconds
INGEST_BATCH_SIZE = int(os.getenv("INGEST_BATCH_SIZE", "10"))

# RAG parameters (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "300"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "30"))
RETRIEVAL_TOP_K = int(os.getenv("TOP_K_RESULTS", "5"))
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "0"))  # 0 = unlimited

# Optional file overriding the built-in RAG prompt template
PROMPT_TEMPLATE_PATH = os.getenv("PROMPT_TEMPLATE_PATH") or None

# Storage
DB_PATH = DATA_DIR / "localrag.sqlite"
VECTOR_INDEX_PATH = DATA_DIR / "vectors.index"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

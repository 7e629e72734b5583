#!/usr/bin/env python
"""Validate the local setup - check dependencies, Ollama and a throwaway index."""
import sys
import asyncio
import tempfile
from pathlib import Path

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
RESET = "\033[0m"

TEST_DOCUMENTS = [
    ("test_1", "This is a test document about artificial intelligence."),
    ("test_2", "Machine learning is a powerful technology for data analysis."),
    ("test_3", "Vector databases are essential for modern AI applications."),
]


def print_success(msg):
    print(f"{GREEN}✓{RESET} {msg}")


def print_error(msg):
    print(f"{RED}✗{RESET} {msg}")


def print_info(msg):
    print(f"{BLUE}ℹ{RESET} {msg}")


def print_warning(msg):
    print(f"{YELLOW}⚠{RESET} {msg}")


def print_section(title):
    print(f"\n{BLUE}{'='*60}{RESET}")
    print(f"{BLUE}{title:^60}{RESET}")
    print(f"{BLUE}{'='*60}{RESET}\n")


async def check_pipeline(errors):
    """Add, search and clear documents in a temporary index."""
    from localrag import db
    from localrag.rag.ingest import IngestPipeline
    from localrag.rag.models import Document
    from localrag.rag.retriever import Retriever
    from localrag.rag.store_faiss import FAISSVectorStore

    with tempfile.TemporaryDirectory() as tmp:
        tmp_dir = Path(tmp)
        original_db_path = db.DB_PATH
        db.DB_PATH = tmp_dir / "validate.sqlite"
        store = FAISSVectorStore(index_dir=tmp_dir)

        try:
            pipeline = IngestPipeline(documents_dir=tmp_dir, vector_store=store)
            added = await pipeline.add_documents(
                [Document(id=doc_id, content=content) for doc_id, content in TEST_DOCUMENTS]
            )
            print_success(f"Added {added} chunks (dimension {store.dimension})")

            results = await Retriever(vector_store=store).retrieve("What is machine learning?")
            if results:
                top = results[0]
                print_success(
                    f"Search returned {len(results)} results, "
                    f"top: {top.source_document_id} (score {top.similarity_score:.3f})"
                )
            else:
                print_error("Search returned no results")
                errors.append("Search returned no results")

            await pipeline.reset()
            print_success(f"Cleared index (vectors left: {store.vector_count})")

        except Exception as e:
            print_error(f"Pipeline check failed: {e}")
            errors.append(f"Pipeline error: {e}")

        finally:
            db.DB_PATH = original_db_path


async def main():
    print_section("Local RAG - Setup Validation")

    errors = []
    warnings = []

    # 1. Python version check
    print_section("1. Python Environment")
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    print_info(f"Python version: {python_version}")
    if sys.version_info >= (3, 10):
        print_success("Python version >= 3.10")
    else:
        print_error("Python version < 3.10 (required)")
        errors.append("Python version too old")

    in_venv = hasattr(sys, "real_prefix") or (hasattr(sys, "base_prefix") and sys.base_prefix != sys.prefix)
    if in_venv:
        print_success("Running in virtual environment")
    else:
        print_warning("Not running in virtual environment (recommended)")
        warnings.append("Not in venv")

    # 2. Import core dependencies
    print_section("2. Core Dependencies")

    dependencies = [
        ("quart", "Quart web framework"),
        ("hypercorn", "Hypercorn ASGI server"),
        ("httpx", "HTTP client"),
        ("faiss", "FAISS vector store"),
        ("numpy", "NumPy"),
        ("pydantic", "Data validation"),
        ("structlog", "Structured logging"),
    ]

    for module_name, description in dependencies:
        try:
            __import__(module_name)
            print_success(f"{description:30} ({module_name})")
        except ImportError as e:
            print_error(f"{description:30} ({module_name}) - {e}")
            errors.append(f"Missing: {module_name}")

    if errors:
        return errors, warnings

    # 3. Configuration
    print_section("3. Configuration")

    from localrag import config
    from localrag.llm_client import ollama_client

    print_info(f"  LLM model: {config.LLM_MODEL}")
    print_info(f"  Embedding model: {config.EMBEDDING_MODEL}")
    print_info(f"  Ollama URL: {config.OLLAMA_BASE_URL}")
    print_info(f"  Chunk size / overlap: {config.CHUNK_SIZE} / {config.CHUNK_OVERLAP} chars")
    print_info(f"  Documents directory: {config.DOCUMENTS_DIR}")
    print_info(f"  Index directory: {config.DATA_DIR}")

    # 4. Ollama service
    print_section("4. Ollama Service")

    if not await ollama_client.check_health():
        print_error("Cannot connect to Ollama service")
        print_info("  Make sure Ollama is running: ollama serve")
        errors.append("Ollama not running")
        return errors, warnings

    print_success(f"Ollama service running at {config.OLLAMA_BASE_URL}")

    models = await ollama_client.list_models()
    print_info(f"Found {len(models)} models installed")
    installed = set(models) | {m.split(":")[0] for m in models}
    for model in (config.LLM_MODEL, config.EMBEDDING_MODEL):
        if model in installed:
            print_success(f"Model available: {model}")
        else:
            print_error(f"Model missing: {model}")
            print_info(f"  Run: ollama pull {model}")
            errors.append(f"Missing model: {model}")

    # 5. Index round trip
    print_section("5. Vector Store")

    if not errors:
        await check_pipeline(errors)
    else:
        print_warning("Skipped (fix the errors above first)")

    # 6. Summary
    print_section("Summary")

    if not errors:
        print_success("All checks passed! ✨")
        print_info("  Next step: add .txt files to the documents directory and run scripts/reindex.py")
    else:
        print_error(f"Found {len(errors)} error(s):")
        for i, error in enumerate(errors, 1):
            print(f"  {i}. {error}")

    if warnings:
        print_warning(f"\nFound {len(warnings)} warning(s):")
        for i, warning in enumerate(warnings, 1):
            print(f"  {i}. {warning}")

    print()
    return errors, warnings


if __name__ == "__main__":
    errors, warnings = asyncio.run(main())
    sys.exit(1 if errors else 0)

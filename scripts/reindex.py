#!/usr/bin/env python
"""Index the .txt documents for the RAG pipeline.

Usage:
    python scripts/reindex.py              # Incremental index
    python scripts/reindex.py --rebuild    # Full rebuild from scratch
    python scripts/reindex.py --verbose    # Show detailed progress
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime

import structlog

from localrag import config
from localrag.logging_setup import configure_logging
from localrag.rag.ingest import IngestPipeline

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        """Start progress reporting."""
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        """Update progress."""
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            print()

    def finish(self, stats: dict):
        """Finish progress reporting."""
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        print(f"{'=' * 60}")
        print("  Indexing Complete!")
        print(f"{'=' * 60}\n")
        print(f"  📁 Files processed:      {stats['files_processed']}")
        print(f"  ❌ Files failed:         {stats['files_failed']}")
        print(f"  📝 Chunks created:       {stats['chunks_created']}")
        print(f"  🧮 Embeddings generated: {stats['embeddings_generated']}")
        print(f"  ⏱️  Time elapsed:         {elapsed_seconds:.1f}s")

        if stats["chunks_created"] > 0 and elapsed_seconds > 0:
            rate = stats["chunks_created"] / elapsed_seconds
            print(f"  ⚡ Indexing rate:        {rate:.1f} chunks/sec")

        print(f"\n{'=' * 60}\n")

        if stats["files_failed"] > 0:
            print(f"⚠️  Warning: {stats['files_failed']} file(s) failed to index.")
            print("   Check logs for details.\n")

        if stats["files_processed"] > 0:
            print(f"✅ Index ready at: {config.VECTOR_INDEX_PATH}")
            print(f"✅ Database at: {config.DB_PATH}\n")


async def main():
    """Main entry point for reindex script."""
    parser = argparse.ArgumentParser(
        description="Index .txt documents for the RAG pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/reindex.py              # Incremental index
  python scripts/reindex.py --rebuild    # Full rebuild from scratch
  python scripts/reindex.py --verbose    # Show detailed progress
        """,
    )

    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Rebuild index from scratch (clears existing data)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose progress output",
    )

    parser.add_argument(
        "--documents-dir",
        type=Path,
        default=None,
        help=f"Documents directory (default: {config.DOCUMENTS_DIR})",
    )

    args = parser.parse_args()

    configure_logging("DEBUG" if args.verbose else "WARNING")

    progress = ProgressReporter(verbose=args.verbose)

    try:
        print("\n📋 Configuration:")
        print(f"   Documents directory: {args.documents_dir or config.DOCUMENTS_DIR}")
        print(f"   Embedding model:     {config.EMBEDDING_MODEL}")
        print(f"   Chunk size:          {config.CHUNK_SIZE} chars")
        print(f"   Chunk overlap:       {config.CHUNK_OVERLAP} chars")

        if args.rebuild:
            print("\n⚠️  Rebuild mode: Will clear existing index and database!")
            print("   Press Ctrl+C within 3 seconds to cancel...")
            await asyncio.sleep(3)

        action = "Rebuilding" if args.rebuild else "Indexing"
        progress.start(f"{action} Documents")

        pipeline = IngestPipeline(documents_dir=args.documents_dir)

        stats = await pipeline.ingest_all(
            rebuild=args.rebuild,
            progress_callback=progress.update,
        )

        if not stats["files_processed"] and not stats["files_failed"]:
            print(f"⚠️  No .txt files found in {pipeline.documents_dir}")
            print("   Add .txt files there and run this script again.\n")
            return

        progress.finish(stats)

        if stats["files_failed"] > 0:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\n⚠️  Indexing cancelled by user.\n")
        sys.exit(1)

    except Exception as e:
        print(f"\n❌ Error: {e}\n")
        logger.error("reindex_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

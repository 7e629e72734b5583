#!/usr/bin/env python
"""Ask questions about the indexed documents.

Usage:
    python scripts/query.py                          # Interactive mode
    python scripts/query.py --question "What is ML?" # One-shot answer
    python scripts/query.py --top-k 3 --show-prompt  # Tune retrieval
"""
import argparse
import asyncio
import sys

import structlog

from localrag import config
from localrag.llm_client import ollama_client
from localrag.logging_setup import configure_logging
from localrag.rag.pipeline import RAGPipeline
from localrag.rag.retriever import Retriever

logger = structlog.get_logger()


def print_answer(result, show_prompt: bool = False):
    """Print retrieved sources and the generated answer."""
    if result.sources:
        print(f"📄 Retrieved {len(result.sources)} documents:")
        for i, item in enumerate(result.sources, 1):
            score = item.similarity_score or 0.0
            label = item.source_label or item.source_document_id or "unknown"
            print(f"  {i}. [{label}] (score: {score:.3f})")
        print()

    if show_prompt and result.prompt:
        print(f"Prompt:\n{result.prompt}\n")

    print(f"Response:\n{result.answer}\n")
    print("-" * 80 + "\n")


async def ask(pipeline: RAGPipeline, question: str, top_k: int, show_prompt: bool):
    print("\n⏳ Searching documents...")
    result = await pipeline.answer(question, top_k=top_k)
    print_answer(result, show_prompt=show_prompt)


async def interactive(pipeline: RAGPipeline, top_k: int, show_prompt: bool):
    """Read questions until the user types "exit"."""
    print('Ask questions about your documents (type "exit" to quit):\n')

    while True:
        try:
            question = await asyncio.to_thread(input, "Query: ")
        except EOFError:
            question = "exit"

        if question.strip().lower() == "exit":
            print("\nGoodbye!")
            return

        if not question.strip():
            print("Please enter a valid query.\n")
            continue

        try:
            await ask(pipeline, question, top_k, show_prompt)
        except Exception as e:
            logger.error("query_failed", error=str(e), error_type=type(e).__name__)
            print(f"❌ Error: {e}\n")


async def main():
    """Main entry point for query script."""
    parser = argparse.ArgumentParser(description="Query the indexed documents")
    parser.add_argument("--question", "-q", help="Answer one question and exit")
    parser.add_argument(
        "--top-k",
        type=int,
        default=config.RETRIEVAL_TOP_K,
        help=f"Number of chunks to retrieve (default: {config.RETRIEVAL_TOP_K})",
    )
    parser.add_argument(
        "--show-prompt",
        action="store_true",
        help="Print the assembled prompt before the answer",
    )
    args = parser.parse_args()

    configure_logging("WARNING")

    print("🔍 RAG Query Mode\n")

    print("Checking Ollama connection...")
    if not await ollama_client.check_health():
        print("❌ Ollama is not running. Please start it with: ollama serve")
        sys.exit(1)
    print("✅ Ollama is running\n")

    pipeline = RAGPipeline(retriever=Retriever(top_k=args.top_k))

    try:
        if args.question:
            await ask(pipeline, args.question, args.top_k, args.show_prompt)
        else:
            await interactive(pipeline, args.top_k, args.show_prompt)

    except KeyboardInterrupt:
        print("\n\nGoodbye!")

    except Exception as e:
        print(f"\n❌ Error: {e}\n")
        logger.error("query_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

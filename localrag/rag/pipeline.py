"""Question answering over retrieved context.

Retrieve → format context → build prompt → generate.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import structlog

from localrag.llm_client import ollama_client
from localrag.rag.models import RetrievedItem
from localrag.rag.prompts import PromptBuilder
from localrag.rag.retriever import Retriever

logger = structlog.get_logger()

NO_CONTEXT_ANSWER = "No relevant documents found."


@dataclass
class RAGAnswer:
    """Generated answer together with the chunks it was grounded on."""

    answer: str
    sources: List[RetrievedItem] = field(default_factory=list)
    prompt: Optional[str] = None

    def sources_as_dicts(self, preview_chars: int = 200) -> List[dict]:
        """Sources in a JSON-friendly shape with truncated content previews."""
        return [
            {
                "id": item.id,
                "source": item.source_document_id or "unknown",
                "source_label": item.source_label,
                "content_preview": item.content[:preview_chars] + "..."
                if len(item.content) > preview_chars
                else item.content,
                "score": round(item.similarity_score, 3)
                if item.similarity_score is not None
                else None,
            }
            for item in self.sources
        ]


class RAGPipeline:
    """Answers questions using a retriever, a prompt builder and a generator."""

    def __init__(
        self,
        retriever: Optional[Retriever] = None,
        generator=None,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        """Initialize the pipeline.

        Args:
            retriever: Retriever for context (default: Retriever())
            generator: Object with an async ``generate(prompt)`` (default: Ollama client)
            prompt_builder: Prompt template holder (default: PromptBuilder())
        """
        self.retriever = retriever or Retriever()
        self.generator = generator or ollama_client
        self.prompt_builder = prompt_builder or PromptBuilder()

    async def answer(self, query: str, top_k: Optional[int] = None) -> RAGAnswer:
        """Answer ``query`` from the indexed documents.

        The generator is not called when nothing relevant is retrieved.

        Raises:
            RuntimeError: If retrieval fails
            httpx.HTTPError: If generation fails
        """
        sources = await self.retriever.retrieve(query, top_k=top_k)

        if not sources:
            logger.info("no_relevant_context_found", query_preview=query[:100])
            return RAGAnswer(answer=NO_CONTEXT_ANSWER)

        prompt = self.prompt_builder.build(query, sources)

        logger.info(
            "rag_prompt_built",
            num_sources=len(sources),
            prompt_length=len(prompt),
        )

        answer = await self.generator.generate(prompt)

        return RAGAnswer(answer=answer, sources=sources, prompt=prompt)


# Singleton instance for convenience
_pipeline_instance: Optional[RAGPipeline] = None


def get_rag_pipeline() -> RAGPipeline:
    """Get or create a singleton RAG pipeline instance."""
    global _pipeline_instance
    if _pipeline_instance is None:
        _pipeline_instance = RAGPipeline()
    return _pipeline_instance

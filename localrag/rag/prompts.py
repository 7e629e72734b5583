"""Context formatting and prompt assembly for RAG answers.

The instruction prose lives in ``RAG_PROMPT_TEMPLATE`` so callers can swap
the assistant's style without touching the formatting logic.
"""
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from localrag import config
from localrag.rag.errors import InvalidArgumentError

RAG_PROMPT_TEMPLATE = """You are a helpful assistant. Use the following context to answer the user's question. If you don't know the answer based on the context, say so.

Context:
{context}

Question: {question}

Answer:"""

CONTEXT_BLOCK_TEMPLATE = "[Document {position}]\n{content}\n[Source: {source}]"
CONTEXT_SEPARATOR = "\n\n"
UNKNOWN_SOURCE = "unknown"


def _field(item: Any, name: str) -> Any:
    """Read a field from a RetrievedItem-like object or a mapping."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def format_context(items: Iterable[Any], max_chars: Optional[int] = None) -> str:
    """Render retrieved chunks as numbered context blocks.

    Each item becomes::

        [Document 1]
        <content>
        [Source: <source document id, or "unknown">]

    and blocks are separated by a blank line. An empty sequence gives ``""``.

    Args:
        items: RetrievedItem objects or mappings with ``content`` and
            ``source_document_id`` keys, best match first
        max_chars: Stop before the first block that would push the context
            past this many characters (None = no limit)

    Returns:
        Formatted context string

    Raises:
        InvalidArgumentError: If an item's content is not a string
    """
    blocks = []
    total_chars = 0

    for position, item in enumerate(items, 1):
        content = _field(item, "content")
        if not isinstance(content, str):
            raise InvalidArgumentError(
                f"Context item {position} content must be a string, "
                f"got {type(content).__name__}"
            )

        block = CONTEXT_BLOCK_TEMPLATE.format(
            position=position,
            content=content,
            source=_field(item, "source_document_id") or UNKNOWN_SOURCE,
        )

        added = len(block) + (len(CONTEXT_SEPARATOR) if blocks else 0)
        if max_chars is not None and total_chars + added > max_chars:
            break

        blocks.append(block)
        total_chars += added

    return CONTEXT_SEPARATOR.join(blocks)


def validate_template(template: str) -> str:
    """Check that a prompt template has both placeholders.

    Raises:
        InvalidArgumentError: If the template is not a usable string
    """
    if not isinstance(template, str):
        raise InvalidArgumentError(
            f"Prompt template must be a string, got {type(template).__name__}"
        )
    for placeholder in ("{context}", "{question}"):
        if placeholder not in template:
            raise InvalidArgumentError(f"Prompt template is missing {placeholder}")
    try:
        template.format(context="", question="")
    except (AttributeError, KeyError, IndexError, ValueError) as e:
        raise InvalidArgumentError(f"Prompt template has unknown fields: {e}") from e
    return template


def load_prompt_template(path: Path) -> str:
    """Read and validate a prompt template file."""
    return validate_template(Path(path).read_text(encoding="utf-8"))


def build_prompt(query: str, context: str, template: Optional[str] = None) -> str:
    """Insert the query and formatted context into the instruction template.

    Args:
        query: User question
        context: Output of ``format_context``
        template: Template with ``{context}`` and ``{question}`` placeholders
            (default: RAG_PROMPT_TEMPLATE)

    Returns:
        Prompt ending with the generation cue

    Raises:
        InvalidArgumentError: If query or context is not a string
    """
    if not isinstance(query, str):
        raise InvalidArgumentError(f"Query must be a string, got {type(query).__name__}")
    if not isinstance(context, str):
        raise InvalidArgumentError(
            f"Context must be a string, got {type(context).__name__}"
        )

    template = RAG_PROMPT_TEMPLATE if template is None else template
    return template.format(context=context, question=query)


class PromptBuilder:
    """Prompt assembler bound to one template and context budget."""

    def __init__(self, template: Optional[str] = None, max_context_chars: Optional[int] = None):
        """Initialize the prompt builder.

        Args:
            template: Prompt template (default: config.PROMPT_TEMPLATE_PATH
                if set, else RAG_PROMPT_TEMPLATE)
            max_context_chars: Context budget in characters (default from
                config, where 0 means unlimited)

        Raises:
            InvalidArgumentError: If the template lacks a placeholder
        """
        if template is None and config.PROMPT_TEMPLATE_PATH:
            template = load_prompt_template(Path(config.PROMPT_TEMPLATE_PATH))
        self.template = validate_template(template or RAG_PROMPT_TEMPLATE)

        if max_context_chars is None:
            max_context_chars = config.MAX_CONTEXT_CHARS or None
        self.max_context_chars = max_context_chars

    def format_context(self, items: Iterable[Any]) -> str:
        return format_context(items, max_chars=self.max_context_chars)

    def build(self, query: str, items: Iterable[Any]) -> str:
        """Format ``items`` and build the full prompt for ``query``."""
        return build_prompt(query, self.format_context(items), template=self.template)

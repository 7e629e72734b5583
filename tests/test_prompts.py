"""Tests for context formatting and prompt assembly."""
import pytest

from localrag import config
from localrag.rag.errors import InvalidArgumentError
from localrag.rag.models import RetrievedItem
from localrag.rag.prompts import (
    RAG_PROMPT_TEMPLATE,
    PromptBuilder,
    build_prompt,
    format_context,
    load_prompt_template,
    validate_template,
)


class TestFormatContext:
    def test_single_item(self):
        context = format_context([{"content": "hi", "source_document_id": "d1"}])
        assert context == "[Document 1]\nhi\n[Source: d1]"

    def test_missing_source_is_unknown(self):
        assert format_context([{"content": "hi"}]) == "[Document 1]\nhi\n[Source: unknown]"
        assert (
            format_context([{"content": "hi", "source_document_id": None}])
            == "[Document 1]\nhi\n[Source: unknown]"
        )

    def test_blocks_are_numbered_in_order(self):
        items = [
            RetrievedItem(id="a_0", content="first", source_document_id="a", distance=0.1),
            RetrievedItem(id="b_0", content="second", distance=0.4),
        ]

        context = format_context(items)

        assert context == (
            "[Document 1]\nfirst\n[Source: a]\n\n"
            "[Document 2]\nsecond\n[Source: unknown]"
        )

    def test_empty_items(self):
        assert format_context([]) == ""

    def test_content_is_inserted_verbatim(self):
        content = "line one\n  {braces} stay\nline three"
        context = format_context([{"content": content, "source_document_id": "x"}])
        assert content in context

    def test_max_chars_drops_whole_blocks(self):
        items = [{"content": "a" * 20, "source_document_id": "d"} for _ in range(3)]
        one_block = format_context(items[:1])

        context = format_context(items, max_chars=len(one_block) + 5)

        assert context == one_block

    def test_max_chars_too_small_gives_empty_context(self):
        assert format_context([{"content": "abc"}], max_chars=3) == ""

    def test_non_string_content_rejected(self):
        with pytest.raises(InvalidArgumentError):
            format_context([{"content": None, "source_document_id": "d"}])
        with pytest.raises(InvalidArgumentError):
            format_context([{"content": 12}])


class TestBuildPrompt:
    def test_structure(self):
        prompt = build_prompt("Q", "C")

        assert "Question: Q" in prompt
        assert prompt.endswith("Answer:")
        context_at = prompt.index("Context:")
        assert context_at < prompt.index("C", context_at + len("Context:"))
        assert prompt.index("C", context_at + len("Context:")) < prompt.index("Question:")

    def test_matches_default_template(self):
        assert build_prompt("What?", "ctx") == RAG_PROMPT_TEMPLATE.format(
            context="ctx", question="What?"
        )

    def test_empty_context_still_builds(self):
        prompt = build_prompt("Anything?", "")
        assert "Context:\n\n\nQuestion: Anything?" in prompt

    def test_braces_in_query_are_not_interpreted(self):
        prompt = build_prompt("what is {context}?", "C")
        assert "Question: what is {context}?" in prompt

    def test_non_string_arguments_rejected(self):
        with pytest.raises(InvalidArgumentError):
            build_prompt(None, "C")
        with pytest.raises(InvalidArgumentError):
            build_prompt("Q", ["C"])


class TestTemplates:
    def test_validate_accepts_default(self):
        assert validate_template(RAG_PROMPT_TEMPLATE) == RAG_PROMPT_TEMPLATE

    @pytest.mark.parametrize(
        "template",
        [
            "No placeholders",
            "Only {context}",
            "Only {question}",
            "{context} {question} {extra}",
            "{context.foo} {question}",
            None,
        ],
    )
    def test_validate_rejects_bad_templates(self, template):
        with pytest.raises(InvalidArgumentError):
            validate_template(template)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "prompt.txt"
        path.write_text("Docs:\n{context}\nQ: {question}\nA:", encoding="utf-8")

        assert load_prompt_template(path) == "Docs:\n{context}\nQ: {question}\nA:"


class TestPromptBuilder:
    def test_default_template(self, monkeypatch):
        monkeypatch.setattr(config, "PROMPT_TEMPLATE_PATH", None)
        monkeypatch.setattr(config, "MAX_CONTEXT_CHARS", 0)

        builder = PromptBuilder()

        assert builder.template == RAG_PROMPT_TEMPLATE
        assert builder.max_context_chars is None

    def test_custom_template(self):
        builder = PromptBuilder(template="{context}|{question}")

        prompt = builder.build("Q", [{"content": "c", "source_document_id": "s"}])

        assert prompt == "[Document 1]\nc\n[Source: s]|Q"

    def test_invalid_template_rejected(self):
        with pytest.raises(InvalidArgumentError):
            PromptBuilder(template="missing question: {context}")

    def test_template_path_from_config(self, tmp_path, monkeypatch):
        path = tmp_path / "prompt.txt"
        path.write_text("CTX {context} Q {question}", encoding="utf-8")
        monkeypatch.setattr(config, "PROMPT_TEMPLATE_PATH", str(path))

        assert PromptBuilder().build("why", []) == "CTX  Q why"

    def test_context_budget_from_config(self, monkeypatch):
        monkeypatch.setattr(config, "PROMPT_TEMPLATE_PATH", None)
        monkeypatch.setattr(config, "MAX_CONTEXT_CHARS", 10)

        builder = PromptBuilder()

        assert builder.max_context_chars == 10
        assert builder.format_context([{"content": "too long for the budget"}]) == ""

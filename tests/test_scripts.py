"""Tests for the command-line scripts that run without a live Ollama."""
import importlib.util
from pathlib import Path

import pytest

from localrag import db
from localrag.llm_client import ollama_client

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"


def load_script(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def validate_setup():
    return load_script("validate_setup")


async def test_pipeline_check_restores_database_path(validate_setup, storage, embedder, monkeypatch):
    monkeypatch.setattr(ollama_client, "embed", embedder.embed)
    monkeypatch.setattr(ollama_client, "embed_batch", embedder.embed_batch)
    db_path = db.DB_PATH
    errors = []

    await validate_setup.check_pipeline(errors)

    assert errors == []
    assert db.DB_PATH == db_path


async def test_pipeline_check_restores_database_path_on_failure(validate_setup, storage, monkeypatch):
    async def unreachable(*args, **kwargs):
        raise ConnectionError("ollama is down")

    monkeypatch.setattr(ollama_client, "embed", unreachable)
    monkeypatch.setattr(ollama_client, "embed_batch", unreachable)
    db_path = db.DB_PATH
    errors = []

    await validate_setup.check_pipeline(errors)

    assert len(errors) == 1
    assert errors[0].startswith("Pipeline error")
    assert db.DB_PATH == db_path

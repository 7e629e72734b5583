"""Quart HTTP API for the local RAG pipeline."""
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError
from quart import Quart, request, jsonify
import structlog

from localrag import config, db
from localrag.llm_client import ollama_client
from localrag.logging_setup import configure_logging
from localrag.rag.errors import InvalidArgumentError
from localrag.rag.ingest import IngestPipeline
from localrag.rag.models import Document
from localrag.rag.pipeline import get_rag_pipeline
from localrag.rag.store_faiss import get_vector_store
from localrag.rag.text_utils import clean_text, generate_document_id

configure_logging()

logger = structlog.get_logger()

app = Quart(__name__)

MAX_QUERY_LENGTH = 2000


class DocumentIn(BaseModel):
    """A document submitted for ingestion."""
    id: Optional[str] = None
    content: str
    source: Optional[str] = None


class IngestRequest(BaseModel):
    """Body of POST /api/documents."""
    documents: List[DocumentIn] = Field(..., min_length=1)
    clean: bool = True


class QueryRequest(BaseModel):
    """Body of POST /api/query and POST /api/search."""
    query: str = Field(..., min_length=1, max_length=MAX_QUERY_LENGTH)
    top_k: Optional[int] = Field(None, ge=1, le=100)


def _validation_error(e: ValidationError):
    logger.warning("request_validation_failed", errors=e.error_count())
    details = e.errors(include_url=False, include_context=False, include_input=False)
    return jsonify({"error": "Invalid request", "details": details}), 400


async def get_ingest_pipeline() -> IngestPipeline:
    """Ingest pipeline sharing the process-wide vector store with retrieval."""
    return IngestPipeline(vector_store=await get_vector_store())


@app.route("/api/documents", methods=["POST"])
async def add_documents():
    """Chunk, embed and store documents.

    Expects JSON body:
    {
        "documents": [{"id": "optional", "content": "text", "source": "optional"}],
        "clean": true  // optional, normalise whitespace first
    }

    Returns JSON:
    {
        "document_ids": [...],
        "chunks_created": 12
    }
    """
    try:
        payload = IngestRequest.model_validate(await request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    try:
        documents = [
            Document(
                id=doc.id or generate_document_id(doc.source or ""),
                content=clean_text(doc.content) if payload.clean else doc.content,
                source=doc.source,
            )
            for doc in payload.documents
        ]

        pipeline = await get_ingest_pipeline()
        chunks_created = await pipeline.add_documents(documents)
        await pipeline.vector_store.save_index()

        logger.info(
            "documents_ingested",
            document_count=len(documents),
            chunks_created=chunks_created,
        )

        return jsonify({
            "document_ids": [doc.id for doc in documents],
            "chunks_created": chunks_created,
        }), 201

    except InvalidArgumentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error("ingest_endpoint_error", error=str(e), error_type=type(e).__name__)
        return jsonify({"error": "Failed to ingest documents"}), 500


@app.route("/api/search", methods=["POST"])
async def search():
    """Return the chunks nearest to a query without generating an answer."""
    try:
        payload = QueryRequest.model_validate(await request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    try:
        pipeline = get_rag_pipeline()
        results = await pipeline.retriever.retrieve(payload.query, top_k=payload.top_k)

        return jsonify({
            "results": [
                {
                    "id": item.id,
                    "content": item.content,
                    "source_document_id": item.source_document_id,
                    "source_label": item.source_label,
                    "distance": item.distance,
                    "score": item.similarity_score,
                }
                for item in results
            ]
        })

    except Exception as e:
        logger.error("search_endpoint_error", error=str(e), error_type=type(e).__name__)
        return jsonify({"error": "Search failed"}), 500


@app.route("/api/query", methods=["POST"])
async def query():
    """Answer a question from the indexed documents.

    Expects JSON body:
    {
        "query": "question text",
        "top_k": 5  // optional
    }

    Returns JSON:
    {
        "answer": "generated text",
        "model": "model_name",
        "sources": [...]
    }
    """
    try:
        payload = QueryRequest.model_validate(await request.get_json(silent=True) or {})
    except ValidationError as e:
        return _validation_error(e)

    if not payload.query.strip():
        return jsonify({"error": "Query cannot be empty"}), 400

    logger.info(
        "query_request_received",
        query_length=len(payload.query),
        top_k=payload.top_k,
    )

    try:
        result = await get_rag_pipeline().answer(payload.query, top_k=payload.top_k)

        return jsonify({
            "answer": result.answer,
            "model": config.LLM_MODEL,
            "sources": result.sources_as_dicts(),
        })

    except InvalidArgumentError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error("query_endpoint_error", error=str(e), error_type=type(e).__name__)
        return jsonify({
            "error": "An error occurred processing your request. Please try again."
        }), 500


@app.route("/api/stats", methods=["GET"])
async def stats():
    """Vector store and chunk database statistics."""
    try:
        store = await get_vector_store()
        db.init_database()

        return jsonify({
            "vector_store": store.get_stats(),
            "chunk_count": db.get_chunk_count(),
            "last_index_run": db.get_latest_index_metadata(),
        })

    except Exception as e:
        logger.error("stats_endpoint_error", error=str(e))
        return jsonify({"error": "Failed to get stats"}), 500


@app.route("/api/index", methods=["DELETE"])
async def clear_index():
    """Drop every stored vector and chunk record."""
    try:
        pipeline = await get_ingest_pipeline()
        await pipeline.reset()
        await pipeline.vector_store.save_index()
        return "", 204

    except Exception as e:
        logger.error("clear_index_endpoint_error", error=str(e))
        return jsonify({"error": "Failed to clear index"}), 500


@app.route("/health/ready")
async def health_ready():
    """Readiness probe - check if app can serve requests.

    Checks:
    - Ollama service is reachable
    - Required models are available
    """
    checks = {
        "status": "healthy",
        "ollama": False,
        "models": False,
    }

    try:
        models = await ollama_client.list_models()
        checks["ollama"] = True

        # Ollama reports untagged names with ":latest"
        available = set(models) | {m.split(":")[0] for m in models if m.endswith(":latest")}
        missing = [m for m in (config.LLM_MODEL, config.EMBEDDING_MODEL) if m not in available]

        if missing:
            checks["status"] = "unhealthy"
            checks["error"] = f"Missing models: {', '.join(missing)}"
        else:
            checks["models"] = True

        status_code = 200 if checks["status"] == "healthy" else 503
        return jsonify(checks), status_code

    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        checks["status"] = "unhealthy"
        checks["error"] = str(e)
        return jsonify(checks), 503


@app.route("/health/live")
async def health_live():
    """Liveness probe - check if app is running."""
    return jsonify({"status": "alive"}), 200


@app.errorhandler(404)
async def not_found(error):
    """Handle 404 errors."""
    return jsonify({"error": "Not found"}), 404


@app.errorhandler(500)
async def internal_error(error):
    """Handle 500 errors."""
    logger.error("internal_server_error", error=str(error))
    return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    # For development - serve with `hypercorn localrag.main:app` otherwise
    app.run(host="0.0.0.0", port=5000, debug=True)

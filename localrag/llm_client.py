"""Ollama client wrapper with error handling."""
import asyncio
from typing import Dict, List, Optional

import httpx
import structlog

from localrag import config

logger = structlog.get_logger()


class OllamaClient:
    """Async client for the Ollama embedding and generation API."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            timeout: Request timeout in seconds (defaults to config.OLLAMA_TIMEOUT)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url or config.OLLAMA_BASE_URL
        self.timeout = timeout or config.OLLAMA_TIMEOUT
        self.transport = transport

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self.transport,
        )

    async def _post(self, path: str, payload: Dict) -> Dict:
        async with self._client() as client:
            response = await client.post(path, json=payload)
            response.raise_for_status()
            return response.json()

    async def embed_texts(self, texts: List[str], model: str = None) -> List[List[float]]:
        """Embed texts in a single ``/api/embed`` request.

        Args:
            texts: Texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            One embedding per input text

        Raises:
            httpx.HTTPError: On API errors
            RuntimeError: If Ollama returns no embeddings
        """
        model = model or config.EMBEDDING_MODEL

        logger.debug("ollama_embedding_request", model=model, input_count=len(texts))

        try:
            data = await self._post("/api/embed", {"model": model, "input": texts})
        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e), base_url=self.base_url)
            raise

        embeddings = data.get("embeddings") or []
        if len(embeddings) != len(texts):
            raise RuntimeError(
                f"Expected {len(texts)} embeddings from Ollama, got {len(embeddings)}"
            )

        logger.debug(
            "ollama_embedding_response",
            model=model,
            dimension=len(embeddings[0]) if embeddings else 0,
        )

        return embeddings

    async def embed(self, text: str, model: str = None) -> List[float]:
        """Generate the embedding for a single text.

        Raises:
            httpx.HTTPError: On API errors
            RuntimeError: If Ollama returns no embedding
        """
        embeddings = await self.embed_texts([text], model=model)
        if not embeddings[0]:
            raise RuntimeError("Empty embedding returned from Ollama")
        return embeddings[0]

    async def embed_batch(
        self,
        texts: List[str],
        model: str = None,
        batch_size: int = None,
        delay: float = None,
    ) -> List[List[float]]:
        """Generate embeddings for many texts in small sequential sub-batches.

        Args:
            texts: Texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)
            batch_size: Texts per request (defaults to config.EMBED_BATCH_SIZE)
            delay: Pause between requests in seconds (defaults to config.EMBED_BATCH_DELAY)

        Returns:
            Embeddings in input order
        """
        if not texts:
            return []

        batch_size = batch_size or config.EMBED_BATCH_SIZE
        delay = config.EMBED_BATCH_DELAY if delay is None else delay

        embeddings = []
        for i in range(0, len(texts), batch_size):
            if i and delay:
                await asyncio.sleep(delay)

            batch = texts[i : i + batch_size]
            embeddings.extend(await self.embed_texts(batch, model=model))

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=len(embeddings),
            )

        return embeddings

    async def generate(self, prompt: str, model: str = None) -> str:
        """Generate a completion for ``prompt``.

        Args:
            prompt: Full prompt text
            model: Model to use (defaults to config.LLM_MODEL)

        Returns:
            Generated text, stripped

        Raises:
            httpx.HTTPError: On API errors
            RuntimeError: If Ollama returns an empty response
        """
        model = model or config.LLM_MODEL

        logger.info("ollama_generate_request", model=model, prompt_length=len(prompt))

        try:
            data = await self._post(
                "/api/generate",
                {"model": model, "prompt": prompt, "stream": False},
            )
        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise
        except httpx.HTTPError as e:
            logger.error(
                "ollama_http_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise

        text = (data.get("response") or "").strip()
        if not text:
            raise RuntimeError("No response generated from Ollama")

        logger.info("ollama_generate_response", model=model, response_length=len(text))

        return text

    async def list_models(self) -> List[str]:
        """List all available Ollama models.

        Returns:
            List of model names

        Raises:
            httpx.HTTPError: On API errors
        """
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
                return [m["name"] for m in data.get("models", [])]
        except httpx.HTTPError as e:
            logger.error("ollama_list_models_error", error=str(e))
            raise

    async def check_health(self) -> bool:
        """Return True if the Ollama service answers."""
        try:
            await self.list_models()
            return True
        except httpx.HTTPError:
            return False


# Global client instance
ollama_client = OllamaClient()

"""Ollama embedding client wrapper with error handling."""
import asyncio
from typing import Dict, List, Optional

import httpx
import structlog

from docsearch import config
from docsearch.errors import EmbeddingError

logger = structlog.get_logger()


class OllamaClient:
    """Async client for the Ollama embeddings API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            model: Embedding model (defaults to config.EMBEDDING_MODEL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url or config.OLLAMA_BASE_URL
        self.model = model or config.EMBEDDING_MODEL
        self.timeout = timeout or config.EMBEDDING_TIMEOUT
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=self._transport
        )

    async def embeddings(self, prompt: str, model: Optional[str] = None) -> Dict:
        """Generate embeddings for a text prompt.

        Args:
            prompt: Text to embed
            model: Model to use (defaults to the client's model)

        Returns:
            Response dict with 'embedding' list

        Raises:
            httpx.HTTPError: On API errors
        """
        model = model or self.model

        payload = {
            "model": model,
            "prompt": prompt,
        }

        try:
            async with self._client(self.timeout) as client:
                logger.debug(
                    "ollama_embedding_request",
                    model=model,
                    prompt_length=len(prompt),
                )

                response = await client.post("/api/embeddings", json=payload)
                response.raise_for_status()

                data = response.json()

                logger.debug(
                    "ollama_embedding_response",
                    model=model,
                    dimension=len(data.get("embedding", [])),
                )

                return data

        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise
        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e))
            raise

    async def embed(self, text: str) -> List[float]:
        """Embed one text, returning the vector.

        Raises:
            EmbeddingError: If the request fails or the embedding is empty
        """
        try:
            response = await self.embeddings(prompt=text)
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        embedding = response.get("embedding", [])
        if not embedding:
            raise EmbeddingError(f"Empty embedding returned by model {self.model}")

        return embedding

    async def embed_many(
        self, texts: List[str], batch_size: Optional[int] = None
    ) -> List[List[float]]:
        """Embed texts in order; requests within a batch run concurrently.

        The first failure in a batch cancels the requests still in flight.

        Raises:
            EmbeddingError: On the first failing text; nothing is retried
        """
        batch_size = batch_size or config.EMBEDDING_BATCH_SIZE
        embeddings: List[List[float]] = []

        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]

            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [group.create_task(self.embed(text)) for text in batch]
            except ExceptionGroup as e:
                raise e.exceptions[0] from None

            embeddings.extend(task.result() for task in tasks)

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=len(embeddings),
            )

        return embeddings

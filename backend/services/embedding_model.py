"""Embedding model integration with Hugging Face Inference API."""
import asyncio
import time
import logging
from typing import List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL

logger = logging.getLogger(__name__)


class EmbeddingError(RuntimeError):
    """Raised when the provider returns no usable vector for a text."""


class EmbeddingModel:
    """Async wrapper for Hugging Face Inference API embedding model."""

    def __init__(
        self,
        api_key: str = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            max_retries: Maximum number of retry attempts for 503 errors
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = f"https://router.huggingface.co/hf-inference/models/{model_name}/pipeline/feature-extraction"
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingError: If no vector comes back or the request fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        embeddings = await self._embed_with_retry([text])
        if not embeddings or not embeddings[0]:
            raise EmbeddingError("Failed to generate embedding")

        return embeddings[0]

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call HF API with exponential backoff retry strategy.

        HF free tier models "sleep" and take 15-20s to load on first query,
        so 503 responses and transport errors are retried with backoff.
        Rate limit and auth failures are not retried.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors

        Raises:
            EmbeddingError: If API request fails after all retries
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                client = await self._get_client()
                response = await client.post(
                    self.api_url,
                    headers=headers,
                    json=payload
                )

                elapsed = time.time() - start_time

                # Handle 503 Service Unavailable (model loading)
                if response.status_code == 503:
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )
                    last_error = f"Model failed to load after {self.max_retries} attempts"

                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(delay)
                        delay = min(delay * 2, 60.0)  # Exponential backoff, max 60s
                        continue
                    break

                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise EmbeddingError("Rate limit exceeded. Please try again later.")

                if response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise EmbeddingError("Invalid API key")

                if response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingError(error_msg)

                embeddings = response.json()

                if elapsed > 10.0:
                    logger.info(
                        f"Model loading delay detected: {elapsed:.1f}s for {len(texts)} texts "
                        f"(attempt {attempt + 1})"
                    )
                else:
                    logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")

                return embeddings

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 60.0)
                    continue

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 60.0)
                    continue

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingError(error_msg)

    async def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            await self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False

"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from groq import AsyncGroq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from models.chunk import Chunk
from config import GROQ_API_KEY, GENERATION_MODEL, SYSTEM_INSTRUCTION, FALLBACK_RESPONSE

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class GenerationError(Exception):
    """Raised when the generation provider is unreachable or refuses the request."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for interfacing with Groq API for answer generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GENERATION_MODEL,
        max_tokens: int = 1024
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Groq model name used for every call
            max_tokens: Maximum tokens to generate per answer
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.max_tokens = max_tokens
        self.client = AsyncGroq(api_key=self.api_key)
        logger.info(f"LLMClient initialized with model: {model}")

    async def generate_content(self, prompt: str, system_instruction: str = SYSTEM_INSTRUCTION) -> str:
        """
        Generate a completion for the prompt.

        Args:
            prompt: Complete prompt with context and query
            system_instruction: System message steering the model

        Returns:
            Response text, or FALLBACK_RESPONSE if the model returned nothing

        Raises:
            GenerationError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {self.model}")

            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.max_tokens,
                temperature=0.3
            )

            latency_ms = int((time.time() - start_time) * 1000)
            text = response.choices[0].message.content if response.choices else None

            usage = response.usage
            logger.info(
                f"Generated response: model={self.model}, "
                f"input_tokens={getattr(usage, 'prompt_tokens', None)}, "
                f"output_tokens={getattr(usage, 'completion_tokens', None)}, "
                f"latency={latency_ms}ms"
            )

            if not text or not text.strip():
                logger.warning("Model returned an empty response, using fallback")
                return FALLBACK_RESPONSE

            return text

        except RateLimitError as e:
            raise self._generation_error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                e, start_time, retry_after=60
            )
        except AuthenticationError as e:
            raise self._generation_error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                e, start_time
            )
        except APITimeoutError as e:
            raise self._generation_error(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                e, start_time
            )
        except APIError as e:
            raise self._generation_error(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                e, start_time
            )
        except Exception as e:
            raise self._generation_error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                e, start_time, error_type=type(e).__name__
            )

    async def generate_answer(self, query: str, chunks: Sequence[Chunk]) -> str:
        """Build the grounded prompt for the retrieved chunks and generate once."""
        prompt = self.build_prompt(query, [chunk.text for chunk in chunks])
        return await self.generate_content(prompt)

    def _generation_error(
        self,
        code: str,
        message: str,
        original: Exception,
        start_time: float,
        **details: Any
    ) -> GenerationError:
        """Log a provider failure and wrap it in a GenerationError."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": self.model,
                "latency_ms": latency_ms,
                "original_error": str(original),
                **details
            }
        )
        logger.error(
            f"{code}: model={self.model}, latency={latency_ms}ms, error={original}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return GenerationError(error)

    @staticmethod
    def build_prompt(query: str, retrieved_chunks: Optional[List[str]] = None) -> str:
        """
        Build the context-stuffed prompt.

        Args:
            query: User question
            retrieved_chunks: Texts of the retrieved chunks, best first

        Returns:
            Complete prompt string
        """
        context_text = CONTEXT_SEPARATOR.join(retrieved_chunks or [])

        prompt = f"""You are an intelligent assistant. Use the following context to answer the user's question.
If the answer is not available in the context, politely state that you cannot find the answer in the provided document.
Keep your answer concise and helpful.

Context:
{context_text}

User Question:
{query}
"""

        return prompt

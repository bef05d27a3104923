"""
Inference client for note analysis.

Wraps the primary (OpenAI-compatible chat completions) and fallback
(Gemini generateContent) backends behind one ``infer(provider, prompt)``
contract. Each backend normalizes its own response envelope to raw text.
"""

import asyncio
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from clientpulse.config import settings
from clientpulse.features.note_intelligence.domain import Provider
from clientpulse.features.note_intelligence.errors import InferenceError
from clientpulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class InferenceBackend:
    """A text generation service that turns a prompt into raw text."""

    name = "backend"

    async def generate(self, prompt: str) -> str:
        raise NotImplementedError


class OpenAIChatBackend(InferenceBackend):
    """Primary backend: chat completions through the OpenAI SDK."""

    name = "openai"

    def __init__(self, client: AsyncOpenAI | None = None):
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise InferenceError("OPENAI_API_KEY not configured", provider=self.name)
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.INFERENCE_TIMEOUT_SECONDS,
                max_retries=0,
            )
            logger.info(
                "OpenAI client initialized",
                model=settings.OPENAI_MODEL,
                base_url=settings.OPENAI_BASE_URL or "default",
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=settings.OPENAI_MAX_TOKENS,
                temperature=settings.OPENAI_TEMPERATURE,
            )
        except openai.APITimeoutError as e:
            raise InferenceError("OpenAI request timed out", provider=self.name) from e
        except openai.APIStatusError as e:
            raise InferenceError(
                f"OpenAI API error: {e.status_code}", provider=self.name, status_code=e.status_code
            ) from e
        except openai.APIError as e:
            raise InferenceError(f"OpenAI API error: {e}", provider=self.name) from e

        usage = getattr(response, "usage", None)
        logger.debug(
            "OpenAI call completed",
            usage_tokens=getattr(usage, "total_tokens", 0) if usage else 0,
        )
        return self.extract_text(response)

    @staticmethod
    def extract_text(response: Any) -> str:
        """Chat-style ``choices[0].message.content`` or completion-style ``choices[0].text``."""
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        first = choices[0]
        message = getattr(first, "message", None)
        content = getattr(message, "content", None) if message is not None else None
        return content or getattr(first, "text", None) or ""


class GeminiBackend(InferenceBackend):
    """Fallback backend: Gemini generateContent over REST."""

    name = "gemini"

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def generate(self, prompt: str) -> str:
        if not settings.GEMINI_API_KEY:
            raise InferenceError("GEMINI_API_KEY not configured", provider=self.name)

        url = f"{settings.GEMINI_BASE_URL.rstrip('/')}/models/{settings.GEMINI_MODEL}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }

        async with httpx.AsyncClient(
            timeout=settings.INFERENCE_TIMEOUT_SECONDS, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    url, params={"key": settings.GEMINI_API_KEY}, json=body
                )
            except httpx.TimeoutException as e:
                raise InferenceError("Gemini request timed out", provider=self.name) from e
            except httpx.RequestError as e:
                raise InferenceError(
                    f"Gemini request failed: {type(e).__name__}", provider=self.name
                ) from e

        if not response.is_success:
            raise InferenceError(
                f"Gemini API error: {response.status_code}",
                provider=self.name,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InferenceError("Gemini returned a non-JSON envelope", provider=self.name) from e

        return self.extract_text(data)

    @staticmethod
    def extract_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


class InferenceClient:
    """Uniform ``infer(provider, prompt) -> raw text`` over both backends."""

    def __init__(
        self,
        backends: dict[Provider, InferenceBackend] | None = None,
        timeout_seconds: float | None = None,
    ):
        self._backends = backends or {
            Provider.PRIMARY: OpenAIChatBackend(),
            Provider.FALLBACK: GeminiBackend(),
        }
        self.timeout_seconds = timeout_seconds or settings.INFERENCE_TIMEOUT_SECONDS

    async def infer(self, provider: Provider, prompt: str) -> str:
        backend = self._backends.get(provider)
        if backend is None:
            raise InferenceError(f"No backend configured for provider {provider}")

        logger.debug(
            "Calling inference backend",
            provider=str(provider),
            backend=backend.name,
            prompt_length=len(prompt),
        )

        try:
            text = await asyncio.wait_for(backend.generate(prompt), timeout=self.timeout_seconds)
        except TimeoutError as e:
            raise InferenceError(
                f"Inference timed out after {self.timeout_seconds}s", provider=backend.name
            ) from e
        except InferenceError:
            raise
        except Exception as e:
            logger.warning(
                "Unexpected inference backend error",
                backend=backend.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise InferenceError(f"{backend.name} call failed: {e}", provider=backend.name) from e

        if not text or not text.strip():
            raise InferenceError(f"Empty response from {backend.name}", provider=backend.name)

        logger.info("Inference completed", backend=backend.name, response_length=len(text))
        return text


inference_client = InferenceClient()

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from clientpulse.config import settings
from clientpulse.features.note_intelligence.domain import Provider
from clientpulse.features.note_intelligence.errors import InferenceError
from clientpulse.features.note_intelligence.services.inference_service import (
    GeminiBackend,
    InferenceBackend,
    InferenceClient,
    OpenAIChatBackend,
)


class StaticBackend(InferenceBackend):
    def __init__(self, name, text="", delay=0.0):
        self.name = name
        self.text = text
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.text


def _chat_response(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))], usage=None
    )


@pytest.mark.asyncio
async def test_dispatches_by_provider():
    primary = StaticBackend("primary", '{"summary": "p"}')
    fallback = StaticBackend("fallback", '{"summary": "f"}')
    client = InferenceClient({Provider.PRIMARY: primary, Provider.FALLBACK: fallback})

    assert await client.infer(Provider.FALLBACK, "prompt") == '{"summary": "f"}'
    assert fallback.prompts == ["prompt"]
    assert primary.prompts == []


@pytest.mark.asyncio
async def test_empty_text_is_an_error():
    client = InferenceClient({Provider.PRIMARY: StaticBackend("primary", "   ")})
    with pytest.raises(InferenceError):
        await client.infer(Provider.PRIMARY, "prompt")


@pytest.mark.asyncio
async def test_timeout_is_an_error():
    slow = StaticBackend("primary", "{}", delay=1.0)
    client = InferenceClient({Provider.PRIMARY: slow}, timeout_seconds=0.01)

    with pytest.raises(InferenceError, match="timed out"):
        await client.infer(Provider.PRIMARY, "prompt")


@pytest.mark.asyncio
async def test_unexpected_backend_exception_is_wrapped():
    backend = StaticBackend("primary")
    backend.generate = AsyncMock(side_effect=KeyError("choices"))
    client = InferenceClient({Provider.PRIMARY: backend})

    with pytest.raises(InferenceError):
        await client.infer(Provider.PRIMARY, "prompt")


@pytest.mark.asyncio
async def test_openai_backend_reads_chat_content():
    sdk = SimpleNamespace(
        chat=SimpleNamespace(
            completions=SimpleNamespace(create=AsyncMock(return_value=_chat_response('{"a": 1}')))
        )
    )
    backend = OpenAIChatBackend(client=sdk)

    assert await backend.generate("hello") == '{"a": 1}'
    kwargs = sdk.chat.completions.create.await_args.kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert kwargs["model"] == settings.OPENAI_MODEL


def test_openai_text_normalization():
    legacy = SimpleNamespace(choices=[SimpleNamespace(message=None, text="legacy")])
    assert OpenAIChatBackend.extract_text(legacy) == "legacy"
    assert OpenAIChatBackend.extract_text(SimpleNamespace(choices=[])) == ""


@pytest.mark.asyncio
async def test_openai_backend_requires_api_key(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    with pytest.raises(InferenceError, match="not configured"):
        await OpenAIChatBackend().generate("hello")


@pytest.mark.asyncio
async def test_gemini_backend_joins_candidate_parts(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": '{"summary":'}, {"text": ' "ok"}'}]}}]},
        )

    backend = GeminiBackend(transport=httpx.MockTransport(handler))

    assert await backend.generate("prompt") == '{"summary": "ok"}'
    assert f"/models/{settings.GEMINI_MODEL}:generateContent" in seen["url"]
    assert "key=test-key" in seen["url"]


@pytest.mark.asyncio
async def test_gemini_non_success_status_is_an_error(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    backend = GeminiBackend(transport=httpx.MockTransport(lambda request: httpx.Response(429)))

    with pytest.raises(InferenceError) as exc:
        await backend.generate("prompt")

    assert exc.value.status_code == 429


@pytest.mark.asyncio
async def test_gemini_transport_failure_is_an_error(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")

    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    backend = GeminiBackend(transport=httpx.MockTransport(handler))

    with pytest.raises(InferenceError, match="ConnectError"):
        await backend.generate("prompt")


@pytest.mark.asyncio
async def test_gemini_without_candidates_surfaces_as_empty(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    backend = GeminiBackend(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    client = InferenceClient({Provider.FALLBACK: backend})

    with pytest.raises(InferenceError, match="Empty response"):
        await client.infer(Provider.FALLBACK, "prompt")

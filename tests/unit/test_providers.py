import json

import httpx
import pytest

from digest.config import get_settings
from digest.errors import ConfigError, EmptyChoicesError, EmptyContentError, ProviderError
from digest.models import ConversationMessage, Credentials
from digest.providers.base import ProviderEndpoint
from digest.providers.factory import (
    DEFAULT_FALLBACK_BASE_URL,
    DEFAULT_FALLBACK_MODEL,
    DEFAULT_MODEL,
    resolve_fallback_endpoint,
    resolve_primary_endpoint,
)
from digest.providers.openai_compat import OpenAICompatProvider

HISTORY = [
    ConversationMessage(role="system", content="You are concise."),
    ConversationMessage(role="user", content="hi"),
]
ENDPOINT = ProviderEndpoint(api_key="sk-test", base_url="http://llm.local/v1/", model="m-test")


def _provider(payload: object, status_code: int = 200) -> OpenAICompatProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return OpenAICompatProvider(ENDPOINT, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_generate_posts_history_and_returns_assistant_message() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"choices": [{"message": {"role": "model", "content": "hello"}}]}
        )

    provider = OpenAICompatProvider(ENDPOINT, transport=httpx.MockTransport(handler))
    message = await provider.generate(HISTORY)

    assert message == ConversationMessage(role="assistant", content="hello")
    assert seen[0].url.path == "/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer sk-test"
    body = json.loads(seen[0].content.decode("utf-8"))
    assert body == {
        "model": "m-test",
        "messages": [
            {"role": "system", "content": "You are concise."},
            {"role": "user", "content": "hi"},
        ],
    }


@pytest.mark.asyncio
async def test_generate_is_repeatable_for_identical_history() -> None:
    provider = _provider({"choices": [{"message": {"content": "same"}}]})
    first = await provider.generate(HISTORY)
    second = await provider.generate(HISTORY)
    assert first == second
    assert first.role == "assistant"
    assert first.content


@pytest.mark.asyncio
async def test_missing_choices_uses_embedded_raw_error() -> None:
    provider = _provider({"error": {"message": "x", "metadata": {"raw": "upstream overloaded"}}})
    with pytest.raises(EmptyChoicesError, match="upstream overloaded"):
        await provider.generate(HISTORY)


@pytest.mark.asyncio
async def test_missing_choices_dumps_payload() -> None:
    provider = _provider({"object": "chat.completion"})
    with pytest.raises(EmptyChoicesError) as excinfo:
        await provider.generate(HISTORY)
    assert json.loads(str(excinfo.value)) == {"object": "chat.completion"}


@pytest.mark.asyncio
async def test_empty_choice_list_is_rejected() -> None:
    with pytest.raises(EmptyChoicesError):
        await _provider({"choices": []}).generate(HISTORY)


@pytest.mark.asyncio
async def test_empty_content_is_rejected() -> None:
    provider = _provider({"choices": [{"message": {"role": "assistant", "content": ""}}]})
    with pytest.raises(EmptyContentError, match="No content in response"):
        await provider.generate(HISTORY)


@pytest.mark.asyncio
async def test_http_error_becomes_provider_error() -> None:
    provider = _provider({"error": "rate limited"}, status_code=429)
    with pytest.raises(ProviderError, match="429"):
        await provider.generate(HISTORY)


def test_primary_endpoint_defaults_from_settings() -> None:
    endpoint = resolve_primary_endpoint(get_settings())
    assert endpoint.api_key == "sk-primary"
    assert endpoint.base_url == "http://primary.local/v1"
    assert endpoint.model == DEFAULT_MODEL


def test_primary_endpoint_prefers_run_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_MODEL", "env-model")
    get_settings.cache_clear()
    settings = get_settings()
    assert resolve_primary_endpoint(settings).model == "env-model"

    endpoint = resolve_primary_endpoint(
        settings,
        model_hint="hint-model",
        credentials=Credentials(api_key="sk-run", base_url="http://run.local/v1"),
    )
    assert endpoint == ProviderEndpoint(
        api_key="sk-run", base_url="http://run.local/v1", model="hint-model"
    )


def test_primary_endpoint_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY")
    get_settings.cache_clear()
    with pytest.raises(ConfigError):
        resolve_primary_endpoint(get_settings())


def test_fallback_endpoint_only_with_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    assert resolve_fallback_endpoint(get_settings()) is None

    monkeypatch.setenv("FALLBACK_API_KEY", "fb-key")
    get_settings.cache_clear()
    endpoint = resolve_fallback_endpoint(get_settings())
    assert endpoint == ProviderEndpoint(
        api_key="fb-key", base_url=DEFAULT_FALLBACK_BASE_URL, model=DEFAULT_FALLBACK_MODEL
    )


def test_endpoint_repr_hides_api_key() -> None:
    assert "sk-test" not in repr(ENDPOINT)

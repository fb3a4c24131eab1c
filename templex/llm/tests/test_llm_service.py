"""LLMService and LiteLLMClient behavior with the network replaced by fakes."""
from types import SimpleNamespace

import pytest

from templex.llm import client_litellm
from templex.llm.client_litellm import LiteLLMClient
from templex.llm.errors import LLMAuthError, LLMResponseInvalid, LLMUnavailable
from templex.llm.ports import CompletionProvider
from templex.llm.service import LLMService
from templex.llm.settings import LLMSettings
from templex.llm.types import LLMMessage, LLMRequest, LLMResponse


class FakeClient:
    def __init__(self, text: str = '{"ok": true}') -> None:
        self.text = text
        self.calls: list[tuple[str, LLMRequest, dict]] = []

    async def acompletion(self, model, req, *, timeout_s=None, api_base=None, api_key=None):
        self.calls.append((model, req, {"timeout_s": timeout_s, "api_base": api_base}))
        return LLMResponse(text=self.text, provider="fake", model=model, latency_ms=1)


def _raw(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text), finish_reason="stop")],
        usage=None,
    )


@pytest.mark.asyncio
async def test_complete_builds_system_and_user_messages() -> None:
    client = FakeClient()
    settings = LLMSettings(model="ollama/llama3.2", temperature=0.1, max_output_tokens=256)
    service = LLMService(settings, client=client)

    text = await service.complete("system text", "user text")

    assert text == '{"ok": true}'
    model, req, opts = client.calls[0]
    assert model == "ollama/llama3.2"
    assert [m.role for m in req.messages] == ["system", "user"]
    assert req.messages[1].content == "user text"
    assert req.temperature == 0.1
    assert req.max_output_tokens == 256
    assert req.response_format is None
    assert opts["timeout_s"] == settings.default_timeout_s


@pytest.mark.asyncio
async def test_complete_overrides_and_json_mode() -> None:
    client = FakeClient()
    service = LLMService(LLMSettings(json_mode=True), client=client)
    await service.complete("s", "u", temperature=0.9, max_tokens=50)
    _, req, _ = client.calls[0]
    assert req.temperature == 0.9
    assert req.max_output_tokens == 50
    assert req.response_format == {"type": "json_object"}


@pytest.mark.asyncio
async def test_empty_text_raises_response_invalid() -> None:
    service = LLMService(LLMSettings(), client=FakeClient(text="   "))
    with pytest.raises(LLMResponseInvalid):
        await service.chat(LLMRequest(messages=[LLMMessage(role="user", content="x")]))


def test_service_satisfies_completion_provider() -> None:
    assert isinstance(LLMService(LLMSettings(), client=FakeClient()), CompletionProvider)


def test_settings_reject_inverted_backoff() -> None:
    with pytest.raises(ValueError):
        LLMSettings(retry_backoff_base_s=4.0, retry_backoff_max_s=1.0)


@pytest.mark.asyncio
async def test_client_retries_retryable_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    class ServiceUnavailableError(Exception):
        pass

    calls = {"n": 0}

    async def fake_acompletion(**kwargs):
        calls["n"] += 1
        if calls["n"] < 3:
            raise ServiceUnavailableError("down")
        return _raw("hello")

    monkeypatch.setattr(client_litellm, "acompletion", fake_acompletion)
    client = LiteLLMClient(max_retries=2, backoff_base_s=0.0, backoff_max_s=0.0)
    req = LLMRequest(messages=[LLMMessage(role="user", content="x")])

    resp = await client.acompletion("ollama/llama3.2", req, timeout_s=1.0)

    assert resp.text == "hello"
    assert resp.provider == "ollama"
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_client_gives_up_after_max_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    class APIConnectionError(Exception):
        pass

    async def fake_acompletion(**kwargs):
        raise APIConnectionError("refused")

    monkeypatch.setattr(client_litellm, "acompletion", fake_acompletion)
    client = LiteLLMClient(max_retries=1, backoff_base_s=0.0, backoff_max_s=0.0)
    req = LLMRequest(messages=[LLMMessage(role="user", content="x")])

    with pytest.raises(LLMUnavailable):
        await client.acompletion("ollama/llama3.2", req)


@pytest.mark.asyncio
async def test_client_does_not_retry_auth_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    class AuthenticationError(Exception):
        pass

    calls = {"n": 0}

    async def fake_acompletion(**kwargs):
        calls["n"] += 1
        raise AuthenticationError("bad key")

    monkeypatch.setattr(client_litellm, "acompletion", fake_acompletion)
    client = LiteLLMClient(max_retries=3, backoff_base_s=0.0, backoff_max_s=0.0)
    req = LLMRequest(messages=[LLMMessage(role="user", content="x")])

    with pytest.raises(LLMAuthError):
        await client.acompletion("gpt-4", req)
    assert calls["n"] == 1

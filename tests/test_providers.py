# -*- coding: utf-8 -*-
"""Tests for provider construction and HTTP/SDK calls."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from vision_audit.errors import ConfigurationError, ParseContractError, ProviderError
from vision_audit.models import Config
from vision_audit.providers import (
    AnthropicProvider,
    LocalProvider,
    OpenAIProvider,
    OpenRouterProvider,
    get_provider,
)
from vision_audit.providers import http

from tests.fakes import CHECKOUT_ANSWER


OPENROUTER_KEY = "sk-or-v1-0123456789abcdef"


class FakeResponse:
    def __init__(self, status_code: int, payload=None, text: str = ""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class RecordingPost:
    def __init__(self, response: FakeResponse):
        self.response = response
        self.calls: list[dict] = []

    def __call__(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return self.response


def openai_envelope(text: str) -> dict:
    return {
        "model": "openai/gpt-4o",
        "choices": [{"message": {"role": "assistant", "content": text}}],
        "usage": {"total_tokens": 1234},
    }


async def test_openrouter_posts_chat_completion(monkeypatch, screenshot, checkout_context) -> None:
    post = RecordingPost(FakeResponse(200, openai_envelope(CHECKOUT_ANSWER)))
    monkeypatch.setattr(http.requests, "post", post)
    provider = OpenRouterProvider(api_key=OPENROUTER_KEY, model="openai/gpt-4o", timeout=30)

    result = await provider.analyze(screenshot, checkout_context, "prompt text")

    call = post.calls[0]
    assert call["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert call["headers"]["Authorization"] == f"Bearer {OPENROUTER_KEY}"
    assert call["headers"]["X-Title"] == "vision-audit"
    assert "HTTP-Referer" in call["headers"]
    assert call["json"]["model"] == "openai/gpt-4o"
    assert call["timeout"] == 30
    assert result.provider == "openrouter"
    assert result.tokens_used == 1234
    assert result.overall_score == 6
    assert len(result.critical_issues) == 1


async def test_openrouter_anthropic_model_uses_messages_dialect(monkeypatch, screenshot, checkout_context) -> None:
    payload = {
        "model": "anthropic/claude-3.5-sonnet",
        "content": [{"type": "text", "text": CHECKOUT_ANSWER}],
        "usage": {"input_tokens": 10, "output_tokens": 5},
    }
    post = RecordingPost(FakeResponse(200, payload))
    monkeypatch.setattr(http.requests, "post", post)
    provider = OpenRouterProvider(api_key=OPENROUTER_KEY, model="anthropic/claude-3.5-sonnet")

    result = await provider.analyze(screenshot, checkout_context, "prompt text")

    call = post.calls[0]
    assert call["url"].endswith("/messages")
    assert call["headers"]["x-api-key"] == OPENROUTER_KEY
    assert call["headers"]["Authorization"] == f"Bearer {OPENROUTER_KEY}"
    assert call["json"]["messages"][0]["content"][0]["type"] == "image"
    assert result.tokens_used == 15


async def test_non_2xx_raises_provider_error(monkeypatch, screenshot, checkout_context) -> None:
    monkeypatch.setattr(
        http.requests, "post", RecordingPost(FakeResponse(429, text='{"error": "rate limited"}'))
    )
    provider = OpenRouterProvider(api_key=OPENROUTER_KEY)

    with pytest.raises(ProviderError) as excinfo:
        await provider.analyze(screenshot, checkout_context, "prompt text")

    assert excinfo.value.status == 429
    assert "rate limited" in str(excinfo.value)


async def test_invalid_json_body_raises_parse_contract_error(monkeypatch, screenshot, checkout_context) -> None:
    monkeypatch.setattr(http.requests, "post", RecordingPost(FakeResponse(200, None, text="<html>")))
    provider = OpenRouterProvider(api_key=OPENROUTER_KEY)

    with pytest.raises(ParseContractError):
        await provider.analyze(screenshot, checkout_context, "prompt text")


async def test_local_provider_needs_no_key(monkeypatch, screenshot, checkout_context) -> None:
    post = RecordingPost(FakeResponse(200, openai_envelope(CHECKOUT_ANSWER)))
    monkeypatch.setattr(http.requests, "post", post)
    provider = LocalProvider(host="http://localhost:11434/", model="llava")

    result = await provider.analyze(screenshot, checkout_context, "prompt text")

    assert post.calls[0]["url"] == "http://localhost:11434/v1/chat/completions"
    assert "Authorization" not in post.calls[0]["headers"]
    assert result.provider == "local"


def test_local_provider_availability_checks_tags(monkeypatch) -> None:
    seen = []

    def fake_get(url, headers=None, timeout=None):
        seen.append(url)
        return FakeResponse(200, {"models": []})

    monkeypatch.setattr(http.requests, "get", fake_get)

    assert LocalProvider(host="http://ollama:11434").is_available() is True
    assert seen == ["http://ollama:11434/api/tags"]


@pytest.mark.parametrize("key", [None, "", "test", "short"])
def test_missing_or_placeholder_keys_are_rejected(key) -> None:
    with pytest.raises(ConfigurationError):
        OpenRouterProvider(api_key=key)


async def test_openai_provider_uses_sdk_client(screenshot, checkout_context) -> None:
    provider = OpenAIProvider(api_key="sk-proj-0123456789", model="openai/gpt-4o")
    captured = {}

    def create(**body):
        captured.update(body)
        return SimpleNamespace(model_dump=lambda: openai_envelope(CHECKOUT_ANSWER))

    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    result = await provider.analyze(screenshot, checkout_context, "prompt text")

    assert provider.model == "gpt-4o"
    assert captured["model"] == "gpt-4o"
    assert captured["messages"][0]["content"][1]["type"] == "image_url"
    assert result.provider == "openai"
    assert result.overall_score == 6


async def test_anthropic_provider_uses_sdk_client(screenshot, checkout_context) -> None:
    provider = AnthropicProvider(
        api_key="sk-ant-0123456789",
        model="anthropic/claude-3-5-sonnet-20241022",
        base_url="https://proxy.example.com/v1",
    )
    captured = {}

    def create(**body):
        captured.update(body)
        return SimpleNamespace(model_dump=lambda: {
            "model": "claude-3-5-sonnet-20241022",
            "content": [{"type": "text", "text": CHECKOUT_ANSWER}],
            "usage": {"input_tokens": 100, "output_tokens": 50},
        })

    provider.client = SimpleNamespace(messages=SimpleNamespace(create=create))

    result = await provider.analyze(screenshot, checkout_context, "prompt text")

    assert captured["model"] == "claude-3-5-sonnet-20241022"
    assert "system" in captured
    assert captured["messages"][0]["content"][0]["source"]["type"] == "base64"
    assert result.tokens_used == 150
    assert result.provider == "anthropic"


def test_sdk_provider_rejects_foreign_message_format() -> None:
    with pytest.raises(ConfigurationError):
        OpenAIProvider(api_key="sk-proj-0123456789", message_format="anthropic")


def test_get_provider_dispatch() -> None:
    config = Config(
        provider="openrouter",
        openrouter_api_key=OPENROUTER_KEY,
        openai_api_key="sk-proj-0123456789",
        base_url="https://gateway.example.com/api/v1",
    )

    primary = get_provider(config)
    assert isinstance(primary, OpenRouterProvider)
    assert primary.base_url == "https://gateway.example.com/api/v1"
    assert primary.get_model_info()["dialect"] == "openai"

    assert isinstance(get_provider(config, "openai", "openai/gpt-4o-mini"), OpenAIProvider)
    assert isinstance(get_provider(config, "local", "llava"), LocalProvider)

    with pytest.raises(ConfigurationError):
        get_provider(config, "anthropic")
    with pytest.raises(ConfigurationError):
        get_provider(config, "bogus")


def test_generic_api_key_applies_to_primary_provider_only() -> None:
    config = Config(provider="openrouter", api_key=OPENROUTER_KEY)

    assert isinstance(get_provider(config), OpenRouterProvider)
    with pytest.raises(ConfigurationError):
        get_provider(config, "openai")

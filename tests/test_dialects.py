# -*- coding: utf-8 -*-
"""Tests for wire dialect detection, request building and response parsing."""

from __future__ import annotations

import pytest

from vision_audit.errors import ParseContractError
from vision_audit.providers.dialects import DialectHandler, detect_dialect, strip_vendor_prefix


@pytest.mark.parametrize(
    ("provider", "model", "message_format", "expected"),
    [
        ("openrouter", "openai/gpt-4o", "anthropic", "anthropic"),
        ("anthropic", "gpt-4o", "openai", "openai"),
        ("anthropic", "whatever", "auto", "anthropic"),
        ("openai", "claude-3-opus", "auto", "openai"),
        ("local", "llava", "auto", "openai"),
        ("openrouter", "anthropic/claude-3.5-sonnet", "auto", "anthropic"),
        ("openrouter", "openai/gpt-4o-mini", "auto", "openai"),
        ("openrouter", "google/gemini-pro-vision", "auto", "openai"),
    ],
)
def test_detect_dialect(provider, model, message_format, expected) -> None:
    assert detect_dialect(provider, model, message_format) == expected


def test_strip_vendor_prefix() -> None:
    assert strip_vendor_prefix("openai/gpt-4o") == "gpt-4o"
    assert strip_vendor_prefix("gpt-4o") == "gpt-4o"


def test_openai_body_carries_image_as_data_url(screenshot) -> None:
    handler = DialectHandler("openai", "gpt-4o", max_tokens=1000, temperature=0.2, system_prompt="Be brief")

    body = handler.build_body("Review this page", screenshot)

    assert body["model"] == "gpt-4o"
    assert body["max_tokens"] == 1000
    assert body["messages"][0] == {"role": "system", "content": "Be brief"}
    text_part, image_part = body["messages"][1]["content"]
    assert text_part == {"type": "text", "text": "Review this page"}
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,iVBOR")


def test_anthropic_body_uses_typed_image_block(screenshot) -> None:
    handler = DialectHandler("anthropic", "claude-3-5-sonnet-20241022", system_prompt="Be brief")

    body = handler.build_body("Review this page", screenshot)

    assert body["system"] == "Be brief"
    assert body["max_tokens"] == 4000
    assert len(body["messages"]) == 1
    image_block, text_block = body["messages"][0]["content"]
    assert image_block["type"] == "image"
    assert image_block["source"] == {
        "type": "base64",
        "media_type": "image/png",
        "data": screenshot.to_base64(),
    }
    assert text_block == {"type": "text", "text": "Review this page"}


def test_headers_per_dialect() -> None:
    openai_headers = DialectHandler("openai", "m").build_headers("sk-1234567890")
    assert openai_headers["Authorization"] == "Bearer sk-1234567890"

    anthropic_headers = DialectHandler("anthropic", "m").build_headers("sk-ant-1234567890")
    assert anthropic_headers["x-api-key"] == "sk-ant-1234567890"
    assert anthropic_headers["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in anthropic_headers

    assert "Authorization" not in DialectHandler("openai", "m").build_headers(None)


def test_endpoints_follow_dialect() -> None:
    assert DialectHandler("openai", "m").endpoint("https://api.openai.com/v1/") == (
        "https://api.openai.com/v1/chat/completions"
    )
    assert DialectHandler("anthropic", "m").endpoint("https://api.anthropic.com/v1") == (
        "https://api.anthropic.com/v1/messages"
    )


def test_parse_openai_response() -> None:
    reply = DialectHandler("openai", "m").parse_response({
        "model": "gpt-4o-2024-08-06",
        "choices": [{"message": {"role": "assistant", "content": "OVERALL UX SCORE: 7/10"}}],
        "usage": {"prompt_tokens": 900, "completion_tokens": 100},
    })
    assert reply.text == "OVERALL UX SCORE: 7/10"
    assert reply.tokens_used == 1000
    assert reply.model == "gpt-4o-2024-08-06"


def test_parse_anthropic_response() -> None:
    reply = DialectHandler("anthropic", "m").parse_response({
        "model": "claude-3-5-sonnet-20241022",
        "content": [{"type": "text", "text": "Looks "}, {"type": "text", "text": "good"}],
        "usage": {"input_tokens": 1200, "output_tokens": 300},
    })
    assert reply.text == "Looks good"
    assert reply.tokens_used == 1500


@pytest.mark.parametrize(
    ("dialect", "payload"),
    [
        ("openai", {}),
        ("openai", {"choices": []}),
        ("openai", {"choices": [{"message": {"content": "  "}}]}),
        ("anthropic", {"content": []}),
        ("anthropic", {"content": [{"type": "tool_use", "id": "x"}]}),
        ("anthropic", ["not", "an", "object"]),
    ],
)
def test_unusable_envelopes_raise(dialect, payload) -> None:
    with pytest.raises(ParseContractError):
        DialectHandler(dialect, "m").parse_response(payload)

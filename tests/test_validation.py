# -*- coding: utf-8 -*-
"""Tests for screenshot and context validation."""

from __future__ import annotations

import pytest

from vision_audit.errors import InvalidInputError
from vision_audit.models import AnalysisContext, ScreenshotData
from vision_audit.validation import (
    MAX_SCREENSHOT_BYTES,
    is_supported_image,
    validate_context,
    validate_screenshot,
)

from tests.fakes import PNG_1X1_BYTES


def test_supported_signatures() -> None:
    assert is_supported_image(PNG_1X1_BYTES)
    assert is_supported_image(b"\xff\xd8\xff\xe0" + b"\x00" * 16)
    assert is_supported_image(b"RIFF\x24\x00\x00\x00WEBPVP8 ")
    assert not is_supported_image(b"GIF89a\x01\x00\x01\x00")
    assert not is_supported_image(b"\x89PNG")


def test_empty_screenshot_is_rejected() -> None:
    with pytest.raises(InvalidInputError, match="empty"):
        validate_screenshot(ScreenshotData(data=b""))


def test_oversized_screenshot_is_rejected() -> None:
    data = PNG_1X1_BYTES + b"\x00" * MAX_SCREENSHOT_BYTES
    with pytest.raises(InvalidInputError, match="too large"):
        validate_screenshot(ScreenshotData(data=data))


def test_media_type_follows_signature() -> None:
    assert ScreenshotData(data=PNG_1X1_BYTES).media_type == "image/png"
    assert ScreenshotData(data=b"\xff\xd8\xff\xe0" + b"\x00" * 16).media_type == "image/jpeg"


def test_context_requires_stage_and_intent() -> None:
    validate_context(AnalysisContext(stage="checkout", user_intent="pay"))
    with pytest.raises(InvalidInputError):
        validate_context(AnalysisContext(stage="  ", user_intent="pay"))
    with pytest.raises(InvalidInputError):
        validate_context(AnalysisContext(stage="checkout"))

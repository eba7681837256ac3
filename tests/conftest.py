# -*- coding: utf-8 -*-
"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from vision_audit.models import AnalysisContext, Config, ScreenshotData, UserContext

from tests.fakes import PNG_1X1_BYTES


ENV_VARS = (
    "VISION_PROVIDER", "VISION_MODEL", "VISION_FALLBACK_MODEL", "VISION_API_KEY",
    "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "OPENROUTER_API_KEY", "VISION_BASE_URL",
    "OLLAMA_HOST", "VISION_MESSAGE_FORMAT", "VISION_MAX_TOKENS", "VISION_TEMPERATURE",
    "VISION_REQUEST_TIMEOUT", "ANALYSIS_TYPES", "BATCH_CONCURRENCY", "BATCH_TIMEOUT_MS",
    "RETRY_MAX", "RETRY_BASE_DELAY_MS", "RETRY_JITTER", "REPORTERS", "REPORT_DIR",
    "S3_BUCKET", "S3_REGION", "S3_PREFIX", "S3_ENDPOINT_URL",
    "VIEWPORT_WIDTH", "VIEWPORT_HEIGHT",
)


@pytest.fixture
def screenshot() -> ScreenshotData:
    return ScreenshotData(data=PNG_1X1_BYTES)


@pytest.fixture
def checkout_context() -> AnalysisContext:
    return AnalysisContext(
        stage="checkout",
        user_intent="complete purchase",
        user_context=UserContext(persona="mobile-consumer", device_context="mobile"),
        critical_elements=["#place-order"],
        page_url="https://shop.example.com/checkout",
    )


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(provider="local", model="llava", report_dir=tmp_path)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate configuration tests from the real environment and .env files"""
    for name in ENV_VARS:
        # setenv first so teardown also removes values load_dotenv adds
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path

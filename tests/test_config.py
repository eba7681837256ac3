# -*- coding: utf-8 -*-
"""Tests for configuration loading."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vision_audit.config import load_config
from vision_audit.models import Config


def test_defaults(clean_env) -> None:
    config = load_config()

    assert config.provider == "openrouter"
    assert config.model == "openai/gpt-4o"
    assert config.concurrency == 2
    assert config.analysis_types == ["usability", "accessibility", "visual-design"]
    assert config.reporters == "jsonl"

    policy = config.retry_policy()
    assert policy.max_attempts == 2
    assert policy.base_delay == 0.5
    assert policy.use_jitter is True


def test_environment_overrides(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("VISION_PROVIDER", "anthropic")
    monkeypatch.setenv("BATCH_CONCURRENCY", "4")
    monkeypatch.setenv("RETRY_JITTER", "false")
    monkeypatch.setenv("RETRY_BASE_DELAY_MS", "250")
    monkeypatch.setenv("ANALYSIS_TYPES", "usability, performance")
    monkeypatch.setenv("REPORT_DIR", str(clean_env / "reports"))

    config = load_config()

    assert config.provider == "anthropic"
    assert config.concurrency == 4
    assert config.retry_policy().use_jitter is False
    assert config.retry_policy().base_delay == 0.25
    assert config.analysis_types == ["usability", "performance"]
    assert config.report_dir == clean_env / "reports"


def test_env_file_is_loaded(clean_env) -> None:
    env_file = clean_env / "audit.env"
    env_file.write_text(
        "VISION_PROVIDER=local\nVISION_MODEL=llava\nS3_BUCKET=audits\n", encoding="utf-8"
    )

    config = load_config(env_file)

    assert config.provider == "local"
    assert config.model == "llava"
    assert config.s3_bucket == "audits"


def test_out_of_range_values_are_rejected(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("BATCH_CONCURRENCY", "20")
    with pytest.raises(ValidationError):
        load_config()


def test_unknown_provider_is_rejected(clean_env, monkeypatch) -> None:
    monkeypatch.setenv("VISION_PROVIDER", "azure")
    with pytest.raises(ValidationError):
        load_config()


def test_generic_key_only_for_primary_provider() -> None:
    config = Config(provider="openai", api_key="sk-generic-123456", anthropic_api_key="sk-ant-123456789")

    assert config.api_key_for("openai") == "sk-generic-123456"
    assert config.api_key_for("anthropic") == "sk-ant-123456789"
    assert config.has_api_key("openrouter") is False

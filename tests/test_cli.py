# -*- coding: utf-8 -*-
"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from vision_audit import __version__, cli
from vision_audit.analyzer import Analyzer
from vision_audit.models import Config

from tests.fakes import CHECKOUT_ANSWER, FakeProvider, FakeSessionFactory


class FakeFactoryBuilder:
    def __init__(self, fail_targets=None):
        self.factory = FakeSessionFactory(fail_targets=fail_targets)

    def from_config(self, config, save_screenshots=False):
        return self.factory


@pytest.fixture
def patched_cli(monkeypatch, tmp_path):
    config = Config(provider="local", model="llava", report_dir=tmp_path, retry_base_delay_ms=100)
    monkeypatch.setattr(cli, "load_config", lambda env_file=None: config)
    monkeypatch.setattr(
        cli, "Analyzer", lambda cfg: Analyzer(cfg, provider=FakeProvider([CHECKOUT_ANSWER]))
    )
    builder = FakeFactoryBuilder(fail_targets={"https://shop.example.com/broken"})
    monkeypatch.setattr(cli, "PlaywrightSessionFactory", builder)
    return tmp_path


def test_version() -> None:
    result = CliRunner().invoke(cli.main, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_analyze_json_output(patched_cli) -> None:
    result = CliRunner().invoke(cli.main, [
        "analyze",
        "--url", "https://shop.example.com/checkout",
        "--stage", "checkout",
        "--intent", "complete purchase",
        "--persona", "mobile-consumer",
        "--output", "json",
    ])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["overall_score"] == 6
    assert data["provider"] == "fake"
    assert "raw_analysis" not in data
    assert data["report_path"].endswith(".json")
    assert (patched_cli / data["report_path"].split("/")[-1]).exists()


def test_analyze_requires_stage(patched_cli) -> None:
    result = CliRunner().invoke(cli.main, [
        "analyze", "--url", "https://shop.example.com/", "--intent", "browse",
    ])

    assert result.exit_code == 2
    assert "--stage" in result.output


def test_analyze_capture_failure_exits_nonzero(patched_cli) -> None:
    result = CliRunner().invoke(cli.main, [
        "analyze",
        "--url", "https://shop.example.com/broken",
        "--stage", "home",
        "--intent", "browse",
        "--output", "json",
    ])

    assert result.exit_code == 1
    assert "Timed out" in result.output


def test_batch_json_output(patched_cli) -> None:
    items_file = patched_cli / "pages.json"
    items_file.write_text(json.dumps([
        {"target": "https://shop.example.com/", "context": {"stage": "home", "user_intent": "browse"}},
        {"target": "https://shop.example.com/broken", "context": {"stage": "cart", "user_intent": "pay"}},
    ]), encoding="utf-8")

    result = CliRunner().invoke(cli.main, [
        "batch", str(items_file), "--run-id", "cli-1", "--reporters", "none", "--output", "json",
    ])

    # the failed item logs a warning, so read the summary file rather than stdout
    assert result.exit_code == 0, result.output
    data = json.loads((patched_cli / "batch-summary-cli-1.json").read_text(encoding="utf-8"))
    assert data["run_id"] == "cli-1"
    assert [r["ok"] for r in data["results"]] == [True, False]
    assert '"run_id": "cli-1"' in result.output


def test_batch_rejects_non_array_file(patched_cli) -> None:
    items_file = patched_cli / "pages.json"
    items_file.write_text('{"target": "https://shop.example.com/"}', encoding="utf-8")

    result = CliRunner().invoke(cli.main, ["batch", str(items_file)])

    assert result.exit_code == 2
    assert "JSON array" in result.output


def test_journey_command_writes_summary(patched_cli) -> None:
    journey_file = patched_cli / "purchase.json"
    journey_file.write_text(json.dumps({
        "name": "purchase",
        "persona": "mobile-consumer",
        "stages": [
            {"name": "home", "page": "/", "user_goal": "find a product"},
            {"name": "cart", "page": "/broken", "user_goal": "review items"},
        ],
    }), encoding="utf-8")

    result = CliRunner().invoke(cli.main, [
        "journey", str(journey_file),
        "--base-url", "https://shop.example.com",
        "--run-id", "trip-cli",
        "--reporters", "none",
    ])

    assert result.exit_code == 0, result.output
    data = json.loads((patched_cli / "journey-summary-trip-cli.json").read_text(encoding="utf-8"))
    assert [r["target"] for r in data["results"]] == [
        "https://shop.example.com/",
        "https://shop.example.com/broken",
    ]
    assert [r["ok"] for r in data["results"]] == [True, False]
    assert "Journey purchase" in result.output


def test_journey_requires_stages(patched_cli) -> None:
    journey_file = patched_cli / "empty.json"
    journey_file.write_text('{"name": "purchase", "stages": []}', encoding="utf-8")

    result = CliRunner().invoke(cli.main, [
        "journey", str(journey_file), "--base-url", "https://shop.example.com",
    ])

    assert result.exit_code == 1
    assert "stages" in result.output


def test_rich_output_flags_critical_issues(patched_cli) -> None:
    result = CliRunner().invoke(cli.main, [
        "analyze",
        "--url", "https://shop.example.com/checkout",
        "--stage", "checkout",
        "--intent", "complete purchase",
    ])

    assert result.exit_code == 0, result.output
    assert "1 critical issue(s) block user success" in result.output


def test_rich_output_keeps_bracketed_categories(patched_cli) -> None:
    result = CliRunner().invoke(cli.main, [
        "analyze",
        "--url", "https://shop.example.com/checkout",
        "--stage", "checkout",
        "--intent", "complete purchase",
    ])

    assert result.exit_code == 0, result.output
    assert "[accessibility]" in result.output

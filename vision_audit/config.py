"""
Configuration Management

Loads configuration from .env files and provides typed config objects.
Handles API keys, provider settings, batch/retry settings and reporters.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .models import Config


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_config(env_file: Optional[Path] = None) -> Config:
    """
    Load configuration from .env file and environment variables.

    Searches for .env file in:
    1. Provided env_file path
    2. Current directory
    3. User's home directory

    Environment variables override .env file values.

    Args:
        env_file: Optional path to .env file

    Returns:
        Config object with all settings

    Raises:
        pydantic.ValidationError: If a value is out of range or unknown

    Example:
        config = load_config()
        provider = get_provider(config)
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
    elif Path(".env").exists():
        load_dotenv(".env")
    elif (Path.home() / ".env").exists():
        load_dotenv(Path.home() / ".env")

    defaults = Config()

    config = Config(
        provider=os.getenv("VISION_PROVIDER", defaults.provider),
        model=os.getenv("VISION_MODEL", defaults.model),
        fallback_model=os.getenv("VISION_FALLBACK_MODEL") or None,
        api_key=os.getenv("VISION_API_KEY") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
        base_url=os.getenv("VISION_BASE_URL") or None,
        ollama_host=os.getenv("OLLAMA_HOST", defaults.ollama_host),
        message_format=os.getenv("VISION_MESSAGE_FORMAT", defaults.message_format),
        max_tokens=int(os.getenv("VISION_MAX_TOKENS", str(defaults.max_tokens))),
        temperature=float(os.getenv("VISION_TEMPERATURE", str(defaults.temperature))),
        request_timeout=float(os.getenv("VISION_REQUEST_TIMEOUT", str(defaults.request_timeout))),
        analysis_types=_env_list("ANALYSIS_TYPES", list(defaults.analysis_types)),
        concurrency=int(os.getenv("BATCH_CONCURRENCY", str(defaults.concurrency))),
        batch_timeout_ms=int(os.getenv("BATCH_TIMEOUT_MS", str(defaults.batch_timeout_ms))),
        retry_max=int(os.getenv("RETRY_MAX", str(defaults.retry_max))),
        retry_base_delay_ms=int(os.getenv("RETRY_BASE_DELAY_MS", str(defaults.retry_base_delay_ms))),
        retry_jitter=_env_bool("RETRY_JITTER", defaults.retry_jitter),
        reporters=os.getenv("REPORTERS", defaults.reporters),
        report_dir=Path(os.getenv("REPORT_DIR", str(defaults.report_dir))),
        s3_bucket=os.getenv("S3_BUCKET") or None,
        s3_region=os.getenv("S3_REGION", defaults.s3_region),
        s3_prefix=os.getenv("S3_PREFIX", defaults.s3_prefix),
        s3_endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
        viewport_width=int(os.getenv("VIEWPORT_WIDTH", str(defaults.viewport_width))),
        viewport_height=int(os.getenv("VIEWPORT_HEIGHT", str(defaults.viewport_height))),
    )

    return config

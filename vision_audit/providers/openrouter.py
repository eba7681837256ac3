"""
OpenRouter Vision Provider

One API key for many vendors' vision models ("openai/gpt-4o",
"anthropic/claude-3.5-sonnet", ...). The wire dialect follows the model
name unless a message format is forced.
"""

from typing import Optional

from .base import HTTPVisionProvider, require_api_key
from .dialects import DEFAULT_BASE_URLS, DialectHandler, detect_dialect
from .http import get_ok


REFERER = "https://github.com/vision-audit/vision-audit"
TITLE = "vision-audit"


class OpenRouterProvider(HTTPVisionProvider):
    """
    Vision provider using the OpenRouter gateway.

    Example:
        provider = OpenRouterProvider(api_key="sk-or-...", model="openai/gpt-4o")
        result = await provider.analyze(screenshot, context, prompt)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "openai/gpt-4o",
        base_url: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 120.0,
        message_format: str = "auto",
    ):
        self.api_key = require_api_key(api_key, "OpenRouter", "OPENROUTER_API_KEY")
        self.model = model
        self.base_url = (base_url or DEFAULT_BASE_URLS["openrouter"]).rstrip("/")
        self.timeout = timeout
        self.handler = DialectHandler(
            detect_dialect("openrouter", model, message_format),
            model,
            max_tokens,
            temperature,
        )

    @property
    def name(self) -> str:
        return "openrouter"

    def is_available(self) -> bool:
        return bool(self.api_key) and get_ok(
            f"{self.base_url}/models", headers={"Authorization": f"Bearer {self.api_key}"}
        )

    def headers(self) -> dict:
        headers = super().headers()
        headers["HTTP-Referer"] = REFERER
        headers["X-Title"] = TITLE
        return headers

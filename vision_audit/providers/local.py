"""
Local LLM Vision Provider

Analyzes screenshots with local vision models served by Ollama, through
Ollama's OpenAI-compatible endpoint.
"""

from typing import Optional

from .base import HTTPVisionProvider
from .dialects import DialectHandler, detect_dialect
from .http import get_ok


class LocalProvider(HTTPVisionProvider):
    """
    Vision provider using local LLMs through Ollama.

    Fully offline, no API costs, no key required.

    Requirements:
    - Ollama installed (https://ollama.ai/)
    - Vision model pulled (e.g., `ollama pull llava`)

    Example:
        provider = LocalProvider(host="http://localhost:11434", model="llava")
        result = await provider.analyze(screenshot, context, prompt)
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llava",
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 120.0,
        message_format: str = "auto",
    ):
        """
        Initialize local LLM provider.

        Args:
            host: Ollama server URL (default: http://localhost:11434)
            model: Vision model name; run `ollama list` to see available models
            base_url: API root override (default: {host}/v1)
            api_key: Optional bearer token for authenticating proxies
        """
        self.host = host.rstrip("/")
        self.model = model
        self.base_url = (base_url or f"{self.host}/v1").rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.handler = DialectHandler(
            detect_dialect("local", model, message_format),
            model,
            max_tokens,
            temperature,
        )

    @property
    def name(self) -> str:
        return "local"

    def is_available(self) -> bool:
        """
        Check if the Ollama server is running.

        Returns:
            True if server is reachable, False otherwise
        """
        return get_ok(f"{self.host}/api/tags")

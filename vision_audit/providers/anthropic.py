"""
Anthropic Claude Vision Provider

Analyzes screenshots with Claude's vision capabilities through the official
SDK (Messages API).
"""

import asyncio
import logging
from typing import Optional

import anthropic

from ..errors import ConfigurationError, ProviderError
from ..models import ScreenshotData
from .base import VisionProvider, require_api_key
from .dialects import DialectHandler, ProviderResponse, detect_dialect, strip_vendor_prefix


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a senior UX and accessibility reviewer. Follow the requested "
    "response format exactly."
)


class AnthropicProvider(VisionProvider):
    """
    Vision provider using Anthropic's Claude models.

    Example:
        provider = AnthropicProvider(api_key="sk-ant-...")
        result = await provider.analyze(screenshot, context, prompt)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-3-5-sonnet-20241022",
        base_url: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 120.0,
        message_format: str = "auto",
    ):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key (get from https://console.anthropic.com/)
            model: Vision-capable Claude model; an "anthropic/" prefix is dropped
            base_url: API root override; a trailing "/v1" is removed because
                the SDK appends it itself
            max_tokens: Completion token limit (mandatory for this API)
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            message_format: Must resolve to the anthropic dialect

        Raises:
            ConfigurationError: If the key is missing or the dialect is openai
        """
        self._api_key = require_api_key(api_key, "Anthropic", "ANTHROPIC_API_KEY")
        if detect_dialect("anthropic", model, message_format) != "anthropic":
            raise ConfigurationError("The anthropic provider only speaks the anthropic message format")

        if base_url and base_url.rstrip("/").endswith("/v1"):
            base_url = base_url.rstrip("/")[: -len("/v1")]

        self.model = strip_vendor_prefix(model)
        self.handler = DialectHandler(
            "anthropic", self.model, max_tokens, temperature, system_prompt=SYSTEM_PROMPT
        )
        self.client = anthropic.Anthropic(
            api_key=self._api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def name(self) -> str:
        """Provider name for identification"""
        return "anthropic"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _complete(self, screenshot: ScreenshotData, prompt: str) -> ProviderResponse:
        body = self.handler.build_body(prompt, screenshot)
        logger.debug("Anthropic request (model=%s)", self.model)

        try:
            response = await asyncio.to_thread(self.client.messages.create, **body)
        except anthropic.APIStatusError as e:
            raise ProviderError(
                "Anthropic API error", status=e.status_code, body=e.response.text
            ) from e
        except anthropic.APIError as e:
            raise ProviderError(f"Anthropic API error: {e}") from e

        return self.handler.parse_response(response.model_dump())

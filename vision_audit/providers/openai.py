"""
OpenAI Vision Provider

Analyzes screenshots with OpenAI's vision-capable chat models (gpt-4o and
later) through the official SDK.
"""

import asyncio
import logging
from typing import Optional

import openai

from ..errors import ConfigurationError, ProviderError
from ..models import ScreenshotData
from .base import VisionProvider, require_api_key
from .dialects import DialectHandler, ProviderResponse, detect_dialect, strip_vendor_prefix


logger = logging.getLogger(__name__)


class OpenAIProvider(VisionProvider):
    """
    Vision provider using OpenAI's chat completions API.

    The SDK's own retries are disabled; retry and fallback are decided by
    the analyzer and the batch executor.

    Example:
        provider = OpenAIProvider(api_key="sk-...")
        result = await provider.analyze(screenshot, context, prompt)
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        timeout: float = 120.0,
        message_format: str = "auto",
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (get from https://platform.openai.com/api-keys)
            model: Vision-capable model; an "openai/" prefix is dropped
            base_url: API root override (e.g. an Azure or proxy endpoint)
            max_tokens: Completion token limit
            temperature: Sampling temperature
            timeout: Request timeout in seconds
            message_format: Must resolve to the openai dialect

        Raises:
            ConfigurationError: If the key is missing or the dialect is anthropic
        """
        self._api_key = require_api_key(api_key, "OpenAI", "OPENAI_API_KEY")
        if detect_dialect("openai", model, message_format) != "openai":
            raise ConfigurationError("The openai provider only speaks the openai message format")

        self.model = strip_vendor_prefix(model)
        self.handler = DialectHandler("openai", self.model, max_tokens, temperature)
        self.client = openai.OpenAI(
            api_key=self._api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def name(self) -> str:
        """Provider name for identification"""
        return "openai"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _complete(self, screenshot: ScreenshotData, prompt: str) -> ProviderResponse:
        body = self.handler.build_body(prompt, screenshot)
        logger.debug("OpenAI request (model=%s)", self.model)

        try:
            response = await asyncio.to_thread(self.client.chat.completions.create, **body)
        except openai.APIStatusError as e:
            raise ProviderError(
                "OpenAI API error", status=e.status_code, body=e.response.text
            ) from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI API error: {e}") from e

        return self.handler.parse_response(response.model_dump())

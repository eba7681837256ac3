"""
Base Vision Provider Interface

Abstract base class defining the contract for vision model providers.
All providers must implement this interface for consistent behavior.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import ConfigurationError
from ..models import AnalysisContext, AnalysisResult, ScreenshotData
from ..parser import parse_analysis_text
from .dialects import DialectHandler, ProviderResponse
from .http import post_json


logger = logging.getLogger(__name__)

PLACEHOLDER_KEYS = ("test", "demo", "example", "your-api-key", "changeme")
MIN_KEY_LENGTH = 10


def require_api_key(api_key: Optional[str], provider: str, env_var: str) -> str:
    """
    Reject missing or obviously fake API keys at construction time.

    Raises:
        ConfigurationError: If the key is empty, too short or a placeholder
    """
    if not api_key:
        raise ConfigurationError(
            f"{provider} API key not configured. Set {env_var} in .env file"
        )
    if len(api_key) < MIN_KEY_LENGTH or api_key.strip().lower() in PLACEHOLDER_KEYS:
        raise ConfigurationError(f"{provider} API key looks like a placeholder")
    return api_key


class VisionProvider(ABC):
    """
    Abstract base class for vision model providers.

    All vision providers (OpenAI, Anthropic, OpenRouter, Local) implement
    this interface so the analyzer can swap them freely.

    Subclasses must implement:
    - name: Property returning provider name
    - is_available(): Check if provider is configured and ready
    - _complete(): Send one prompt + screenshot and return the raw answer

    `analyze()` is shared: it times the call and hands the answer to the
    response parser.
    """

    model: str
    handler: DialectHandler

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Provider name for logging and identification.

        Returns:
            Provider name (e.g., "openai", "anthropic", "openrouter", "local")
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if provider is configured and ready to use.

        Returns:
            True if provider can be used, False otherwise
        """
        pass

    @abstractmethod
    async def _complete(self, screenshot: ScreenshotData, prompt: str) -> ProviderResponse:
        """
        Send the screenshot and prompt, return the model's answer.

        Raises:
            ProviderError: On transport failure or non-2xx status
            ParseContractError: If the response envelope is unusable
        """
        pass

    async def analyze(
        self,
        screenshot: ScreenshotData,
        context: AnalysisContext,
        prompt: str,
    ) -> AnalysisResult:
        """
        Analyze a screenshot and return a parsed AnalysisResult.

        Args:
            screenshot: Validated screenshot bytes
            context: Context the prompt was built from
            prompt: Full instruction text

        Returns:
            AnalysisResult with scores, issues and recommendations

        Raises:
            ProviderError: If the provider call fails
            ParseContractError: If the provider envelope is unusable
        """
        started = time.monotonic()
        response = await self._complete(screenshot, prompt)
        elapsed = time.monotonic() - started

        logger.debug(
            "%s answered in %.2fs (%d tokens)", self.name, elapsed, response.tokens_used
        )
        return parse_analysis_text(
            response.text,
            context=context,
            model=response.model or self.model,
            provider=self.name,
            tokens_used=response.tokens_used,
            analysis_time=elapsed,
        )

    def get_model_info(self) -> dict:
        return {
            "provider": self.name,
            "model": self.model,
            "dialect": self.handler.dialect,
            "supports_vision": True,
        }


class HTTPVisionProvider(VisionProvider):
    """
    Provider that talks to an HTTP endpoint through `requests`.

    Subclasses set `base_url`, `api_key`, `timeout` and `handler`, and may
    extend `headers()`.
    """

    base_url: str
    api_key: Optional[str] = None
    timeout: float = 120.0

    def headers(self) -> dict:
        return self.handler.build_headers(self.api_key, bearer=True)

    async def _complete(self, screenshot: ScreenshotData, prompt: str) -> ProviderResponse:
        payload = await asyncio.to_thread(
            post_json,
            self.handler.endpoint(self.base_url),
            self.headers(),
            self.handler.build_body(prompt, screenshot),
            self.timeout,
        )
        return self.handler.parse_response(payload)

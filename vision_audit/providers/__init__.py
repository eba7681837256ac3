"""
Vision Provider Implementations

Pluggable vision model providers following a common interface.
Supports OpenAI, Anthropic Claude, OpenRouter and local Ollama models.
"""

from typing import Optional

from ..errors import ConfigurationError
from ..models import Config
from .anthropic import AnthropicProvider
from .base import VisionProvider
from .dialects import DialectHandler, ProviderResponse, detect_dialect
from .local import LocalProvider
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider

__all__ = [
    "VisionProvider",
    "AnthropicProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "LocalProvider",
    "DialectHandler",
    "ProviderResponse",
    "detect_dialect",
    "get_provider",
    "PROVIDERS",
]


PROVIDERS = ("openai", "anthropic", "openrouter", "local")


def get_provider(
    config: Config,
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> VisionProvider:
    """
    Factory function to get configured vision provider.

    Args:
        config: Configuration with API keys and request settings
        provider_name: Override config.provider (used for fallbacks)
        model: Override config.model

    Returns:
        Configured vision provider instance

    Raises:
        ConfigurationError: If provider name is unknown or its key is missing

    Example:
        provider = get_provider(config)
        result = await provider.analyze(screenshot, context, prompt)
    """
    name = provider_name or config.provider
    model = model or config.model
    # The base URL override belongs to the primary provider only
    base_url = config.base_url if name == config.provider else None

    common = {
        "model": model,
        "base_url": base_url,
        "max_tokens": config.max_tokens,
        "temperature": config.temperature,
        "timeout": config.request_timeout,
        "message_format": config.message_format,
    }

    if name == "openai":
        return OpenAIProvider(api_key=config.api_key_for("openai"), **common)

    elif name == "anthropic":
        return AnthropicProvider(api_key=config.api_key_for("anthropic"), **common)

    elif name == "openrouter":
        return OpenRouterProvider(api_key=config.api_key_for("openrouter"), **common)

    elif name == "local":
        return LocalProvider(
            host=config.ollama_host,
            api_key=config.api_key_for("local"),
            **common,
        )

    else:
        raise ConfigurationError(
            f"Unknown provider: {name}. Choose from: {', '.join(PROVIDERS)}"
        )

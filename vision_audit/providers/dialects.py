"""
Wire Dialects

The two request/response shapes vision providers speak:

- openai: a `messages` array whose user message carries a text part and an
  `image_url` data-URL part; bearer-token auth; `/chat/completions`.
- anthropic: a `messages` array with a typed base64 `image` block, the
  system prompt in a separate `system` field and a mandatory `max_tokens`;
  `x-api-key` plus `anthropic-version` headers; `/messages`.

DialectHandler builds bodies, headers and endpoints for one dialect and
parses the provider's JSON envelope into a ProviderResponse.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from ..errors import ParseContractError
from ..models import ScreenshotData


Dialect = Literal["openai", "anthropic"]

ANTHROPIC_VERSION = "2023-06-01"

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "anthropic": "https://api.anthropic.com/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}

ENDPOINT_PATHS = {
    "openai": "/chat/completions",
    "anthropic": "/messages",
}


class ProviderResponse(BaseModel):
    """Text answer plus accounting extracted from a provider envelope"""

    model_config = ConfigDict(frozen=True)

    text: str
    tokens_used: int = 0
    model: Optional[str] = None


def detect_dialect(provider: str, model: str, message_format: str = "auto") -> Dialect:
    """
    Decide which wire dialect to speak.

    Order: explicit message_format, then provider name, then model name,
    then openai.

    Example:
        detect_dialect("openrouter", "anthropic/claude-3.5-sonnet")  # "anthropic"
    """
    if message_format in ("openai", "anthropic"):
        return message_format

    if provider == "anthropic":
        return "anthropic"
    if provider in ("openai", "local"):
        return "openai"

    lowered = (model or "").lower()
    if lowered.startswith("anthropic/") or "claude" in lowered:
        return "anthropic"
    if lowered.startswith("openai/") or "gpt" in lowered:
        return "openai"
    return "openai"


def strip_vendor_prefix(model: str) -> str:
    """Drop an OpenRouter-style "vendor/" prefix ("openai/gpt-4o" -> "gpt-4o")"""
    return model.split("/", 1)[1] if "/" in model else model


class DialectHandler:
    """
    Request builder and response parser for one dialect.

    Example:
        handler = DialectHandler("anthropic", "claude-3-5-sonnet-20241022")
        body = handler.build_body(prompt, screenshot)
        reply = handler.parse_response(requests.post(...).json())
    """

    def __init__(
        self,
        dialect: Dialect,
        model: str,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        system_prompt: Optional[str] = None,
    ):
        self.dialect = dialect
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.system_prompt = system_prompt

    def build_body(self, prompt: str, screenshot: ScreenshotData) -> dict:
        if self.dialect == "anthropic":
            return self._anthropic_body(prompt, screenshot)
        return self._openai_body(prompt, screenshot)

    def _openai_body(self, prompt: str, screenshot: ScreenshotData) -> dict:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({
            "role": "user",
            "content": [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {
                        "url": f"data:{screenshot.media_type};base64,{screenshot.to_base64()}",
                        "detail": "high",
                    },
                },
            ],
        })
        return {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def _anthropic_body(self, prompt: str, screenshot: ScreenshotData) -> dict:
        body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": screenshot.media_type,
                            "data": screenshot.to_base64(),
                        },
                    },
                    {"type": "text", "text": prompt},
                ],
            }],
        }
        if self.system_prompt:
            body["system"] = self.system_prompt
        return body

    def build_headers(self, api_key: Optional[str], bearer: bool = False) -> dict:
        """
        Auth and content headers for this dialect.

        Args:
            api_key: Provider key; no auth header is sent when None
            bearer: Also send "Authorization: Bearer" in the anthropic
                dialect (gateways such as OpenRouter expect it)
        """
        headers = {"Content-Type": "application/json"}
        if self.dialect == "anthropic":
            headers["anthropic-version"] = ANTHROPIC_VERSION
            if api_key:
                headers["x-api-key"] = api_key
                if bearer:
                    headers["Authorization"] = f"Bearer {api_key}"
        elif api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def endpoint(self, base_url: str) -> str:
        return base_url.rstrip("/") + ENDPOINT_PATHS[self.dialect]

    def parse_response(self, payload: dict) -> ProviderResponse:
        """
        Extract the answer text and token usage.

        Raises:
            ParseContractError: If the envelope has no choices/content or
                the answer text is empty
        """
        if not isinstance(payload, dict):
            raise ParseContractError(f"Expected a JSON object, got {type(payload).__name__}")
        if self.dialect == "anthropic":
            return self._parse_anthropic(payload)
        return self._parse_openai(payload)

    def _parse_openai(self, payload: dict) -> ProviderResponse:
        choices = payload.get("choices")
        if not choices:
            raise ParseContractError("Response has no choices")

        content = (choices[0].get("message") or {}).get("content")
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )
        if not content or not content.strip():
            raise ParseContractError("Response choice has no content")

        usage = payload.get("usage") or {}
        tokens = usage.get("total_tokens") or (
            (usage.get("prompt_tokens") or 0) + (usage.get("completion_tokens") or 0)
        )
        return ProviderResponse(text=content, tokens_used=tokens, model=payload.get("model"))

    def _parse_anthropic(self, payload: dict) -> ProviderResponse:
        blocks = payload.get("content")
        if not blocks or not isinstance(blocks, list):
            raise ParseContractError("Response has no content blocks")

        text = "".join(
            block.get("text") or ""
            for block in blocks
            if isinstance(block, dict) and block.get("type", "text") == "text"
        )
        if not text.strip():
            raise ParseContractError("Response content has no text")

        usage = payload.get("usage") or {}
        tokens = (usage.get("input_tokens") or 0) + (usage.get("output_tokens") or 0)
        return ProviderResponse(text=text, tokens_used=tokens, model=payload.get("model"))

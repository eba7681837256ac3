"""
HTTP transport for providers without an SDK client (OpenRouter, Ollama).

Blocking `requests` calls; providers run them through asyncio.to_thread.
"""

import logging
from typing import Optional

import requests

from ..errors import ParseContractError, ProviderError


logger = logging.getLogger(__name__)


def post_json(url: str, headers: dict, body: dict, timeout: float) -> dict:
    """
    POST a JSON body and return the decoded JSON object.

    Raises:
        ProviderError: On transport failure or a non-2xx status
        ParseContractError: If the body is not a JSON object
    """
    logger.debug("POST %s (model=%s)", url, body.get("model"))
    try:
        response = requests.post(url, headers=headers, json=body, timeout=timeout)
    except requests.RequestException as e:
        raise ProviderError(f"Request to {url} failed: {e}") from e

    logger.debug("POST %s -> %s", url, response.status_code)
    if not response.ok:
        raise ProviderError(
            f"Provider returned HTTP {response.status_code}",
            status=response.status_code,
            body=response.text,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ParseContractError(f"Response from {url} is not valid JSON") from e

    if not isinstance(data, dict):
        raise ParseContractError(f"Response from {url} is not a JSON object")
    return data


def get_ok(url: str, headers: Optional[dict] = None, timeout: float = 2.0) -> bool:
    """Return True when GET `url` answers with HTTP 200"""
    try:
        response = requests.get(url, headers=headers, timeout=timeout)
        return response.status_code == 200
    except requests.RequestException:
        return False

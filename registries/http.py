"""
Shared HTTP helpers for registry and repository clients.

Every request is bounded by a timeout. Failure statuses and payloads that
cannot be parsed are raised as pipeline errors so fallback chains can move on.
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from core.errors import MalformedResponseError, SourceUnavailableError
from core.reliability import TransientError, resilient_call

__all__ = ["DEFAULT_TIMEOUT", "USER_AGENT", "fetch_json", "fetch_text"]

DEFAULT_TIMEOUT = 15.0
USER_AGENT = "package-research-mcp/1.0"

logger = logging.getLogger(__name__)


async def _get(
    url: str,
    *,
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    logger.debug(f"GET {url}")
    request_headers = {"User-Agent": USER_AGENT}
    if headers:
        request_headers.update(headers)

    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url, headers=request_headers, params=params)
    except (httpx.TimeoutException, httpx.TransportError) as e:
        raise TransientError(f"GET {url} failed: {type(e).__name__}: {e}") from e
    except httpx.HTTPError as e:
        raise SourceUnavailableError(f"GET {url} failed: {e}") from e

    if response.status_code >= 500:
        raise TransientError(f"GET {url} returned {response.status_code}")
    if response.status_code != 200:
        raise SourceUnavailableError(f"GET {url} returned {response.status_code}")
    return response


async def fetch_text(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 1,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> str:
    """
    GET a URL and return its body as text.

    Raises:
        SourceUnavailableError: network error, timeout, or non-200 status
    """
    response = await resilient_call(
        _get, url, timeout=timeout, headers=headers, params=params, max_retries=retries
    )
    return response.text


async def fetch_json(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 1,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    """
    GET a URL and decode its JSON body.

    Raises:
        SourceUnavailableError: network error, timeout, or non-200 status
        MalformedResponseError: body is not valid JSON
    """
    request_headers = {"Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    response = await resilient_call(
        _get,
        url,
        timeout=timeout,
        headers=request_headers,
        params=params,
        max_retries=retries,
    )
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as e:
        raise MalformedResponseError(f"GET {url} returned invalid JSON: {e}") from e

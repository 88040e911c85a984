"""Shared HTTP helpers for registry metadata requests.

Transport failures come back to the caller as status 0 with an error message
instead of being raised, so the registry client decides whether a failure is
per-package (resolution) or fatal (ranking listing).
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

# Responses worth another attempt; everything else is returned as-is.
_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


def _trace(message: str, action: str, target: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            message,
            extra=extra_context(component="http_client", action=action, target=target, **fields)
        )


def _backoff(attempt: int) -> float:
    return Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** (attempt - 1))


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = Constants.REQUEST_TIMEOUT,
    retries: int = Constants.HTTP_RETRY_MAX,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """GET with a timeout, retrying connection errors, timeouts, 429 and 5xx.

    Args:
        url: Target URL.
        headers: Optional request headers.
        timeout: Per-attempt timeout in seconds.
        retries: Total number of attempts.
        **kwargs: Passed through to requests.get (e.g. params).

    Returns:
        (status_code, headers, text). status_code is 0 when no attempt got a
        response; text then describes the last failure.
    """
    target = safe_url(url)
    attempts = max(1, retries)
    last_error = "no attempt made"

    for attempt in range(1, attempts + 1):
        if attempt > 1:
            time.sleep(_backoff(attempt - 1))
        _trace("HTTP request", "GET", target, event="http_request", attempt=attempt)

        with Timer() as t:
            try:
                response = requests.get(url, timeout=timeout, headers=headers, **kwargs)
            except requests.Timeout:
                last_error = "timeout"
                _trace("HTTP timeout", "GET", target, event="http_exception",
                       outcome="timeout", attempt=attempt)
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_error = str(exc)
                _trace("HTTP request exception", "GET", target, event="http_exception",
                       outcome="request_exception", attempt=attempt)
                continue

        status = response.status_code
        if status in _RETRY_STATUSES and attempt < attempts:
            last_error = f"HTTP {status}"
            logger.debug("Retrying %s after HTTP %s", target, status)
            continue

        _trace(
            "HTTP response", "GET", target,
            event="http_response",
            outcome="success" if status < 400 else "error_status",
            status_code=status,
            duration_ms=t.duration_ms(),
        )
        return status, dict(response.headers), response.text

    return 0, {}, f"Request failed after {attempts} attempts: {last_error}"


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """GET and decode a JSON body.

    Returns:
        (status_code, headers, payload). payload is the decoded JSON for a 200
        with a valid body, the error message when status_code is 0, and None
        otherwise.
    """
    status, response_headers, text = robust_get(url, headers=headers, **kwargs)
    if status == 0:
        return status, response_headers, text
    if status != 200 or not text:
        return status, response_headers, None

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        _trace("JSON decode error", "get_json", safe_url(url), event="parse",
               outcome="json_decode_error", status_code=status)
        return status, response_headers, None
    _trace("Parsed JSON response", "get_json", safe_url(url), event="parse",
           outcome="success", status_code=status)
    return status, response_headers, payload

"""
Normalization of provider failures into PublishResult.

Publishers catch everything raised while talking to a provider and pass it
here, so callers branch on status_code / retry_after instead of exception
types.
"""

import re
from collections.abc import Mapping

import httpx
import structlog

from ..domain.ports import PublishResult

logger = structlog.get_logger()

_LEADING_INT = re.compile(r"\s*(\d+)")


def parse_retry_after(headers: Mapping[str, str] | None) -> int | None:
    """
    Read a Retry-After header as whole seconds.

    Returns None when the header is absent or not a number (HTTP-date values
    included); callers apply their own default backoff in that case.
    """
    if not headers:
        return None
    raw = headers.get("retry-after") or headers.get("Retry-After")
    if not raw:
        return None
    match = _LEADING_INT.match(str(raw))
    if not match:
        return None
    return int(match.group(1))


def _extract_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return data.get("message")


def handle_provider_error(exc: BaseException, platform: str) -> PublishResult:
    """
    Classify an exception raised during a provider call.

    Args:
        exc: The caught exception
        platform: Display name used in log events

    Returns:
        Failed PublishResult (429 rate limit, 401 expiry, provider status,
        or message-only for transport errors)
    """
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        status_code = response.status_code

        if status_code == 429:
            retry_after = parse_retry_after(response.headers)
            logger.warning("Provider rate limited", platform=platform, retry_after=retry_after)
            return PublishResult.failed("Rate limited", status_code=429, retry_after=retry_after)

        if status_code == 401:
            logger.warning("Provider token expired", platform=platform)
            return PublishResult.failed("Token expired", status_code=401)

        message = _extract_message(response) or str(exc) or "Unknown error"
        logger.error(
            "Provider publish failed",
            platform=platform,
            status_code=status_code,
            error=message,
        )
        return PublishResult.failed(message, status_code=status_code)

    message = str(exc) or exc.__class__.__name__
    logger.error("Provider call failed", platform=platform, error=message)
    return PublishResult.failed(message)

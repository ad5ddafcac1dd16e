"""Live quota data from the Anthropic API rate-limit headers.

The count_tokens endpoint is free and generates nothing, but its responses
carry the same ``anthropic-ratelimit-*`` headers as every other API call, so
one tiny request per poll is enough to read the account's token headroom.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional

import httpx

from .models import UsageInfo
from .utils import parse_timestamp

logger = logging.getLogger(__name__)

COUNT_TOKENS_URL = "https://api.anthropic.com/v1/messages/count_tokens"
ANTHROPIC_VERSION = "2023-06-01"
PROBE_MODEL = "claude-haiku-4-5-20251001"

# Timeouts (seconds)
CONNECT_TIMEOUT = 5
OVERALL_TIMEOUT = 10

HEADER_PREFIX = "anthropic-ratelimit-"


class RemoteError(str, Enum):
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    MISSING_HEADERS = "missing_headers"


@dataclass
class PollResult:
    usage: Optional[UsageInfo] = None
    error: Optional[RemoteError] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RemoteUsagePoller:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        url: str = COUNT_TOKENS_URL,
    ):
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(OVERALL_TIMEOUT, connect=CONNECT_TIMEOUT)
        )
        self.url = url

    def fetch(self, credential: str) -> PollResult:
        try:
            response = self._client.post(
                self.url,
                headers={
                    "x-api-key": credential,
                    "anthropic-version": ANTHROPIC_VERSION,
                    "content-type": "application/json",
                },
                json={
                    "model": PROBE_MODEL,
                    "messages": [{"role": "user", "content": "."}],
                },
            )
        except httpx.HTTPError as exc:
            logger.debug("usage poll failed: %s", exc)
            return PollResult(error=RemoteError.TRANSPORT, detail=str(exc))

        if not response.is_success:
            logger.info("usage poll returned HTTP %s", response.status_code)
            return PollResult(
                error=RemoteError.HTTP_STATUS, detail=f"HTTP {response.status_code}"
            )

        usage = parse_rate_limit_headers(response.headers)
        if usage is None:
            logger.debug("usage poll response carried no token rate-limit headers")
            return PollResult(
                error=RemoteError.MISSING_HEADERS, detail="no token rate-limit headers"
            )
        return PollResult(usage=usage)

    def poll(self, credential: str) -> Optional[UsageInfo]:
        return self.fetch(credential).usage

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RemoteUsagePoller":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def parse_rate_limit_headers(headers: Mapping[str, str]) -> Optional[UsageInfo]:
    """Build a :class:`UsageInfo` from response headers.

    Returns ``None`` unless at least one of the token limit/remaining headers
    is present; every other field is optional and defaults independently.
    """

    info = UsageInfo()
    tokens_limit = _header_int(headers, "tokens-limit")
    tokens_remaining = _header_int(headers, "tokens-remaining")
    if tokens_limit is None and tokens_remaining is None:
        return None
    info.tokens_limit = tokens_limit or 0
    info.tokens_remaining = tokens_remaining or 0
    info.tokens_reset = _header_datetime(headers, "tokens-reset")
    info.requests_limit = _header_int(headers, "requests-limit") or 0
    info.requests_remaining = _header_int(headers, "requests-remaining") or 0
    info.requests_reset = _header_datetime(headers, "requests-reset")
    return info


def _header(headers: Mapping[str, str], suffix: str) -> Optional[str]:
    value = headers.get(HEADER_PREFIX + suffix)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _header_int(headers: Mapping[str, str], suffix: str) -> Optional[int]:
    value = _header(headers, suffix)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _header_datetime(headers: Mapping[str, str], suffix: str) -> Optional[datetime]:
    return parse_timestamp(_header(headers, suffix))


__all__ = [
    "COUNT_TOKENS_URL",
    "PollResult",
    "RemoteError",
    "RemoteUsagePoller",
    "parse_rate_limit_headers",
]

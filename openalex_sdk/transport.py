"""
The HTTP boundary. Owns the retry-on-status policy; everything above it sees one final response per request.
"""

import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from openalex_sdk.config import ClientConfig

log = logging.getLogger(__name__)


def build_http_client(config: ClientConfig) -> httpx.Client:
    """
    Creates an httpx client with the caller's identification, timeouts and connection limits.
    Called by: OpenAlex.__init__()
    """
    headers: dict[str, str] = {'user-agent': config.user_agent_header()}
    timeout: httpx.Timeout = httpx.Timeout(connect=30.0, read=config.timeout_s, write=60.0, pool=30.0)
    limits: httpx.Limits = httpx.Limits(max_keepalive_connections=5, max_connections=5)
    return httpx.Client(
        headers=headers,
        params=config.identification_params(),
        timeout=timeout,
        limits=limits,
        follow_redirects=True,
    )


class ApiClient:
    """
    Encapsulates HTTP GETs with the configured retry policy.
    - Retries responses whose status is in `retry_http_codes`, up to `max_retries` extra attempts.
    - Retries network-level failures (`httpx.TransportError`) under the same budget.
    - Waits `retry_delay_s * attempt` between attempts, or the server's `Retry-After` (seconds or HTTP-date).
    - Never waits longer than `max_retry_delay_s` at a time.
    - Returns the last response once the budget is spent; status classification is left to the caller.
    - Re-raises the last network exception unchanged when every attempt failed that way.
    """

    def __init__(self, client: httpx.Client, config: ClientConfig) -> None:
        self.client: httpx.Client = client
        self.config: ClientConfig = config

    def get_with_retries(self, url: str) -> httpx.Response:
        max_retries: int = self.config.max_retries
        for attempt in range(max_retries + 1):
            is_last: bool = attempt == max_retries
            try:
                resp: httpx.Response = self.client.get(url)
            except httpx.TransportError as exc:
                if is_last:
                    raise
                log.warning(f'transport failure on attempt {attempt + 1}, ``{exc!r}``; retrying url, ``{url}``')
                _sleep(self._delay_for(attempt + 1))
                continue
            if resp.status_code in self.config.retry_http_codes and not is_last:
                log.warning(f'status {resp.status_code} on attempt {attempt + 1}; retrying url, ``{url}``')
                _sleep(self._delay_for(attempt + 1, resp))
                continue
            return resp
        raise AssertionError('unreachable')  # the last attempt always returns or raises

    def _delay_for(self, attempt: int, resp: httpx.Response | None = None) -> float:
        delay: float = self.config.retry_delay_s * attempt
        if resp is not None:
            server_delay: float | None = _parse_retry_after(resp.headers.get('retry-after', ''))
            if server_delay is not None:
                delay = server_delay
        return min(delay, self.config.max_retry_delay_s)


def _parse_retry_after(value: str) -> float | None:
    """
    Returns the wait a `Retry-After` header asks for, in seconds; None when absent or unparseable.
    - Accepts delta-seconds (`120`) and HTTP-dates (`Wed, 21 Oct 2026 07:28:00 GMT`); past dates mean no wait.
    """
    value = value.strip()
    if not value:
        return None
    if value.isdigit():
        return float(value)
    try:
        retry_at: datetime = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        log.debug(f'ignoring unparseable retry-after, ``{value}``')
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max((retry_at - datetime.now(timezone.utc)).total_seconds(), 0.0)


def _sleep(backoff_s: float) -> None:
    """
    Sleeps for given seconds; centralizes sleep for easier tweaking (and patching in tests).
    """
    time.sleep(backoff_s)

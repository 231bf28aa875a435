"""
Probe engine: one bounded HTTP reachability check per target, classified into a ProbeOutcome.

Nothing here touches the database, and nothing here raises: every failure mode
(timeout, DNS, refused connection, protocol error, anything unexpected) comes
back as an outcome with ``is_up=False`` and a description in ``error_message``.
Failures that look like "this network path cannot reach the host" rather than
"the host is down" set ``needs_alternate_check`` so the caller can re-check from
a browser.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime

import httpx

from urlmonitor.config import get_settings
from urlmonitor.models.outcome import REDIRECT_STATUSES
from urlmonitor.timeutils import utcnow

logger = logging.getLogger("urlmonitor.ping")
settings = get_settings()

USER_AGENT = "URL-Monitor/1.0"

# Answers meaning "this server will not do HEAD"; retried once with GET
HEAD_REJECTED_STATUSES = frozenset({405, 501})

# Lower-cased fragments of failure messages treated as network-path symptoms.
# Tunable: the exception-type checks in describe_failure cover the common cases.
NETWORK_SYMPTOMS = (
    "timed out",
    "timeout",
    "abort",
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "name resolution",
    "no address associated",
    "connection refused",
    "connection reset",
    "network is unreachable",
    "no route to host",
    "fetch failed",
)

DNS_SYMPTOMS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "name resolution",
    "no address associated",
)


@dataclass(frozen=True)
class ProbeOutcome:
    """Typed, immutable view of one check, whether fresh from a probe or loaded from storage."""

    target_id: int
    is_up: bool
    checked_at: datetime
    status_code: int | None = None
    status_text: str | None = None
    response_time_ms: int | None = None
    location: str | None = None
    error_message: str | None = None
    # Never persisted
    needs_alternate_check: bool = False
    id: int | None = None

    @property
    def is_redirect(self) -> bool:
        return self.status_code in REDIRECT_STATUSES


def is_network_symptom(message: str | None) -> bool:
    if not message:
        return False
    lowered = message.lower()
    return any(symptom in lowered for symptom in NETWORK_SYMPTOMS)


def describe_failure(exc: BaseException, timeout: float) -> tuple[str, bool]:
    """Turn a failed request into ``(error_message, needs_alternate_check)``."""
    detail = str(exc)[:200] or exc.__class__.__name__

    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return f"Request timed out after {timeout:g}s (aborted)", True
    if isinstance(exc, httpx.ConnectError):
        if any(symptom in detail.lower() for symptom in DNS_SYMPTOMS):
            return f"DNS lookup failed: {detail}", True
        return f"Connection failed: {detail}", True
    if isinstance(exc, (httpx.TransportError, OSError)):
        return f"Request error: {detail}", True

    message = f"Unexpected error: {detail}"
    return message, is_network_symptom(detail)


def classify_response(
    target_id: int, response: httpx.Response, elapsed_ms: int, checked_at: datetime
) -> ProbeOutcome:
    status_code = response.status_code
    return ProbeOutcome(
        target_id=target_id,
        status_code=status_code,
        status_text=response.reason_phrase or None,
        response_time_ms=elapsed_ms,
        is_up=200 <= status_code < 400,
        location=response.headers.get("location"),
        checked_at=checked_at,
    )


async def _fetch(url: str, timeout: float) -> httpx.Response:
    async with httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": USER_AGENT},
    ) as client:
        try:
            response = await client.request("HEAD", url)
        except (httpx.ProtocolError, httpx.DecodingError) as e:
            logger.debug(f"HEAD rejected by {url} ({e}); retrying with GET")
            return await client.request("GET", url)

        if response.status_code in HEAD_REJECTED_STATUSES:
            logger.debug(f"HEAD answered {response.status_code} by {url}; retrying with GET")
            return await client.request("GET", url)
        return response


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def probe(target, timeout: float | None = None) -> ProbeOutcome:
    """Check one target. ``target`` needs ``id`` and ``address``; the address is assumed valid."""
    timeout = settings.probe_timeout if timeout is None else timeout
    checked_at = utcnow()
    start = time.monotonic()

    try:
        response = await asyncio.wait_for(_fetch(target.address, timeout), timeout=timeout)
        return classify_response(target.id, response, _elapsed_ms(start), checked_at)
    except Exception as e:
        error_message, needs_alternate_check = describe_failure(e, timeout)
        logger.info(
            f"Probe of {target.address} failed: {error_message}"
            + (" (alternate check needed)" if needs_alternate_check else "")
        )
        return ProbeOutcome(
            target_id=target.id,
            is_up=False,
            checked_at=checked_at,
            response_time_ms=_elapsed_ms(start),
            error_message=error_message,
            needs_alternate_check=needs_alternate_check,
        )

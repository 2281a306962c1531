"""
HTTP health checker for monitored applications.

One check is one GET request against the application's effective monitor
URL. Transport failures (DNS, TLS, refused connections, timeouts) become an
unhealthy outcome with ``status_code == 0``; they are never raised. Errors
building the request (e.g. a malformed URL) do propagate so the calling task
can retry and eventually record a monitoring failure.
"""

from __future__ import annotations

import http.client
import logging
import socket
import time
import urllib.error
import urllib.request
from dataclasses import asdict, dataclass

from django.conf import settings

logger = logging.getLogger(__name__)

# Only the head of the response body is kept for incident descriptions.
MAX_BODY_BYTES = 2048


@dataclass
class HealthOutcome:
    """
    Result of probing an application.

    Attributes:
        healthy: True when a response arrived with the expected status code.
        status_code: HTTP status received, 0 when no response was received.
        message: Response body excerpt, or the transport error text.
        response_time_ms: Time spent on the request in milliseconds.
        url: The URL that was probed.
    """

    healthy: bool
    status_code: int
    message: str = ""
    response_time_ms: int | None = None
    url: str = ""

    @property
    def is_transport_failure(self) -> bool:
        return self.status_code == 0

    def to_dict(self) -> dict:
        return asdict(self)


class HealthChecker:
    """Probe applications over HTTP."""

    timeout: float = 15.0
    user_agent: str = "UptimeIncidents/1.0"

    def __init__(self, timeout: float | None = None, user_agent: str | None = None) -> None:
        if timeout is None:
            timeout = getattr(settings, "MONITORING_REQUEST_TIMEOUT", self.timeout)
        if user_agent is None:
            user_agent = getattr(settings, "MONITORING_USER_AGENT", self.user_agent)
        self.timeout = timeout
        self.user_agent = user_agent

    def check(self, application) -> HealthOutcome:
        """
        Issue one GET against ``application.monitor_url``.

        Raises:
            ValueError: if the request cannot be built (unsupported/malformed URL).
        """
        url = application.monitor_url
        expected = application.expected_http_code

        request = urllib.request.Request(
            url,
            headers={"User-Agent": self.user_agent},
            method="GET",
        )

        start = time.perf_counter()
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status_code = response.getcode()
                body = self._read_body(response)
        except urllib.error.HTTPError as e:
            # A non-2xx response is still a response: classify it by its code.
            status_code = e.code
            body = self._read_body(e) if e.fp else str(e.reason)
        except urllib.error.URLError as e:
            return self._transport_failure(url, str(e.reason), start)
        except (socket.timeout, TimeoutError) as e:
            return self._transport_failure(url, f"Request timed out: {e}", start)
        except (ConnectionError, http.client.HTTPException, OSError) as e:
            return self._transport_failure(url, str(e), start)

        elapsed_ms = self._elapsed_ms(start)
        healthy = status_code == expected

        if healthy:
            logger.debug(f"{application.name}: healthy ({status_code}) in {elapsed_ms}ms")
        else:
            logger.info(
                f"{application.name}: unhealthy, got HTTP {status_code} (expected {expected})"
            )

        return HealthOutcome(
            healthy=healthy,
            status_code=status_code,
            message="" if healthy else body,
            response_time_ms=elapsed_ms,
            url=url,
        )

    def _transport_failure(self, url: str, error: str, start: float) -> HealthOutcome:
        logger.info(f"Probe of {url} failed: {error}")
        return HealthOutcome(
            healthy=False,
            status_code=0,
            message=error,
            response_time_ms=self._elapsed_ms(start),
            url=url,
        )

    @staticmethod
    def _read_body(response) -> str:
        try:
            raw = response.read(MAX_BODY_BYTES)
        except (OSError, http.client.HTTPException):
            return ""
        return raw.decode("utf-8", errors="replace")

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

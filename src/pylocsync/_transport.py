"""HTTP transport for JSON request/response calls."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pylocsync._constants import USER_AGENT
from pylocsync._redact import redact_for_log
from pylocsync.config import LocSyncConfig
from pylocsync.exceptions import LocSyncTransportError

_logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class HttpResponse:
    """Status code and decoded body of a completed request.

    Undecodable bytes in the body are replaced, never raised.
    """

    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str],
    ) -> HttpResponse:
        ...


class HttpTransport:
    """aiohttp-backed transport.

    Any completed exchange is returned as-is, whatever its status; only
    failures to complete one (connection errors, timeouts) raise.
    """

    def __init__(
        self,
        config: LocSyncConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        headers: Mapping[str, str],
    ) -> HttpResponse:
        """POST *payload* as JSON to ``base_url + endpoint``."""
        request_headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        request_headers.update(headers)

        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        body = json.dumps(dict(payload), separators=(",", ":"))

        _logger.debug("POST %s", url)
        if self._config.api_trace_enabled:
            _logger.debug(
                "POST %s headers=%s payload=%s",
                endpoint,
                redact_for_log(request_headers),
                redact_for_log(payload),
            )

        try:
            async with self._http.post(url, data=body, headers=request_headers, timeout=self._timeout) as resp:
                text = await resp.text(errors="replace")
                status = resp.status
        except aiohttp.ClientError as exc:
            raise LocSyncTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except asyncio.TimeoutError as exc:
            raise LocSyncTransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("Response %s status=%d body=%s", endpoint, status, redact_for_log(text, max_string=200))

        return HttpResponse(status=status, text=text)

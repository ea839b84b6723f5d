"""
Shared aiohttp client used by source adapters and capability clients.

Non-200 responses and undecodable bodies are reported as ``None`` with a
logged warning; transport failures raise :class:`SourceError` so the fan-out
executor can record them against the calling source.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import aiohttp
import structlog

from mediamind.core.exceptions import SourceError
from mediamind.services.rate_limiter import ClientRateLimiter
from mediamind.utils.retry import get_api_retry_decorator

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "MediaMind/0.4 (research media aggregator)",
    "Accept": "application/json",
}


class HttpClient:
    def __init__(
        self,
        name: str,
        *,
        timeout_sec: float = 30.0,
        calls_per_minute: int = 120,
        burst: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.name = name
        self.timeout_sec = timeout_sec
        self.rate = ClientRateLimiter(calls_per_minute, burst=burst, name=name)
        self.session: Optional[aiohttp.ClientSession] = session

    async def __aenter__(self) -> "HttpClient":
        self._sess()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.close()

    def _sess(self) -> aiohttp.ClientSession:
        if not self.session or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_sec),
                headers=DEFAULT_HEADERS,
            )
        return self.session

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    async def get_json(
        self,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        source: Optional[str] = None,
    ) -> Optional[Any]:
        return await self._request_json("GET", url, params=params, source=source)

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        *,
        source: Optional[str] = None,
    ) -> Optional[Any]:
        return await self._request_json("POST", url, json=payload, source=source)

    async def _request_json(
        self,
        method: str,
        url: str,
        *,
        source: Optional[str] = None,
        **kwargs: Any,
    ) -> Optional[Any]:
        label = source or self.name
        try:
            return await self._send(method, url, label, **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise SourceError(label, f"{type(exc).__name__}: {exc}") from exc

    # Connection resets are retried; timeouts and HTTP statuses are not
    @get_api_retry_decorator((aiohttp.ClientConnectorError, aiohttp.ServerDisconnectedError))
    async def _send(self, method: str, url: str, label: str, **kwargs: Any) -> Optional[Any]:
        await self.rate.wait()
        async with self._sess().request(method, url, **kwargs) as resp:
            if resp.status != 200:
                body = (await resp.text())[:200]
                logger.warning(
                    "Upstream returned non-200",
                    source=label,
                    status=resp.status,
                    url=url,
                    body=body,
                )
                return None
            try:
                return await resp.json(content_type=None)
            except ValueError as exc:
                logger.warning(
                    "Upstream returned malformed JSON",
                    source=label,
                    url=url,
                    error=str(exc),
                )
                return None

"""httpx-based upstream client adapter."""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from f1_mcp.adapters.upstream.base import AbstractUpstreamClient
from f1_mcp.core.errors import UpstreamAppError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class HttpxUpstreamClient(AbstractUpstreamClient):
    """Fetch JSON over a shared ``httpx.AsyncClient``.

    The client never retries; every failure is surfaced once as an
    ``UpstreamAppError`` carrying the HTTP status when there was one.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the upstream client.

        Args:
            timeout_seconds: Timeout for requests in seconds.
            client: Optional preconfigured httpx client (owned by the caller).
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    async def fetch_json(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Perform an async GET request and return parsed JSON."""

        query = {k: v for k, v in (params or {}).items() if v is not None}
        if query and "?" in url:
            # httpx replaces a query already in the URL when params are passed
            url, query = f"{url}&{urlencode(query)}", {}
        try:
            response = await self._client.get(url, params=query or None)
        except httpx.TimeoutException as exc:
            logger.warning(
                "upstream.request_failed",
                extra={"url": url, "reason": "timeout", "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="upstream_fetch_failed",
                message=f"Upstream request timed out: {url}",
                details={"url": url},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "upstream.request_failed",
                extra={"url": url, "reason": "transport", "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code="upstream_fetch_failed",
                message=f"Upstream request failed: {exc}",
                details={"url": url},
            ) from exc

        if response.status_code >= 400:
            logger.warning(
                "upstream.request_failed",
                extra={"url": url, "reason": "status", "http_status": response.status_code},
            )
            raise UpstreamAppError(
                code="upstream_fetch_failed",
                message=f"Upstream returned HTTP {response.status_code}",
                details={"url": url, "http_status": response.status_code},
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamAppError(
                code="upstream_fetch_failed",
                message="Upstream returned a non-JSON body",
                details={"url": url, "http_status": response.status_code},
            ) from exc

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

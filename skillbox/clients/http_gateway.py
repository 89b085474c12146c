"""httpx-backed gateway client implementing the injected client contract."""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import AbortError, SkillError, UPSTREAM_ERROR
from ..redaction import redact_sensitive

logger = logging.getLogger(__name__)


class HttpGatewayClient:
    """
    Gateway client with connection pooling and a concurrency cap.

    Exposes ``fetch(endpoint, options)`` for market data and
    ``chat(request_params)`` for chat completions. Retries are the caller's
    concern (see ``providers.fetch``); each method performs one request.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_concurrent_requests: int = 10,
        timeout: float = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.http_client = http_client
        self.own_client = False
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent_requests)

    def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout)
            self.own_client = True
        return self.http_client

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self.own_client and self.http_client is not None:
            await self.http_client.aclose()
            self.http_client = None
            self.own_client = False

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        client = self._ensure_client()
        url = f"{self.base_url}/{path.lstrip('/')}"

        async with self.semaphore:
            logger.debug("Gateway %s %s", method, url)
            try:
                response = await client.request(method, url, headers=self._headers(), **kwargs)
            except httpx.TimeoutException as exc:
                raise AbortError(f"Gateway request timed out: {path}") from exc

        if response.status_code >= 400:
            message = redact_sensitive(f"Gateway returned HTTP {response.status_code} for {path}")
            logger.warning(message)
            raise SkillError(UPSTREAM_ERROR, message)

        return response.json()

    async def fetch(self, endpoint: str, options: Optional[Dict[str, Any]] = None) -> Any:
        """GET a logical market-data endpoint with ``options['params']`` as query."""
        params = (options or {}).get("params") or {}
        return await self._send("GET", endpoint, params=params)

    async def chat(self, request_params: Dict[str, Any]) -> Any:
        """POST a chat-completion request."""
        return await self._send("POST", "chat/completions", json=request_params)

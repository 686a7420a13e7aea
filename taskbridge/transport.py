"""
Transport Client

Performs one remote call over one transport and classifies the outcome.

TRANSPORTS:
===========
- DIRECT: GET {webhook}{method}.json?{encoded params}
- PROXY:  POST {proxy_url} with JSON {"webhook", "method", "params"}

GUARANTEES:
===========
1. send() never raises for remote failures; it returns a CallResult
2. Only unreachable hosts are NETWORK_FAILURE
3. No shared state is touched
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Optional, Tuple
import json
import logging

import httpx

from .config import BitrixConfig
from .contracts import CallResult, CallStatus, Transport
from .encoding import encode_params
from .errors import ConfigurationError


logger = logging.getLogger(__name__)

MAX_ERROR_BODY_CHARS = 2000

_STATUS_HINTS = {
    401: "authorization required; create a new webhook or refresh its key",
    403: "access denied; check that the webhook is current and allows inbound requests",
}


def _network_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def _error_details(body: Any) -> Optional[str]:
    if isinstance(body, Mapping):
        for key in ('error_description', 'error', 'message', 'details'):
            value = body.get(key)
            if value:
                return str(value)
    return None


def _parse_body(text: str) -> Tuple[bool, Any]:
    """(parsed_ok, body). An empty body parses to {}."""
    if not text or not text.strip():
        return True, {}
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


class TransportClient:
    """
    Executes single calls against the remote API.

    An httpx.AsyncClient can be injected (tests, connection reuse).
    Without one, a short-lived client is opened per call.
    """

    def __init__(
        self,
        config: BitrixConfig,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._config = config
        self._client = client

    @property
    def config(self) -> BitrixConfig:
        return self._config

    async def send(self, transport: Transport, method: str, params: Optional[dict] = None) -> CallResult:
        """Execute one call. Configuration problems raise ConfigurationError."""
        params = params or {}
        if not method:
            raise ConfigurationError("Bitrix24 method is required")

        if transport == Transport.DIRECT:
            return await self._send_direct(method, params)
        return await self._send_proxy(method, params)

    def direct_url(self, method: str, params: dict) -> str:
        webhook = self._config.require_webhook()
        if not webhook.startswith(('http://', 'https://')):
            raise ConfigurationError(f"Invalid webhook URL: {webhook!r}")
        url = f"{webhook}{method}.json"
        query = encode_params(params)
        return f"{url}?{query}" if query else url

    async def _request(self, http_method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(http_method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            return await client.request(http_method, url, **kwargs)

    async def _send_direct(self, method: str, params: dict) -> CallResult:
        url = self.direct_url(method, params)
        logger.debug("Direct call %s", method)

        try:
            response = await self._request('GET', url)
        except httpx.TransportError as e:
            return CallResult.failed(
                Transport.DIRECT, method, CallStatus.NETWORK_FAILURE,
                f"Direct request to Bitrix24 failed: {_network_message(e)}"
            )

        return self._classify(Transport.DIRECT, method, response)

    async def _send_proxy(self, method: str, params: dict) -> CallResult:
        proxy_url = self._config.proxy_url
        if not proxy_url:
            raise ConfigurationError("BITRIX_PROXY_URL is not set")
        webhook = self._config.require_webhook()
        logger.debug("Proxy call %s via %s", method, proxy_url)

        try:
            response = await self._request(
                'POST',
                proxy_url,
                json={'webhook': webhook, 'method': method, 'params': params},
            )
        except httpx.TransportError as e:
            return CallResult.failed(
                Transport.PROXY, method, CallStatus.NETWORK_FAILURE,
                f"Bitrix24 proxy unreachable: {_network_message(e)}"
            )

        return self._classify(Transport.PROXY, method, response)

    def _classify(self, transport: Transport, method: str, response: httpx.Response) -> CallResult:
        text = response.text
        parsed, body = _parse_body(text)
        status = response.status_code

        if not response.is_success:
            return self._rejection(transport, method, status, response.reason_phrase, text, body if parsed else None)

        if not parsed:
            label = "Bitrix24 proxy" if transport == Transport.PROXY else "Bitrix24"
            return CallResult.failed(
                transport, method, CallStatus.MALFORMED_BODY,
                f"{label} returned a response that is not valid JSON",
                http_status=status
            )

        if isinstance(body, Mapping) and body.get('error'):
            description = _error_details(body)
            return CallResult.failed(
                transport, method, CallStatus.REMOTE_REJECTION,
                f"HTTP {status}: {description}",
                http_status=status,
                description=description
            )

        return CallResult.ok(transport, method, body, http_status=status)

    def _rejection(
        self,
        transport: Transport,
        method: str,
        status: int,
        reason: str,
        text: str,
        body: Any
    ) -> CallResult:
        prefix = "Bitrix24 proxy returned an error: " if transport == Transport.PROXY else ""
        message = f"{prefix}HTTP {status}"
        if reason:
            message += f" {reason}"

        description = _error_details(body)
        if description:
            message += f": {description}"
        elif text:
            message += f": {text[:MAX_ERROR_BODY_CHARS]}"

        hint = _STATUS_HINTS.get(status) if transport == Transport.DIRECT else None
        if hint:
            message += f" ({hint})"

        return CallResult.failed(
            transport, method, CallStatus.REMOTE_REJECTION, message,
            http_status=status, description=description
        )

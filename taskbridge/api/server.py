"""
Bitrix24 Relay Server
=====================

Server end of the proxy transport. Accepts the JSON body the
TransportClient sends and forwards it to the portal as a form-encoded
REST call.

Endpoints:
- POST /server/bitrix    -> {"webhook", "method", "params"} relayed to {webhook}{method}.json
- GET  /health           -> liveness

Usage:
    uvicorn taskbridge.api.server:app --reload
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
import json
import logging

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..config import DEFAULT_TIMEOUT_SECONDS, ensure_trailing_slash
from ..encoding import encode_params


logger = logging.getLogger(__name__)

ALLOWED_METHODS = frozenset({
    'tasks.task.list',
    'profile',
    'user.get',
    'lists.element.get',
    'lists.element.add',
    'lists.element.update',
    'lists.get',
    'lists.field.get',
})

MAX_DETAILS_CHARS = 2000


class RelayRequest(BaseModel):
    """Body posted by the proxy transport."""
    webhook: str = ''
    method: str = ''
    params: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> 'RelayRequest':
        """Lenient parse: wrong-typed fields become empty."""
        if not isinstance(payload, dict):
            payload = {}
        webhook = payload.get('webhook')
        method = payload.get('method')
        params = payload.get('params')
        return cls(
            webhook=webhook if isinstance(webhook, str) else '',
            method=method.strip() if isinstance(method, str) else '',
            params=params if isinstance(params, dict) else {},
        )


def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    content = {'error': error}
    if details is not None:
        content['details'] = details
    return JSONResponse(status_code=status_code, content=content)


def target_url(webhook: str, method: str) -> Optional[str]:
    """Full REST url, or None when the webhook is not an absolute http(s) url."""
    candidate = f"{ensure_trailing_slash(webhook)}{method}.json"
    try:
        url = httpx.URL(candidate)
    except httpx.InvalidURL:
        return None
    if url.scheme not in ('http', 'https') or not url.host:
        return None
    return str(url)


async def _read_payload(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {}


def create_app(upstream: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Build the relay app. upstream replaces the outbound HTTP client."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if upstream is not None:
            app.state.upstream = upstream
            yield
            return
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            app.state.upstream = client
            yield

    app = FastAPI(
        title="Bitrix24 Relay",
        version="0.1.0",
        description="Proxy transport for the Bitrix24 task feed",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Telegram-Init-Data"],
    )

    @app.get("/health")
    async def health_check():
        return {"status": "online"}

    @app.options("/server/bitrix")
    async def relay_options():
        return Response(status_code=204)

    @app.post("/server/bitrix")
    async def relay(request: Request):
        body = RelayRequest.from_payload(await _read_payload(request))

        if not body.webhook:
            return _error(400, "Webhook URL is required")
        if not body.method:
            return _error(400, "Bitrix24 method is required")
        if body.method not in ALLOWED_METHODS:
            return _error(403, "Method is not allowed")

        url = target_url(body.webhook, body.method)
        if url is None:
            return _error(400, "Invalid webhook URL")

        client: httpx.AsyncClient = request.app.state.upstream
        try:
            upstream_response = await client.post(
                url,
                content=encode_params(body.params),
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
            )
        except httpx.TransportError as e:
            logger.warning("Relay could not reach Bitrix24 for %s: %s", body.method, e)
            return _error(502, "Could not send the request to Bitrix24", str(e) or type(e).__name__)

        text = upstream_response.text
        if not text:
            if upstream_response.status_code == 204:
                return Response(status_code=204)
            return JSONResponse(status_code=upstream_response.status_code, content={})

        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("Relay got non-JSON from Bitrix24 for %s", body.method)
            return _error(502, "Bitrix24 returned invalid JSON", text[:MAX_DETAILS_CHARS])

        if not upstream_response.is_success:
            return JSONResponse(status_code=upstream_response.status_code, content=data)

        return JSONResponse(status_code=200, content=data)

    return app


app = create_app()

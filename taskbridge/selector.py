"""
Transport Selector
==================

Chooses between the direct and proxy transports and demotes to the proxy
after the direct path proves unreachable.

STATE MACHINE:
==============
    DIRECT --(NETWORK_FAILURE on direct, proxy supported)--> PROXY

- No way back: once PROXY, every later call in the session uses it.
- Without proxy support the state is pinned to DIRECT.
- Rejections and malformed bodies are request problems, not transport
  problems; they never trigger a fallback.

The fallback decision is a pure function of the CallResult and the
preference state (plan_fallback); the selector only executes it.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Optional
import logging

from .contracts import CallResult, CallStatus, Transport, TransportPreferenceState
from .errors import ExhaustedWithoutTransport, error_from_result
from .transport import TransportClient


logger = logging.getLogger(__name__)


class FallbackDecision(Enum):
    """What to do after a direct call."""
    ACCEPT = "accept"          # success, return the body
    SURFACE = "surface"        # raise the error as-is
    DEMOTE = "demote"          # switch to proxy and retry once
    EXHAUSTED = "exhausted"    # unreachable and no proxy available


def plan_fallback(result: CallResult, state: TransportPreferenceState) -> FallbackDecision:
    if result.success:
        return FallbackDecision.ACCEPT
    if result.transport != Transport.DIRECT or result.status != CallStatus.NETWORK_FAILURE:
        return FallbackDecision.SURFACE
    if not state.supports_proxy:
        return FallbackDecision.EXHAUSTED
    return FallbackDecision.DEMOTE


class TransportSelector:
    """
    Executes calls over the preferred transport.

    The preference state is passed in and shared by every selector built
    for the same session. Concurrent calls that race to demote write the
    same value, so interleaving does not matter.
    """

    def __init__(self, client: TransportClient, state: Optional[TransportPreferenceState] = None):
        self._client = client
        self._state = state if state is not None else TransportPreferenceState(
            supports_proxy=bool(client.config.supports_proxy)
        )

    @property
    def state(self) -> TransportPreferenceState:
        return self._state

    @property
    def active_transport(self) -> Transport:
        return self._state.active

    async def call(self, method: str, params: Optional[dict] = None) -> Any:
        """Return the parsed response body or raise a BitrixError."""
        if self._state.active == Transport.PROXY:
            result = await self._client.send(Transport.PROXY, method, params)
            if not result.success:
                raise error_from_result(result)
            return result.body

        direct = await self._client.send(Transport.DIRECT, method, params)
        decision = plan_fallback(direct, self._state)

        if decision == FallbackDecision.ACCEPT:
            return direct.body

        if decision == FallbackDecision.SURFACE:
            raise error_from_result(direct)

        if decision == FallbackDecision.EXHAUSTED:
            raise ExhaustedWithoutTransport(
                f"{direct.error_message} (the proxy cannot be used in this environment, "
                f"no other transport is available)",
                cause=direct.error_message,
                method=method
            )

        self._demote(direct)
        proxied = await self._client.send(Transport.PROXY, method, params)
        if proxied.success:
            return proxied.body

        raise error_from_result(
            proxied,
            f"{proxied.error_message} (the direct request also failed: {direct.error_message})"
        )

    def _demote(self, direct: CallResult) -> None:
        if not self._state.prefer_proxy:
            logger.warning(
                "Direct Bitrix24 request unreachable, switching to proxy: %s",
                direct.error_message
            )
        self._state.prefer_proxy = True

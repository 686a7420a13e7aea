from typing import Any, Callable, List

import httpx
import pytest

from taskbridge.config import BitrixConfig
from taskbridge.contracts import Transport, TransportPreferenceState
from tests.helpers import PROXY, WEBHOOK, ScriptedTransportClient


@pytest.fixture
def config() -> BitrixConfig:
    return BitrixConfig(webhook_url=WEBHOOK, proxy_url=PROXY)


@pytest.fixture
def direct_only_config() -> BitrixConfig:
    return BitrixConfig(webhook_url=WEBHOOK, supports_proxy=False)


@pytest.fixture
def transport_state() -> TransportPreferenceState:
    return TransportPreferenceState(prefer_proxy=False, supports_proxy=True)


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedTransportClient]:
    def build(config: BitrixConfig, **script: List[Any]) -> ScriptedTransportClient:
        return ScriptedTransportClient(
            config,
            {Transport(name): results for name, results in script.items()}
        )
    return build


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """AsyncClient whose requests are answered by handler."""
    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return build

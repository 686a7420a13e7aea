"""Test doubles for the transport and pagination layers."""

from typing import Any, Dict, List, Optional, Tuple

from taskbridge.config import BitrixConfig
from taskbridge.contracts import CallResult, CallStatus, Transport


WEBHOOK = "https://portal.bitrix24.kz/rest/13/secret/"
PROXY = "https://relay.example.com/server/bitrix"


class ScriptedTransportClient:
    """
    Stand-in for TransportClient.

    Each transport has a queue of CallResults (or callables producing one);
    the last entry repeats once the queue is drained.
    """

    def __init__(self, config: BitrixConfig, script: Dict[Transport, List[Any]]):
        self.config = config
        self._script = {transport: list(results) for transport, results in script.items()}
        self.calls: List[Tuple[Transport, str, dict]] = []

    async def send(self, transport: Transport, method: str, params: Optional[dict] = None) -> CallResult:
        self.calls.append((transport, method, dict(params or {})))
        queue = self._script.get(transport)
        if not queue:
            raise AssertionError(f"unexpected {transport.value} call to {method}")
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(entry):
            entry = entry(method, params or {})
        return entry

    def transports_used(self) -> List[Transport]:
        return [call[0] for call in self.calls]


class PagedSelector:
    """Stand-in for TransportSelector serving pages keyed by cursor."""

    def __init__(self, pages: Dict[int, Any], cursor_field: str = 'start'):
        self._pages = pages
        self._cursor_field = cursor_field
        self.requested: List[int] = []
        self.errors: Dict[int, Exception] = {}

    async def call(self, method: str, params: Optional[dict] = None) -> Any:
        cursor = (params or {}).get(self._cursor_field)
        self.requested.append(cursor)
        if cursor in self.errors:
            raise self.errors[cursor]
        return self._pages.get(cursor, {'result': {'tasks': []}})


def ok(transport: Transport, body: Any, method: str = 'tasks.task.list') -> CallResult:
    return CallResult.ok(transport, method, body)


def network_failure(transport: Transport, message: str = "connection refused",
                    method: str = 'tasks.task.list') -> CallResult:
    return CallResult.failed(transport, method, CallStatus.NETWORK_FAILURE, message)


def rejection(transport: Transport, status: int = 400, description: str = "bad filter",
              method: str = 'tasks.task.list') -> CallResult:
    return CallResult.failed(
        transport, method, CallStatus.REMOTE_REJECTION,
        f"HTTP {status}: {description}", http_status=status, description=description
    )


def malformed(transport: Transport, method: str = 'tasks.task.list') -> CallResult:
    return CallResult.failed(transport, method, CallStatus.MALFORMED_BODY, "not valid JSON", http_status=200)



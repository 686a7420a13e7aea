"""
Task Service Tests

Covers the presentation-facing entry point: demo mode, per-session
memoization, connection checks and configuration failures.
"""

from urllib.parse import parse_qsl

import httpx
import pytest

from taskbridge.config import BitrixConfig
from taskbridge.contracts import Transport
from taskbridge.errors import ConfigurationError, RemoteRejection
from taskbridge.service import TaskService, create_service, task_list_params
from tests.helpers import PROXY, WEBHOOK


def task_pages(pages):
    """Handler serving tasks.task.list pages keyed by the start parameter."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        query = dict(parse_qsl(request.url.query.decode()))
        requests.append(query)
        start = int(query.get("start", 0))
        return httpx.Response(200, json=pages.get(start, {"result": {"tasks": []}}))

    handler.requests = requests
    return handler


class TestFetchTasks:

    @pytest.mark.asyncio
    async def test_fetches_every_page_for_user(self, config, mock_http):
        handler = task_pages({
            0: {"result": {"tasks": [{"id": "1", "title": "A"}]}, "total": 2, "next": 50},
            50: {"result": {"tasks": [{"id": "2", "title": "B"}]}, "total": 2},
        })
        service = TaskService(config, client=mock_http(handler))

        tasks = await service.fetch_tasks("13")

        assert [task["ID"] for task in tasks] == ["1", "2"]
        assert service.state.total == 2
        assert service.state.loaded_at is not None
        assert [q["start"] for q in handler.requests] == ["0", "50"]
        assert all(q["filter[RESPONSIBLE_ID]"] == "13" for q in handler.requests)
        assert handler.requests[0]["order[DEADLINE]"] == "ASC"

    @pytest.mark.asyncio
    async def test_tasks_are_memoized(self, config, mock_http):
        handler = task_pages({0: {"result": {"tasks": [{"ID": "1"}]}}})
        service = TaskService(config, client=mock_http(handler))

        first = await service.fetch_tasks("13")
        second = await service.fetch_tasks("13")

        assert first == second
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_force_refetches(self, config, mock_http):
        handler = task_pages({0: {"result": {"tasks": [{"ID": "1"}]}}})
        service = TaskService(config, client=mock_http(handler))

        await service.fetch_tasks("13")
        await service.fetch_tasks("13", force=True)

        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_missing_user_is_configuration_error(self, config, mock_http):
        service = TaskService(config, client=mock_http(task_pages({})))

        with pytest.raises(ConfigurationError):
            await service.fetch_tasks(None)

    @pytest.mark.asyncio
    async def test_missing_webhook_is_configuration_error(self, mock_http):
        handler = task_pages({})
        service = TaskService(BitrixConfig(proxy_url=PROXY), client=mock_http(handler))

        with pytest.raises(ConfigurationError):
            await service.fetch_tasks("13")
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_demo_mode_never_calls_network(self, mock_http):
        def handler(request):
            raise AssertionError("demo mode must stay offline")

        service = TaskService(BitrixConfig(demo_mode=True), client=mock_http(handler))

        tasks = await service.fetch_tasks(None)

        assert [task["ID"] for task in tasks] == ["101", "102", "103"]
        assert "CREATED_BY" not in tasks[0]
        assert service.state.total == 3

    @pytest.mark.asyncio
    async def test_rejection_propagates(self, config, mock_http):
        def handler(request):
            return httpx.Response(401, json={"error": "INVALID_CREDENTIALS", "error_description": "Bad hook"})

        service = TaskService(config, client=mock_http(handler))

        with pytest.raises(RemoteRejection) as exc_info:
            await service.fetch_tasks("13")

        assert exc_info.value.http_status == 401
        assert service.state.tasks == []

    @pytest.mark.asyncio
    async def test_falls_back_to_proxy(self, config, mock_http):
        proxy_bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url).startswith(WEBHOOK):
                raise httpx.ConnectError("blocked", request=request)
            proxy_bodies.append(request.content)
            return httpx.Response(200, json={"result": {"tasks": [{"ID": "9"}]}})

        service = TaskService(config, client=mock_http(handler))

        tasks = await service.fetch_tasks("13")

        assert [task["ID"] for task in tasks] == ["9"]
        assert service.transport_state.active == Transport.PROXY
        assert len(proxy_bodies) == 1


class TestConnectionCheck:

    @pytest.mark.asyncio
    async def test_preview_of_first_three(self, config, mock_http):
        items = [{"ID": str(i), "TITLE": f"Task {i}"} for i in range(1, 6)]
        items[1]["TITLE"] = ""
        handler = task_pages({0: {"result": {"tasks": items}, "total": 40}})
        service = TaskService(config, client=mock_http(handler))

        report = await service.test_connection("13")

        assert report.total == 40
        assert report.preview == ("#1 — Task 1", "#2 — Untitled", "#3 — Task 3")
        assert report.has_tasks
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_no_tasks(self, config, mock_http):
        service = TaskService(config, client=mock_http(task_pages({})))

        report = await service.test_connection("13")

        assert report.total == 0
        assert not report.has_tasks

    @pytest.mark.asyncio
    async def test_requires_user(self, config, mock_http):
        service = TaskService(config, client=mock_http(task_pages({})))

        with pytest.raises(ConfigurationError):
            await service.test_connection("")


class TestFactory:

    def test_task_list_params(self):
        params = task_list_params("13", select=("ID",))
        assert params == {
            "filter": {"RESPONSIBLE_ID": "13"},
            "select": ["ID"],
            "order": {"DEADLINE": "ASC"},
            "start": 0,
        }

    def test_create_service_from_env(self, monkeypatch):
        monkeypatch.setenv("BITRIX_WEBHOOK_URL", WEBHOOK)
        monkeypatch.delenv("BITRIX_PROXY_URL", raising=False)
        monkeypatch.delenv("BITRIX_SUPPORTS_PROXY", raising=False)

        service = create_service()

        assert service.transport_state.supports_proxy is False

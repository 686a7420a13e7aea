"""
Task Feed Service

Entry point for the presentation layer: fetches the current user's
tasks, runs connection checks, and reads project lists.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

import httpx

from .config import BitrixConfig
from .contracts import (
    AccumulatedCollection, CanonicalRecord, TASK_FIELDS, TransportPreferenceState
)
from .errors import ConfigurationError
from .lists import ListElementFetcher
from .normalizer import normalize_task_record
from .pagination import PaginationEngine
from .selector import TransportSelector
from .transport import TransportClient


TASK_LIST_METHOD = 'tasks.task.list'
PREVIEW_SIZE = 3


def task_list_params(bitrix_user_id: str, select: Sequence[str] = TASK_FIELDS) -> dict:
    return {
        'filter': {'RESPONSIBLE_ID': bitrix_user_id},
        'select': list(select),
        'order': {'DEADLINE': 'ASC'},
        'start': 0,
    }


@dataclass
class TaskFeedState:
    """Tasks last loaded in this session."""
    tasks: List[CanonicalRecord] = field(default_factory=list)
    total: int = 0
    loaded_at: Optional[datetime] = None

    def replace(self, tasks: List[CanonicalRecord], total: int) -> None:
        self.tasks = tasks
        self.total = total
        self.loaded_at = datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConnectionReport:
    """Outcome of a connection check."""
    total: int
    preview: Tuple[str, ...] = ()

    @property
    def has_tasks(self) -> bool:
        return bool(self.preview)


class TaskService:
    """
    Coordinates configuration, transport selection and pagination.

    DESIGN:
    =======
    1. One TransportPreferenceState per service (one session)
    2. Tasks are memoized per session; force=True refetches
    3. Demo mode never touches the network
    """

    def __init__(
        self,
        config: BitrixConfig,
        client: Optional[httpx.AsyncClient] = None,
        transport_state: Optional[TransportPreferenceState] = None
    ):
        self._config = config
        self._transport_state = transport_state or TransportPreferenceState(
            supports_proxy=bool(config.supports_proxy)
        )
        self._selector = TransportSelector(TransportClient(config, client), self._transport_state)
        self._engine = PaginationEngine(self._selector)
        self._state = TaskFeedState()

    @property
    def state(self) -> TaskFeedState:
        return self._state

    @property
    def transport_state(self) -> TransportPreferenceState:
        return self._transport_state

    async def fetch_all(self, method: str, params: Optional[dict] = None) -> AccumulatedCollection:
        """Fetch every record of method with params."""
        self._config.require_webhook()
        return await self._engine.fetch_all(method, params)

    async def fetch_tasks(self, bitrix_user_id: Optional[str], force: bool = False) -> List[CanonicalRecord]:
        if self._config.demo_mode:
            if not self._state.tasks:
                demo = [normalize_task_record(task) for task in self._config.demo_tasks]
                self._state.replace(demo, len(demo))
            return self._state.tasks

        if not bitrix_user_id:
            raise ConfigurationError(
                "Bitrix24 user id is unknown; check BITRIX_USER_MAPPING or launch parameters"
            )

        if self._state.tasks and not force:
            return self._state.tasks

        collection = await self.fetch_all(TASK_LIST_METHOD, task_list_params(bitrix_user_id))
        self._state.replace(list(collection.records), collection.total)
        return self._state.tasks

    async def test_connection(self, bitrix_user_id: Optional[str]) -> ConnectionReport:
        """Fetch one page of tasks and summarize it."""
        if not bitrix_user_id:
            raise ConfigurationError("Bitrix24 user id is unknown")
        self._config.require_webhook()

        page = await self._engine.fetch_page(
            TASK_LIST_METHOD,
            task_list_params(bitrix_user_id, select=('ID', 'TITLE', 'STATUS', 'DEADLINE')),
        )
        total = page.total if page.total is not None else len(page.records)
        preview = tuple(
            f"#{record.get('ID') or ''} — {record.get('TITLE') or 'Untitled'}"
            for record in page.records[:PREVIEW_SIZE]
        )
        return ConnectionReport(total=total, preview=preview)

    async def fetch_projects(
        self,
        iblock_ids: Sequence[str],
        property_fields: Sequence[str] = (),
        filters: Optional[dict] = None
    ) -> AccumulatedCollection:
        self._config.require_webhook()
        fetcher = ListElementFetcher(self._selector, property_fields=property_fields)
        return await fetcher.fetch(iblock_ids, filters)


def create_service(
    config: Optional[BitrixConfig] = None,
    client: Optional[httpx.AsyncClient] = None
) -> TaskService:
    """Create a task service configured from the environment."""
    return TaskService(config or BitrixConfig.from_env(), client=client)

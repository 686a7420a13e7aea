"""
Pagination Engine
=================

Walks a paginated remote collection to completion.

TERMINATION:
============
The loop stops when any of these holds:
1. There is no next cursor
2. The next cursor was already visited (stale or repeating cursor)
3. MAX_COLLECTION_RECORDS records have been gathered
4. A page came back empty with no next cursor

GUARANTEES:
===========
- Each cursor is requested at most once per fetch_all call
- Records keep fetch order; total never decreases while paging
- Final total is never smaller than the number of records returned
- Any error discards the pages gathered so far
"""

from __future__ import annotations
from typing import Optional
import logging

from .contracts import AccumulatedCollection, CollectionResult, MAX_COLLECTION_RECORDS
from .envelope import ResponseEnvelopeUnwrapper
from .normalizer import RecordNormalizer
from .selector import TransportSelector


logger = logging.getLogger(__name__)

DEFAULT_CURSOR_FIELD = 'start'


class PaginationEngine:
    """
    Assembles complete collections from paged remote calls.

    Holds no per-fetch state: every fetch_all builds its own accumulator,
    so concurrent fetches on one engine are independent.
    """

    def __init__(
        self,
        selector: TransportSelector,
        unwrapper: Optional[ResponseEnvelopeUnwrapper] = None,
        normalizer: Optional[RecordNormalizer] = None,
        max_records: int = MAX_COLLECTION_RECORDS
    ):
        self._selector = selector
        self._unwrapper = unwrapper or ResponseEnvelopeUnwrapper()
        self._normalizer = normalizer or RecordNormalizer()
        self._max_records = max_records

    @property
    def selector(self) -> TransportSelector:
        return self._selector

    async def fetch_page(self, method: str, params: Optional[dict] = None) -> CollectionResult:
        """One call, unwrapped and normalized."""
        body = await self._selector.call(method, params or {})
        unwrapped = self._unwrapper.unwrap(body)
        return CollectionResult(
            records=tuple(self._normalizer.normalize_batch(unwrapped.items)),
            total=unwrapped.total,
            next_cursor=unwrapped.next_cursor,
        )

    async def fetch_all(
        self,
        method: str,
        base_params: Optional[dict] = None,
        cursor_field: str = DEFAULT_CURSOR_FIELD
    ) -> AccumulatedCollection:
        """Fetch every page of method; raises BitrixError on any failure."""
        base_params = dict(base_params or {})
        collection = AccumulatedCollection()
        cursor: Optional[int] = 0

        while (
            cursor is not None
            and cursor not in collection.visited_cursors
            and len(collection) < self._max_records
        ):
            collection.visited_cursors.add(cursor)

            page = await self.fetch_page(method, {**base_params, cursor_field: cursor})
            collection.extend(page)
            logger.debug(
                "%s page at %s=%s: %d records, total=%s, next=%s",
                method, cursor_field, cursor, len(page.records), page.total, page.next_cursor
            )

            next_cursor = page.next_cursor
            if next_cursor is not None and next_cursor not in collection.visited_cursors:
                cursor = next_cursor
            else:
                cursor = None

            if not page.records and cursor is None:
                break

        if collection.total is None or len(collection) > collection.total:
            collection.total = len(collection)

        logger.info(
            "Fetched %d %s records over %d pages (total=%s)",
            len(collection), method, len(collection.visited_cursors), collection.total
        )
        return collection

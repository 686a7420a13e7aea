"""
List Element Discovery

Projects live in a universal list whose numeric id differs between
portals. The feed probes a set of candidate list ids, fetches every
element of each one that answers, and merges the results.

Merging keeps the first occurrence of each ID, in probe order.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from .contracts import AccumulatedCollection, CanonicalRecord
from .errors import RemoteRejection
from .normalizer import RecordNormalizer
from .pagination import PaginationEngine
from .selector import TransportSelector


logger = logging.getLogger(__name__)

LIST_ELEMENT_METHOD = 'lists.element.get'
DEFAULT_IBLOCK_TYPE = 'lists'

LIST_ELEMENT_FIELDS: Tuple[str, ...] = (
    'ID',
    'IBLOCK_ID',
    'NAME',
    'CODE',
    'CREATED_BY',
    'DATE_CREATE',
    'TIMESTAMP_X',
)


def list_element_normalizer(property_fields: Iterable[str] = ()) -> RecordNormalizer:
    """Normalizer for list elements plus any PROPERTY_* columns wanted."""
    fields = LIST_ELEMENT_FIELDS + tuple(f for f in property_fields if f not in LIST_ELEMENT_FIELDS)
    return RecordNormalizer(fields=fields, string_fields=('ID', 'IBLOCK_ID', 'CREATED_BY'))


def merge_unique(collections: Sequence[AccumulatedCollection]) -> List[CanonicalRecord]:
    seen = set()
    merged: List[CanonicalRecord] = []
    for collection in collections:
        for record in collection.records:
            record_id = record.get('ID')
            if record_id is not None:
                if record_id in seen:
                    continue
                seen.add(record_id)
            merged.append(record)
    return merged


class ListElementFetcher:
    """Probes candidate list ids and merges their elements."""

    def __init__(
        self,
        selector: TransportSelector,
        property_fields: Iterable[str] = (),
        iblock_type: str = DEFAULT_IBLOCK_TYPE
    ):
        self._engine = PaginationEngine(selector, normalizer=list_element_normalizer(property_fields))
        self._iblock_type = iblock_type

    async def fetch(self, iblock_ids: Sequence[str], filters: Optional[dict] = None) -> AccumulatedCollection:
        """
        Fetch and merge elements of every list in iblock_ids.

        A list that rejects the request is skipped; if every probe is
        rejected the last rejection is raised. Network and configuration
        errors propagate immediately.
        """
        if not iblock_ids:
            return AccumulatedCollection(total=0)

        found: List[AccumulatedCollection] = []
        last_rejection: Optional[RemoteRejection] = None

        for iblock_id in iblock_ids:
            params = {'IBLOCK_TYPE_ID': self._iblock_type, 'IBLOCK_ID': iblock_id}
            if filters:
                params['FILTER'] = dict(filters)
            try:
                found.append(await self._engine.fetch_all(LIST_ELEMENT_METHOD, params))
            except RemoteRejection as e:
                logger.info("List %s rejected %s: %s", iblock_id, LIST_ELEMENT_METHOD, e.message)
                last_rejection = e

        if not found and last_rejection is not None:
            raise last_rejection

        records = merge_unique(found)
        visited = set()
        for collection in found:
            visited |= collection.visited_cursors
        return AccumulatedCollection(records=records, total=len(records), visited_cursors=visited)

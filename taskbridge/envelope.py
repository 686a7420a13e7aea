"""
Response Envelope Unwrapper
===========================

Pulls the item list and pagination metadata out of a raw API response.

Different remote methods (and the relay) wrap results differently:

    {"result": {"tasks": [...]}, "total": 5, "next": 50}
    {"result": [...], "total": "5"}
    {"result": null, "raw": {"result": {"tasks": [...]}, "next": 50}}
    [...]

Each shape is handled by one extractor; extractors are tried in order and
the first match wins. Metadata candidates that fail to parse are skipped.
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Callable, Optional, Sequence, Tuple

from .contracts import MISSING, Unwrapped
from .fields import normalize_number, resolve


ITEM_KEYS: Tuple[str, ...] = ('tasks', 'items')

Extractor = Callable[[Any], Optional[Tuple[Any, ...]]]


def _is_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _get(container: Any, key: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(key, MISSING)
    return MISSING


def _items_from_result(result: Any) -> Optional[Tuple[Any, ...]]:
    """result.tasks / result.items, then result as a list."""
    if isinstance(result, Mapping):
        for key in ITEM_KEYS:
            value = resolve(result, key)
            if _is_list(value):
                return tuple(value)
    if _is_list(result):
        return tuple(result)
    return None


# =============================================================================
# ITEM EXTRACTORS (ordered)
# =============================================================================

def items_under_result(response: Any) -> Optional[Tuple[Any, ...]]:
    """response.result.<items> or response.result as a list."""
    return _items_from_result(_get(response, 'result'))


def items_under_raw_result(response: Any) -> Optional[Tuple[Any, ...]]:
    """Fallback envelope produced by the relay: response.raw.result."""
    return _items_from_result(_get(_get(response, 'raw'), 'result'))


def items_bare_list(response: Any) -> Optional[Tuple[Any, ...]]:
    if _is_list(response):
        return tuple(response)
    return None


def items_top_level(response: Any) -> Optional[Tuple[Any, ...]]:
    """response.<items> or response.raw.<items> with no result wrapper."""
    if not isinstance(response, Mapping):
        return None
    for container in (response, _get(response, 'raw')):
        if isinstance(container, Mapping):
            for key in ITEM_KEYS:
                value = resolve(container, key)
                if _is_list(value):
                    return tuple(value)
    return None


ITEM_EXTRACTORS: Tuple[Extractor, ...] = (
    items_under_result,
    items_under_raw_result,
    items_bare_list,
    items_top_level,
)


# =============================================================================
# METADATA
# =============================================================================

def result_object(response: Any) -> Any:
    """The payload the metadata lives next to: result, raw.result, raw, or response."""
    if not isinstance(response, Mapping):
        return MISSING

    result = response.get('result')
    if result is not None:
        return result

    raw = response.get('raw')
    if isinstance(raw, Mapping):
        raw_result = raw.get('result')
        return raw_result if raw_result is not None else raw

    return response


def total_candidates(response: Any) -> Tuple[Any, ...]:
    result = result_object(response)
    return (
        _get(response, 'total'),
        _get(_get(response, 'raw'), 'total'),
        _get(result, 'total'),
        _get(result, 'tasks_total'),
        _get(result, 'tasks_count'),
        _get(result, 'tasksCount'),
    )


def next_candidates(response: Any) -> Tuple[Any, ...]:
    result = result_object(response)
    return (
        _get(response, 'next'),
        _get(_get(response, 'raw'), 'next'),
        _get(result, 'next'),
    )


def first_number(candidates: Sequence[Any]) -> Optional[int]:
    """First candidate that parses as an integer; the rest are ignored."""
    for candidate in candidates:
        numeric = normalize_number(candidate)
        if numeric is not None:
            return numeric
    return None


# =============================================================================
# UNWRAPPER
# =============================================================================

class ResponseEnvelopeUnwrapper:
    """
    Tolerant reader for every known response envelope.

    Never raises. Unknown shapes produce an empty item list.
    """

    def __init__(self, extractors: Tuple[Extractor, ...] = ITEM_EXTRACTORS):
        self._extractors = tuple(extractors)

    def unwrap(self, raw_response: Any) -> Unwrapped:
        return Unwrapped(
            items=self.extract_items(raw_response),
            total=first_number(total_candidates(raw_response)),
            next_cursor=first_number(next_candidates(raw_response)),
        )

    def extract_items(self, raw_response: Any) -> Tuple[Any, ...]:
        for extractor in self._extractors:
            items = extractor(raw_response)
            if items is not None:
                return items
        return ()


_default_unwrapper = ResponseEnvelopeUnwrapper()


def unwrap(raw_response: Any) -> Unwrapped:
    return _default_unwrapper.unwrap(raw_response)

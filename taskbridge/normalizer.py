"""
Record Normalizer
=================

Converts raw collection items into CanonicalRecords.

GUARANTEES:
- Never raises, whatever the input shape
- ID, STATUS and PRIORITY always come out as str (or None)
- Absent fields are omitted, never defaulted
- normalize(x) == normalize(x) == normalize(normalize(x))
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Iterable, List, Tuple

from .contracts import CanonicalRecord, MISSING, STRING_FIELDS, TASK_FIELDS
from .fields import resolve


# Envelope keys that wrap the real record one level down
WRAPPER_KEYS: Tuple[str, ...] = ('task',)


class RecordNormalizer:
    """
    Maps raw items onto a fixed set of canonical fields.

    Stateless; one instance can serve every fetch.
    """

    def __init__(
        self,
        fields: Tuple[str, ...] = TASK_FIELDS,
        string_fields: Iterable[str] = STRING_FIELDS,
        wrapper_keys: Tuple[str, ...] = WRAPPER_KEYS
    ):
        self._fields = tuple(fields)
        self._string_fields = frozenset(string_fields)
        self._wrapper_keys = tuple(wrapper_keys)

    @property
    def fields(self) -> Tuple[str, ...]:
        return self._fields

    def normalize(self, raw_item: Any) -> CanonicalRecord:
        """Normalize one raw item."""
        if not isinstance(raw_item, Mapping):
            return CanonicalRecord()

        source = self._unwrap(raw_item)
        normalized = {}

        for field_name in self._fields:
            value = resolve(source, field_name)
            if value is MISSING:
                continue
            if field_name in self._string_fields:
                normalized[field_name] = self._as_string(value)
            else:
                normalized[field_name] = value

        return CanonicalRecord(normalized)

    def normalize_batch(self, raw_items: Iterable[Any]) -> List[CanonicalRecord]:
        return [self.normalize(item) for item in raw_items]

    def _unwrap(self, raw_item: Mapping) -> Mapping:
        for key in self._wrapper_keys:
            nested = raw_item.get(key)
            if isinstance(nested, Mapping):
                return nested
        return raw_item

    @staticmethod
    def _as_string(value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, float) and value.is_integer():
            # 13.0 from a JSON number is the id "13"
            return str(int(value))
        return str(value)


_default_normalizer = RecordNormalizer()


def normalize_task_record(raw_item: Any) -> CanonicalRecord:
    """Normalize one task item with the default task field set."""
    return _default_normalizer.normalize(raw_item)

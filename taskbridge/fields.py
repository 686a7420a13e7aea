"""
Field Access Helpers

The remote API returns the same logical field under different casings
depending on which method was called (ID / id, CREATED_DATE / createdDate).
These helpers resolve a canonical key against whatever a raw record uses.

All functions are pure.
"""

from __future__ import annotations
from collections.abc import Mapping
import math
import re
from typing import Any, Optional, Tuple

from .contracts import MISSING


_CAMEL_RE = re.compile(r'_([a-z])')
_LEADING_INT_RE = re.compile(r'[+-]?\d+')


def to_camel_case_key(key: str) -> str:
    """CREATED_DATE -> createdDate"""
    if not key:
        return ''
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), key.lower())


def key_variants(key: str) -> Tuple[str, ...]:
    """Candidate spellings of a key, deduplicated, in lookup order."""
    variants = []
    for candidate in (key, key.upper(), key.lower(), to_camel_case_key(key)):
        if candidate and candidate not in variants:
            variants.append(candidate)
    return tuple(variants)


def resolve(raw_record: Any, canonical_key: str) -> Any:
    """
    Look up canonical_key on raw_record under any known casing.

    Exact spellings are tried first, then any other casing (Status,
    CreatedDate). Returns MISSING when nothing matches. A present None
    (JSON null) is returned as None.
    """
    if not isinstance(raw_record, Mapping) or not canonical_key:
        return MISSING

    for variant in key_variants(canonical_key):
        if variant in raw_record:
            value = raw_record[variant]
            if value is not MISSING:
                return value

    folded = {canonical_key.lower(), to_camel_case_key(canonical_key).lower()}
    for key, value in raw_record.items():
        if isinstance(key, str) and key.lower() in folded and value is not MISSING:
            return value

    return MISSING


def normalize_number(value: Any) -> Optional[int]:
    """
    Parse a pagination number the way the remote reports it.

    Accepts finite ints/floats and strings starting with an integer
    ("50", " 7 ", "12abc"). Anything else is None.
    """
    if isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if math.isfinite(value):
            return int(value)
        return None

    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value.strip())
        if match:
            try:
                return int(match.group(0))
            except ValueError:
                # past the interpreter's int digit limit
                return None

    return None

"""
Parameter Encoding

The remote API takes complex filters as bracketed form keys:

    {"filter": {"RESPONSIBLE_ID": 13}, "select": ["ID", "TITLE"]}
    -> filter[RESPONSIBLE_ID]=13&select[0]=ID&select[1]=TITLE

Output is deterministic: keys keep their insertion order.
"""

from __future__ import annotations
from collections.abc import Mapping
from typing import Any, List, Tuple
from urllib.parse import quote


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def flatten_params(tree: Any) -> List[Tuple[str, str]]:
    """Flatten a nested parameter tree into (bracketed_key, value) pairs."""
    pairs: List[Tuple[str, str]] = []

    def walk(key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, Mapping):
            for child_key, child in value.items():
                walk(f"{key}[{child_key}]", child)
        elif isinstance(value, (list, tuple)):
            for index, child in enumerate(value):
                walk(f"{key}[{index}]", child)
        else:
            pairs.append((key, _scalar(value)))

    if isinstance(tree, Mapping):
        for key, value in tree.items():
            walk(str(key), value)

    return pairs


def encode_params(tree: Any) -> str:
    """Serialize a parameter tree into a query / form-body string."""
    return '&'.join(
        f"{quote(key, safe='')}={quote(value, safe='')}"
        for key, value in flatten_params(tree)
    )

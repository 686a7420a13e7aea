"""
Task Feed Contracts

Data structures shared by the transport, pagination and normalization layers.

BOUNDARY: Bitrix24 data-access layer
Every record leaving this package is one of these contracts.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Optional, Set, Tuple


# =============================================================================
# CANONICAL FIELDS
# =============================================================================

TASK_FIELDS: Tuple[str, ...] = (
    'ID',
    'TITLE',
    'DESCRIPTION',
    'STATUS',
    'DEADLINE',
    'CREATED_DATE',
    'CLOSED_DATE',
    'PRIORITY',
)

# Always rendered as strings once normalized
STRING_FIELDS: frozenset = frozenset({'ID', 'STATUS', 'PRIORITY'})

MAX_COLLECTION_RECORDS = 2000


class _Missing:
    """Marker for a field that is not present on a raw record."""

    _instance: Optional['_Missing'] = None

    def __new__(cls) -> '_Missing':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'MISSING'

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


# =============================================================================
# ENUMS
# =============================================================================

class Transport(Enum):
    """Request paths to the remote API."""
    DIRECT = "direct"
    PROXY = "proxy"


class CallStatus(Enum):
    """Outcome of a single remote call."""
    SUCCESS = "success"
    NETWORK_FAILURE = "network_failure"
    REMOTE_REJECTION = "remote_rejection"
    MALFORMED_BODY = "malformed_body"


# =============================================================================
# RECORDS
# =============================================================================

class CanonicalRecord(Mapping):
    """
    Normalized remote item.

    Immutable: built once per raw item and never changed afterwards.
    Compares equal to a plain dict with the same items.
    """

    __slots__ = ('_fields',)

    def __init__(self, fields: Optional[Mapping[str, Any]] = None):
        object.__setattr__(self, '_fields', dict(fields or {}))

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("CanonicalRecord is immutable")

    def __hash__(self) -> int:
        return hash(tuple(sorted((k, repr(v)) for k, v in self._fields.items())))

    def __repr__(self) -> str:
        return f"CanonicalRecord({self._fields!r})"

    def to_dict(self) -> dict:
        return dict(self._fields)


# =============================================================================
# TRANSPORT CONTRACTS
# =============================================================================

@dataclass
class TransportPreferenceState:
    """
    Transport preference shared by every call in a session.

    Caller-owned. Only the transport selector writes to it, and the only
    write it ever makes is prefer_proxy False -> True.
    """
    prefer_proxy: bool = False
    supports_proxy: bool = True

    @property
    def active(self) -> Transport:
        if self.prefer_proxy and self.supports_proxy:
            return Transport.PROXY
        return Transport.DIRECT


@dataclass(frozen=True)
class CallResult:
    """
    Result of one call over one transport.

    Failures are values here, not exceptions. The selector decides
    what to do with them.
    """
    transport: Transport
    method: str
    status: CallStatus

    # On success
    body: Any = None

    # On failure
    error_message: Optional[str] = None
    http_status: Optional[int] = None
    description: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == CallStatus.SUCCESS

    @classmethod
    def ok(cls, transport: Transport, method: str, body: Any, http_status: int = 200) -> 'CallResult':
        return cls(transport=transport, method=method, status=CallStatus.SUCCESS,
                   body=body, http_status=http_status)

    @classmethod
    def failed(
        cls,
        transport: Transport,
        method: str,
        status: CallStatus,
        message: str,
        http_status: Optional[int] = None,
        description: Optional[str] = None
    ) -> 'CallResult':
        if status == CallStatus.SUCCESS:
            raise ValueError("Failed result must carry a failure status")
        return cls(transport=transport, method=method, status=status,
                   error_message=message, http_status=http_status,
                   description=description)


# =============================================================================
# COLLECTION CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class Unwrapped:
    """Raw item list and pagination metadata pulled out of an envelope."""
    items: Tuple[Any, ...] = ()
    total: Optional[int] = None
    next_cursor: Optional[int] = None


@dataclass(frozen=True)
class CollectionResult:
    """One remote page, normalized."""
    records: Tuple[CanonicalRecord, ...]
    total: Optional[int] = None
    next_cursor: Optional[int] = None


@dataclass
class AccumulatedCollection:
    """
    Records gathered across every page of one fetch_all call.

    records is append-only in fetch order; total never decreases.
    """
    records: List[CanonicalRecord] = field(default_factory=list)
    total: Optional[int] = None
    visited_cursors: Set[int] = field(default_factory=set)

    def __len__(self) -> int:
        return len(self.records)

    def extend(self, page: CollectionResult) -> None:
        self.records.extend(page.records)
        if page.total is not None:
            self.total = page.total if self.total is None else max(self.total, page.total)

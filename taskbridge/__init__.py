"""
Bitrix24 Task Feed

Data-access layer between a Bitrix24 portal and the task dashboard.

LAYER FLOW:
===========
TaskService -> PaginationEngine -> TransportSelector -> TransportClient
            <- RecordNormalizer <- ResponseEnvelopeUnwrapper <-

Nothing in this package renders, formats or localizes field values.
"""

from .contracts import (
    AccumulatedCollection,
    CallResult,
    CallStatus,
    CanonicalRecord,
    CollectionResult,
    MISSING,
    TASK_FIELDS,
    Transport,
    TransportPreferenceState,
)

from .errors import (
    BitrixError,
    ConfigurationError,
    ExhaustedWithoutTransport,
    MalformedBody,
    NetworkFailure,
    RemoteRejection,
)

from .config import BitrixConfig, LaunchOverrides
from .encoding import encode_params
from .envelope import ResponseEnvelopeUnwrapper
from .fields import resolve
from .normalizer import RecordNormalizer, normalize_task_record
from .transport import TransportClient
from .selector import TransportSelector
from .pagination import PaginationEngine
from .service import TaskService, create_service

__all__ = [
    "AccumulatedCollection",
    "BitrixConfig",
    "BitrixError",
    "CallResult",
    "CallStatus",
    "CanonicalRecord",
    "CollectionResult",
    "ConfigurationError",
    "ExhaustedWithoutTransport",
    "LaunchOverrides",
    "MISSING",
    "MalformedBody",
    "NetworkFailure",
    "PaginationEngine",
    "RecordNormalizer",
    "RemoteRejection",
    "ResponseEnvelopeUnwrapper",
    "TASK_FIELDS",
    "TaskService",
    "Transport",
    "TransportClient",
    "TransportPreferenceState",
    "TransportSelector",
    "create_service",
    "encode_params",
    "normalize_task_record",
    "resolve",
]

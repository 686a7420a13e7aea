"""
Task Feed Errors

Every failure that reaches a caller of this package is one of these.

PROPAGATION:
============
- NetworkFailure: remote host unreachable. Triggers transport demotion
  and one proxy attempt before it is surfaced.
- RemoteRejection: remote answered with an error status or error payload.
  Never retried.
- MalformedBody: success status, unparseable body. Never retried.
- ConfigurationError: required setting missing. Raised before any network call.
- ExhaustedWithoutTransport: direct path failed and no proxy is available.
"""

from __future__ import annotations
from typing import Optional

from .contracts import CallResult, CallStatus, Transport


class BitrixError(Exception):
    """Base class for all task feed errors."""

    def __init__(
        self,
        message: str,
        transport: Optional[Transport] = None,
        method: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.transport = transport
        self.method = method


class NetworkFailure(BitrixError):
    """Remote host could not be reached over the transport."""


class RemoteRejection(BitrixError):
    """Remote was reached but refused the request."""

    def __init__(
        self,
        message: str,
        transport: Optional[Transport] = None,
        method: Optional[str] = None,
        http_status: Optional[int] = None,
        description: Optional[str] = None
    ):
        super().__init__(message, transport=transport, method=method)
        self.http_status = http_status
        self.description = description


class MalformedBody(BitrixError):
    """Remote answered with a success status but the body is not JSON."""


class ConfigurationError(BitrixError):
    """A required setting is missing or invalid."""


class ExhaustedWithoutTransport(BitrixError):
    """Direct transport failed and the proxy cannot be used here."""

    def __init__(self, message: str, cause: Optional[str] = None, method: Optional[str] = None):
        super().__init__(message, transport=Transport.DIRECT, method=method)
        self.cause = cause


_ERROR_BY_STATUS = {
    CallStatus.NETWORK_FAILURE: NetworkFailure,
    CallStatus.MALFORMED_BODY: MalformedBody,
}


def error_from_result(result: CallResult, message: Optional[str] = None) -> BitrixError:
    """Build the exception matching a failed CallResult."""
    if result.success:
        raise ValueError("Cannot build an error from a successful call")

    text = message or result.error_message or result.status.value
    if result.status == CallStatus.REMOTE_REJECTION:
        return RemoteRejection(
            text,
            transport=result.transport,
            method=result.method,
            http_status=result.http_status,
            description=result.description
        )

    error_cls = _ERROR_BY_STATUS[result.status]
    return error_cls(text, transport=result.transport, method=result.method)

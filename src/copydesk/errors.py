"""Error taxonomy shared by the stores, sync layer and state store.

ValidationError and InvariantViolation reach the caller with a readable
message.  RemoteUnavailable and LocalCorrupt are raised by the storage tier
and absorbed at the sync boundary (logged, best-effort data returned).
"""

from __future__ import annotations


class CopyDeskError(Exception):
    """Base class for all copydesk errors."""


class ValidationError(CopyDeskError):
    """Input rejected before any I/O (shape, length, charset)."""


class NotFoundError(ValidationError):
    """A write or pointer change referenced an id that does not exist."""


class InvariantViolation(CopyDeskError):
    """Operation refused because it would break a model invariant.

    Raised before anything is written, so storage is left unchanged.
    """


class RemoteUnavailable(CopyDeskError):
    """Remote store unreachable, timed out, rejected the call or sent garbage."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LocalCorrupt(CopyDeskError):
    """A local key could not be deserialized or had the wrong type."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"{key}: {reason}")
        self.key = key
        self.reason = reason

"""Errors and result types of the metadata pinner."""

from __future__ import annotations

from dataclasses import dataclass


class StorageError(Exception):
    """Raised by the pinner on any failure.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure is transient (network error, HTTP 5xx).

    """

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        self.detail = detail
        self.retryable = retryable
        super().__init__(detail)


class StorageUnavailable(StorageError):
    """Pinning credentials are not configured."""


class UploadFailed(StorageError):
    """A pin, re-pin or unpin request did not succeed."""


class RetrievalFailed(StorageError):
    """A document could not be fetched from the gateway."""


@dataclass(frozen=True)
class PinResult:
    """A successfully pinned document.

    Attributes
    ----------
    ipfs_hash:
        Content identifier returned by the pinning service.
    url:
        Public gateway URL of the document.
    timestamp:
        Pin timestamp as reported by the service, if any.

    """

    ipfs_hash: str
    url: str
    timestamp: str | None = None

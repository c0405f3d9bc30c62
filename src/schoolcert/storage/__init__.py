"""Off-chain certificate metadata storage (IPFS via Pinata)."""

from schoolcert.storage.base import (
    PinResult,
    RetrievalFailed,
    StorageError,
    StorageUnavailable,
    UploadFailed,
)
from schoolcert.storage.pinata import PinataClient

__all__ = [
    "PinResult",
    "PinataClient",
    "RetrievalFailed",
    "StorageError",
    "StorageUnavailable",
    "UploadFailed",
]

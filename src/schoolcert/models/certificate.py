"""Certificate entity as recorded on the ledger.

Immutable except for the ``revoked`` flag, which only ever moves from
``False`` to ``True``.  ``metadata_hash`` is empty when no metadata was
pinned for the certificate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class Certificate:
    id: int
    recipient_address: str
    recipient_name: str
    recipient_email: str
    certificate_type: str
    metadata_hash: str
    issued_at: datetime
    issued_by: str
    revoked: bool = False

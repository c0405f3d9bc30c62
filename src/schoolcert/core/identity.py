"""Deterministic recipient addresses for students without a wallet.

A certificate on the ledger is always addressed to an EVM address.
Students who registered a wallet use it; everyone else gets a
synthetic address derived from their student id alone, so the same
student maps to the same address across restarts and processes.

The derived address has **no private key**.  It only names a
recipient and must never be used to sign anything.
"""

from __future__ import annotations

import hashlib
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schoolcert.models.student import Student

_NAMESPACE = "student_"
_ADDRESS_HEX_LENGTH = 40
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

ZERO_ADDRESS = "0x" + "0" * _ADDRESS_HEX_LENGTH


def derive_address(student_id: str | int) -> str:
    """Return the synthetic address for *student_id*.

    SHA-256 over ``"student_<id>"``, first 20 bytes of the digest,
    ``0x``-prefixed lowercase hex.
    """
    digest = hashlib.sha256(f"{_NAMESPACE}{student_id}".encode()).hexdigest()
    return "0x" + digest[:_ADDRESS_HEX_LENGTH]


def is_address(value: str | None) -> bool:
    """Return ``True`` if *value* is ``0x`` followed by 40 hex digits."""
    return bool(value) and _ADDRESS_RE.match(value) is not None


def resolve_recipient(student: Student) -> str:
    """Return the address certificates for *student* are issued to.

    An on-file wallet always wins; the derived address is the fallback.
    """
    if student.wallet_address:
        return student.wallet_address
    return derive_address(student.id)

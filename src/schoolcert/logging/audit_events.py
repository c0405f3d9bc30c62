"""Structured audit event logger.

Emits one record per ledger-changing operation to the
``schoolcert.audit`` logger with a consistent ``event_id`` field for
filtering.  Extra fields are passed through
:func:`~schoolcert.logging.sanitize.sanitize_for_logs` before emission.
"""

from __future__ import annotations

import logging
from typing import Any

from schoolcert.logging.sanitize import sanitize_for_logs

audit_log = logging.getLogger("schoolcert.audit")


def _emit(
    event_id: str,
    message: str,
    *args: Any,  # noqa: ANN401
    severity: str = "INFO",
    **extra: Any,  # noqa: ANN401
) -> None:
    data: dict[str, object] = {
        "event_id": event_id,
        "severity": severity,
    }
    data.update(sanitize_for_logs(extra))
    level = getattr(logging, severity.upper(), logging.INFO)
    audit_log.log(level, message, *args, extra=data)


def certificate_issued(
    certificate_id: int,
    student_id: int,
    recipient_address: str,
    certificate_type: str,
    transaction_hash: str,
    issuer: str,
) -> None:
    """Log issuance of a certificate on the ledger."""
    _emit(
        "schoolcert.audit.certificate_issued",
        "Certificate issued: id=%s, student=%s, type=%s",
        certificate_id,
        student_id,
        certificate_type,
        certificate_id=certificate_id,
        student_id=student_id,
        recipient_address=recipient_address,
        certificate_type=certificate_type,
        transaction_hash=transaction_hash,
        issued_by=issuer,
    )


def certificate_revoked(certificate_id: int, transaction_hash: str) -> None:
    """Log revocation of a certificate."""
    _emit(
        "schoolcert.audit.certificate_revoked",
        "Certificate revoked: id=%s",
        certificate_id,
        certificate_id=certificate_id,
        transaction_hash=transaction_hash,
        severity="WARNING",
    )


def issuer_changed(address: str, *, added: bool, transaction_hash: str) -> None:
    """Log an issuer being granted or stripped of issuing rights."""
    action = "added" if added else "removed"
    _emit(
        f"schoolcert.audit.issuer_{action}",
        "Issuer %s: %s",
        action,
        address,
        issuer_address=address,
        transaction_hash=transaction_hash,
        severity="WARNING",
    )

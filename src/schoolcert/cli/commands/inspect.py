"""Inspect subcommand -- query certificates and students for debugging.

Usage::

    schoolcert -c config.yaml inspect certificate <id>
    schoolcert -c config.yaml inspect student <student-id>
"""

from __future__ import annotations

import json
import sys


def run_inspect(config, args) -> None:
    """Dispatch to the appropriate inspect sub-handler."""
    sub = getattr(args, "inspect_command", None)
    if sub is None:
        sys.exit(1)

    from schoolcert.ledger import LedgerClient

    ledger = LedgerClient(config.settings.ledger)
    if not ledger.initialize():
        print(f"ledger unavailable (state={ledger.state})", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    if sub == "certificate":
        _inspect_certificate(ledger, args.resource_id)
    elif sub == "student":
        from schoolcert.db import init_database

        db = init_database(config.settings.database)
        try:
            _inspect_student(db, ledger, args.resource_id)
        finally:
            db.close()
    else:
        sys.exit(1)


def _certificate_dict(cert) -> dict:
    return {
        "id": cert.id,
        "recipient_address": cert.recipient_address,
        "recipient_name": cert.recipient_name,
        "recipient_email": cert.recipient_email,
        "certificate_type": cert.certificate_type,
        "metadata_hash": cert.metadata_hash or None,
        "issued_at": cert.issued_at.isoformat(),
        "issued_by": cert.issued_by,
        "revoked": cert.revoked,
    }


def _inspect_certificate(ledger, resource_id: str) -> None:
    """Print a certificate's ledger record and validity."""
    from schoolcert.ledger import RetrievalFailed

    try:
        cid = int(resource_id)
    except ValueError:
        sys.exit(1)

    try:
        cert = ledger.get_certificate(cid)
    except RetrievalFailed as exc:
        print(exc.detail, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    result = _certificate_dict(cert)
    result["valid"] = ledger.verify_certificate(cid)
    print(json.dumps(result, indent=2))  # noqa: T201


def _inspect_student(db, ledger, resource_id: str) -> None:
    """Print a student, their recipient address and their certificates."""
    from schoolcert.core.identity import resolve_recipient
    from schoolcert.ledger import LedgerError
    from schoolcert.repositories.student import StudentRepository

    student = StudentRepository(db).find_student_detail(resource_id)
    if student is None:
        sys.exit(1)

    address = resolve_recipient(student)
    certificates = []
    for cid in ledger.get_student_certificates(address):
        try:
            certificates.append(_certificate_dict(ledger.get_certificate(cid)))
        except LedgerError:
            continue

    result = {
        "id": student.id,
        "name": student.name,
        "email": student.email,
        "wallet_address": student.wallet_address,
        "recipient_address": address,
        "address_derived": student.wallet_address is None,
        "certificates": certificates,
    }
    print(json.dumps(result, indent=2))  # noqa: T201

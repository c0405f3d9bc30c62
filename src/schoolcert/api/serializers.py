"""Response serialization for certificate resources.

Each function takes a service result and produces a dictionary
suitable for ``flask.jsonify``.  Field names are camelCase.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from schoolcert.ledger.base import TransactionReceipt
    from schoolcert.models.certificate import Certificate
    from schoolcert.services.certificate import (
        CertificateView,
        HashLookup,
        IssuedCertificate,
        LedgerStats,
    )


def serialize_certificate(cert: Certificate) -> dict[str, Any]:
    """Serialize a ledger certificate record."""
    return {
        "id": cert.id,
        "studentAddress": cert.recipient_address,
        "studentName": cert.recipient_name,
        "studentEmail": cert.recipient_email,
        "certificateType": cert.certificate_type,
        "ipfsHash": cert.metadata_hash,
        "issuedAt": cert.issued_at.isoformat(),
        "issuedBy": cert.issued_by,
        "revoked": cert.revoked,
    }


def serialize_view(view: CertificateView) -> dict[str, Any]:
    """Serialize a certificate with its metadata (and gateway URL, if known)."""
    result = serialize_certificate(view.certificate)
    result["metadata"] = view.metadata
    if view.ipfs_url is not None:
        result["ipfsUrl"] = view.ipfs_url
    return result


def serialize_issued(issued: IssuedCertificate) -> dict[str, Any]:
    return {
        "certificateId": issued.certificate_id,
        "ipfsHash": issued.ipfs_hash,
        "ipfsUrl": issued.ipfs_url,
        "transactionHash": issued.transaction_hash,
        "blockNumber": issued.block_number,
        "recipientAddress": issued.recipient_address,
        "student": {
            "id": issued.student_id,
            "name": issued.student_name,
            "email": issued.student_email,
        },
    }


def serialize_receipt(receipt: TransactionReceipt) -> dict[str, Any]:
    return {
        "transactionHash": receipt.transaction_hash,
        "blockNumber": receipt.block_number,
    }


def serialize_hash_lookup(lookup: HashLookup) -> dict[str, Any]:
    return {
        "valid": lookup.valid,
        "certificateId": lookup.certificate_id,
    }


def serialize_stats(stats: LedgerStats) -> dict[str, Any]:
    """Serialize ledger statistics; network details only when initialized."""
    result: dict[str, Any] = {
        "initialized": stats.initialized,
        "totalCertificates": stats.total_certificates,
    }
    if stats.initialized:
        result["network"] = stats.network
        result["contractAddress"] = stats.contract_address
    return result

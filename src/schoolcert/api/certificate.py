"""Certificate endpoints.

- ``POST /``                      issue a certificate
- ``GET  /verify/{id}``           verify by certificate id
- ``GET  /verify-hash/{hash}``    verify by pinned-metadata hash
- ``GET  /details/{id}``          certificate with metadata
- ``GET  /student/{studentId}``   all certificates of a student
- ``POST /{id}/revoke``           revoke a certificate
- ``GET  /stats``                 ledger statistics

Successful responses use the ``{success, message, data}`` envelope;
errors are RFC 7807 problem documents.
"""

from __future__ import annotations

import re

from flask import Blueprint, g, jsonify, request

from schoolcert.api.serializers import (
    serialize_certificate,
    serialize_hash_lookup,
    serialize_issued,
    serialize_receipt,
    serialize_stats,
    serialize_view,
)
from schoolcert.app.context import get_container
from schoolcert.app.errors import bad_request

certificate_bp = Blueprint("certificates", __name__)

_ID_RE = re.compile(r"[0-9]+")


def _certificate_id(raw: str) -> int:
    """Parse a path certificate id; only positive integers are valid."""
    if not _ID_RE.fullmatch(raw) or int(raw) <= 0:
        raise bad_request(f"Invalid certificate id {raw!r}")
    return int(raw)


@certificate_bp.route("/", methods=["POST"], strict_slashes=False, endpoint="issue")
def issue_certificate():
    """POST / -- issue a certificate to a student."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise bad_request("Request body must be a JSON object")

    additional_info = body.get("additionalInfo")
    if additional_info is not None and not isinstance(additional_info, dict):
        raise bad_request("additionalInfo must be a JSON object")

    issued = get_container().certificate_service.issue(
        body.get("studentId"),
        body.get("certificateType"),
        achievement=body.get("achievement"),
        additional_info=additional_info,
        issuer=g.get("issuer"),
    )
    return jsonify(
        {
            "success": True,
            "message": "Certificate issued successfully",
            "data": serialize_issued(issued),
        },
    ), 201


@certificate_bp.route("/verify/<certificate_id>", methods=["GET"], endpoint="verify")
def verify_certificate(certificate_id: str):
    """GET /verify/{id} -- is the certificate valid (exists, not revoked)?"""
    result = get_container().certificate_service.verify(_certificate_id(certificate_id))
    if not result.valid:
        return jsonify({"success": True, "valid": False, "message": result.message}), 200
    return jsonify({"success": True, "valid": True, "data": serialize_view(result.view)}), 200


@certificate_bp.route("/verify-hash/<path:ipfs_hash>", methods=["GET"], endpoint="verify_hash")
def verify_certificate_by_hash(ipfs_hash: str):
    lookup = get_container().certificate_service.verify_by_hash(ipfs_hash)
    return jsonify({"success": True, **serialize_hash_lookup(lookup)}), 200


@certificate_bp.route("/details/<certificate_id>", methods=["GET"], endpoint="details")
def get_certificate(certificate_id: str):
    """GET /details/{id} -- certificate record, metadata and gateway URL."""
    view = get_container().certificate_service.get(_certificate_id(certificate_id))
    return jsonify({"success": True, "data": serialize_view(view)}), 200


@certificate_bp.route("/student/<student_id>", methods=["GET"], endpoint="student")
def get_student_certificates(student_id: str):
    result = get_container().certificate_service.list_for_student(student_id)
    body: dict = {
        "success": True,
        "data": [serialize_certificate(c) for c in result.certificates],
    }
    if result.message:
        body["message"] = result.message
    return jsonify(body), 200


@certificate_bp.route("/<certificate_id>/revoke", methods=["POST"], endpoint="revoke")
def revoke_certificate(certificate_id: str):
    """POST /{id}/revoke -- revoke a certificate on the ledger."""
    receipt = get_container().certificate_service.revoke(_certificate_id(certificate_id))
    return jsonify(
        {
            "success": True,
            "message": "Certificate revoked successfully",
            "data": serialize_receipt(receipt),
        },
    ), 200


@certificate_bp.route("/stats", methods=["GET"], endpoint="stats")
def get_stats():
    stats = get_container().certificate_service.stats()
    return jsonify({"success": True, "data": serialize_stats(stats)}), 200

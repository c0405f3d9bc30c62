"""Certificate service -- issue, verify, look up, list and revoke.

Orchestrates the student store, the metadata pinner and the ledger.
The ledger is the source of truth; pinned metadata is optional and
best-effort on every path.  Domain errors from the collaborators are
translated here into :class:`~schoolcert.app.errors.ApiProblem`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from schoolcert.app.errors import bad_request, not_found, server_internal, service_unavailable
from schoolcert.core.identity import resolve_recipient
from schoolcert.ledger.base import LedgerError, NotInitialized, RetrievalFailed
from schoolcert.logging import audit_events
from schoolcert.models.metadata import CertificateMetadata
from schoolcert.storage.base import StorageError

if TYPE_CHECKING:
    from schoolcert.config.settings import CertificateSettings
    from schoolcert.ledger.base import TransactionReceipt
    from schoolcert.ledger.client import LedgerClient
    from schoolcert.models.certificate import Certificate
    from schoolcert.repositories.student import StudentRepository
    from schoolcert.storage.base import PinResult
    from schoolcert.storage.pinata import PinataClient

log = logging.getLogger(__name__)

LEDGER_UNAVAILABLE = "Blockchain service not available"
LEDGER_UNAVAILABLE_FOR_ISSUE = (
    "Blockchain service not available. Please configure blockchain settings."
)
LEDGER_NOT_CONFIGURED = "Blockchain service not configured"
STUDENT_NOT_FOUND = "Student not found"
CERTIFICATE_NOT_FOUND = "Certificate not found"
NOT_VALID = "Certificate not found or has been revoked"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IssuedCertificate:
    certificate_id: int
    ipfs_hash: str | None
    ipfs_url: str | None
    transaction_hash: str
    block_number: int
    recipient_address: str
    student_id: int
    student_name: str
    student_email: str


@dataclass(frozen=True)
class CertificateView:
    """A ledger certificate merged with its pinned metadata (if any)."""

    certificate: Certificate
    metadata: dict[str, Any] | None = None
    ipfs_url: str | None = None


@dataclass(frozen=True)
class Verification:
    valid: bool
    view: CertificateView | None = None
    message: str | None = None


@dataclass(frozen=True)
class StudentCertificates:
    certificates: list[Certificate] = field(default_factory=list)
    message: str | None = None


@dataclass(frozen=True)
class LedgerStats:
    initialized: bool
    total_certificates: int = 0
    network: str | None = None
    contract_address: str | None = None


@dataclass(frozen=True)
class HashLookup:
    valid: bool
    certificate_id: int | None


def _blank(value: Any) -> bool:  # noqa: ANN401
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CertificateService:
    """Request-scoped certificate operations.

    Holds no per-request state; safe to share between threads.
    """

    def __init__(
        self,
        students: StudentRepository,
        ledger: LedgerClient,
        pinner: PinataClient,
        settings: CertificateSettings,
    ) -> None:
        self._students = students
        self._ledger = ledger
        self._pinner = pinner
        self._settings = settings

    def _require_ledger(self, detail: str = LEDGER_UNAVAILABLE) -> None:
        if not self._ledger.is_initialized():
            raise service_unavailable(detail)

    # -- issue --------------------------------------------------------------

    def _pin(self, metadata: CertificateMetadata) -> PinResult | None:
        """Pin *metadata* if storage is configured; failures are non-fatal."""
        if not self._pinner.is_configured():
            return None
        try:
            return self._pinner.upload(metadata)
        except StorageError as exc:
            log.warning(
                "Metadata upload failed for student %s, continuing without IPFS: %s",
                metadata.student_id,
                exc.detail,
            )
            return None

    def issue(  # noqa: PLR0913
        self,
        student_id: Any,  # noqa: ANN401
        certificate_type: str | None,
        *,
        achievement: str | None = None,
        additional_info: dict[str, Any] | None = None,
        issuer: str | None = None,
    ) -> IssuedCertificate:
        """Issue a certificate of *certificate_type* to a student.

        Parameters
        ----------
        student_id:
            Identifier in the student store.
        certificate_type:
            Free-form certificate kind, e.g. ``"Academic Excellence"``.
        achievement:
            Achievement text; defaults to *certificate_type*.
        additional_info:
            Arbitrary extra metadata, pinned as-is.
        issuer:
            Display name of the caller; defaults to the configured
            issuer name.

        Raises
        ------
        ApiProblem
            400 for missing input, 503 when the ledger is unavailable,
            404 for an unknown student, 500 when the ledger write fails.

        """
        if _blank(student_id) or _blank(certificate_type):
            raise bad_request("Student ID and certificate type are required")
        if not isinstance(certificate_type, str):
            raise bad_request("Certificate type must be a string")
        if achievement is not None and not isinstance(achievement, str):
            raise bad_request("Achievement must be a string")

        self._require_ledger(LEDGER_UNAVAILABLE_FOR_ISSUE)

        student = self._students.find_student_detail(student_id)
        if student is None:
            raise not_found(STUDENT_NOT_FOUND)

        issuer_name = issuer.strip() if issuer and issuer.strip() else None
        metadata = CertificateMetadata(
            student_id=student.id,
            student_name=student.name,
            student_email=student.email,
            certificate_type=certificate_type,
            achievement=achievement or certificate_type,
            issued_date=datetime.now(UTC).isoformat(),
            issuer=issuer_name or self._settings.default_issuer_name,
            institution=self._settings.institution_name,
            additional_info=dict(additional_info or {}),
        )

        pin = self._pin(metadata)
        recipient = resolve_recipient(student)

        try:
            receipt = self._ledger.issue_certificate(
                recipient,
                student.name,
                student.email,
                certificate_type,
                pin.ipfs_hash if pin is not None else "",
            )
        except NotInitialized as exc:
            raise service_unavailable(LEDGER_UNAVAILABLE_FOR_ISSUE) from exc
        except LedgerError as exc:
            log.error("Certificate issuance for student %s failed: %s", student.id, exc.detail)  # noqa: TRY400
            raise server_internal(exc.detail) from exc

        audit_events.certificate_issued(
            receipt.certificate_id,
            student.id,
            recipient,
            certificate_type,
            receipt.transaction_hash,
            metadata.issuer,
        )

        return IssuedCertificate(
            certificate_id=receipt.certificate_id,
            ipfs_hash=pin.ipfs_hash if pin is not None else None,
            ipfs_url=pin.url if pin is not None else None,
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
            recipient_address=recipient,
            student_id=student.id,
            student_name=student.name,
            student_email=student.email,
        )

    # -- reads --------------------------------------------------------------

    def _fetch_metadata(self, ipfs_hash: str) -> dict[str, Any] | None:
        if not ipfs_hash:
            return None
        try:
            return self._pinner.fetch(ipfs_hash)
        except StorageError as exc:
            log.warning("Could not fetch metadata %s: %s", ipfs_hash, exc.detail)
            return None

    def verify(self, certificate_id: int) -> Verification:
        """Check that a certificate exists and is not revoked.

        A valid certificate is returned together with its ledger record
        and, when available, its pinned metadata.
        """
        self._require_ledger()
        try:
            if not self._ledger.verify_certificate(certificate_id):
                return Verification(valid=False, message=NOT_VALID)
            certificate = self._ledger.get_certificate(certificate_id)
        except NotInitialized as exc:
            raise service_unavailable(LEDGER_UNAVAILABLE) from exc
        except LedgerError as exc:
            raise server_internal(exc.detail) from exc

        return Verification(
            valid=True,
            view=CertificateView(
                certificate=certificate,
                metadata=self._fetch_metadata(certificate.metadata_hash),
            ),
        )

    def get(self, certificate_id: int) -> CertificateView:
        """Return a certificate (revoked or not) with its metadata."""
        self._require_ledger()
        try:
            certificate = self._ledger.get_certificate(certificate_id)
        except NotInitialized as exc:
            raise service_unavailable(LEDGER_UNAVAILABLE) from exc
        except RetrievalFailed as exc:
            log.info("Certificate %s not retrievable: %s", certificate_id, exc.detail)
            raise not_found(CERTIFICATE_NOT_FOUND) from exc

        return CertificateView(
            certificate=certificate,
            metadata=self._fetch_metadata(certificate.metadata_hash),
            ipfs_url=self._pinner.gateway_url_for(certificate.metadata_hash),
        )

    def list_for_student(self, student_id: Any) -> StudentCertificates:  # noqa: ANN401
        """Return every certificate issued to a student, oldest first.

        The student's address is resolved exactly as at issuance, so a
        walletless student's certificates are found under the derived
        address.  Certificates that cannot be read are skipped.
        """
        student = self._students.find_student_detail(student_id)
        if student is None:
            raise not_found(STUDENT_NOT_FOUND)

        if not self._ledger.is_initialized():
            return StudentCertificates(message=LEDGER_NOT_CONFIGURED)

        address = resolve_recipient(student)
        try:
            ids = self._ledger.get_student_certificates(address)
        except NotInitialized:
            return StudentCertificates(message=LEDGER_NOT_CONFIGURED)

        certificates: list[Certificate] = []
        for cid in ids:
            try:
                certificates.append(self._ledger.get_certificate(cid))
            except LedgerError as exc:
                log.warning(
                    "Skipping certificate %s of student %s: %s",
                    cid,
                    student.id,
                    exc.detail,
                )
        return StudentCertificates(certificates=certificates)

    def verify_by_hash(self, metadata_hash: str | None) -> HashLookup:
        """Find the certificate anchored to a pinned-metadata hash."""
        if _blank(metadata_hash):
            raise bad_request("IPFS hash is required")
        self._require_ledger()
        try:
            result = self._ledger.verify_by_hash(metadata_hash.strip())
        except NotInitialized as exc:
            raise service_unavailable(LEDGER_UNAVAILABLE) from exc
        return HashLookup(valid=result.valid, certificate_id=result.certificate_id)

    # -- revoke -------------------------------------------------------------

    def revoke(self, certificate_id: int) -> TransactionReceipt:
        self._require_ledger()
        try:
            receipt = self._ledger.revoke_certificate(certificate_id)
        except NotInitialized as exc:
            raise service_unavailable(LEDGER_UNAVAILABLE) from exc
        except LedgerError as exc:
            log.error("Revocation of certificate %s failed: %s", certificate_id, exc.detail)  # noqa: TRY400
            raise server_internal(exc.detail) from exc

        audit_events.certificate_revoked(certificate_id, receipt.transaction_hash)
        return receipt

    # -- stats --------------------------------------------------------------

    def stats(self) -> LedgerStats:
        if not self._ledger.is_initialized():
            return LedgerStats(initialized=False)
        try:
            total = self._ledger.get_total_certificates()
        except NotInitialized:
            return LedgerStats(initialized=False)
        return LedgerStats(
            initialized=True,
            total_certificates=total,
            network=self._ledger.network,
            contract_address=self._ledger.contract_address,
        )

"""Unit tests for CertificateService orchestration."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from schoolcert.app.errors import (
    BAD_REQUEST,
    NOT_FOUND,
    SERVER_INTERNAL,
    SERVICE_UNAVAILABLE,
    ApiProblem,
)
from schoolcert.config.settings import build_settings
from schoolcert.core.identity import derive_address
from schoolcert.ledger.base import (
    HashVerification,
    IssueReceipt,
    NotInitialized,
    RetrievalFailed,
    TransactionFailed,
    TransactionReceipt,
)
from schoolcert.models.certificate import Certificate
from schoolcert.models.student import Student
from schoolcert.services.certificate import (
    LEDGER_NOT_CONFIGURED,
    LEDGER_UNAVAILABLE_FOR_ISSUE,
    NOT_VALID,
    CertificateService,
)
from schoolcert.storage.base import PinResult, UploadFailed
from schoolcert.storage.base import RetrievalFailed as StorageRetrievalFailed

WALLET = "0xAbC0000000000000000000000000000000000001"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _student(sid=42, wallet=None) -> Student:
    return Student(id=sid, name="Alice", email="alice@example.edu", wallet_address=wallet)


def _certificate(cid=1, metadata_hash="QmMeta", revoked=False) -> Certificate:
    return Certificate(
        id=cid,
        recipient_address=derive_address(42),
        recipient_name="Alice",
        recipient_email="alice@example.edu",
        certificate_type="Academic Excellence",
        metadata_hash=metadata_hash,
        issued_at=datetime(2024, 5, 1, tzinfo=UTC),
        issued_by="0x" + "5e" * 20,
        revoked=revoked,
    )


def _make_service(student=None, *, ledger_ready=True, pinner_configured=True):
    students = MagicMock()
    students.find_student_detail.return_value = student
    ledger = MagicMock()
    ledger.is_initialized.return_value = ledger_ready
    ledger.network = "localhost"
    ledger.contract_address = "0x" + "ab" * 20
    ledger.issue_certificate.return_value = IssueReceipt(
        certificate_id=1,
        transaction_hash="0x" + "cd" * 32,
        block_number=101,
    )
    pinner = MagicMock()
    pinner.is_configured.return_value = pinner_configured
    pinner.upload.return_value = PinResult(
        ipfs_hash="QmMeta",
        url="https://gateway.pinata.cloud/ipfs/QmMeta",
    )
    pinner.gateway_url_for.side_effect = lambda h: f"https://gateway.pinata.cloud/ipfs/{h}"
    settings = build_settings({"database": {"database": "db", "user": "u"}}).certificates
    service = CertificateService(students, ledger, pinner, settings)
    return service, students, ledger, pinner


# ---------------------------------------------------------------------------
# issue
# ---------------------------------------------------------------------------


class TestIssue:
    def test_walletless_student_gets_derived_address(self):
        service, _, ledger, _ = _make_service(_student())
        result = service.issue(42, "Academic Excellence")

        args = ledger.issue_certificate.call_args.args
        assert args == (
            derive_address(42),
            "Alice",
            "alice@example.edu",
            "Academic Excellence",
            "QmMeta",
        )
        assert result.certificate_id == 1
        assert result.recipient_address == derive_address(42)
        assert result.ipfs_hash == "QmMeta"
        assert result.ipfs_url == "https://gateway.pinata.cloud/ipfs/QmMeta"
        assert result.transaction_hash == "0x" + "cd" * 32
        assert result.block_number == 101
        assert (result.student_id, result.student_name) == (42, "Alice")

    def test_wallet_used_verbatim(self):
        service, _, ledger, _ = _make_service(_student(wallet=WALLET))
        result = service.issue(42, "Sports")
        assert ledger.issue_certificate.call_args.args[0] == WALLET
        assert result.recipient_address == WALLET

    def test_metadata_contents(self):
        service, _, _, pinner = _make_service(_student())
        service.issue(
            "42",
            "Academic Excellence",
            achievement="Top of class",
            additional_info={"grade": "A+"},
            issuer="Ms. Rivera",
        )
        metadata = pinner.upload.call_args.args[0]
        assert metadata.student_id == 42
        assert metadata.achievement == "Top of class"
        assert metadata.issuer == "Ms. Rivera"
        assert metadata.institution == "School Management System"
        assert metadata.additional_info == {"grade": "A+"}
        datetime.fromisoformat(metadata.issued_date)

    def test_defaults_for_achievement_and_issuer(self):
        service, _, _, pinner = _make_service(_student())
        service.issue(42, "Academic Excellence", issuer="   ")
        metadata = pinner.upload.call_args.args[0]
        assert metadata.achievement == "Academic Excellence"
        assert metadata.issuer == "System Administrator"

    def test_pin_failure_is_not_fatal(self, caplog):
        service, _, ledger, pinner = _make_service(_student())
        pinner.upload.side_effect = UploadFailed("HTTP 500", retryable=True)
        with caplog.at_level(logging.WARNING, logger="schoolcert.services.certificate"):
            result = service.issue(42, "Academic Excellence")
        assert ledger.issue_certificate.call_args.args[4] == ""
        assert result.ipfs_hash is None
        assert result.ipfs_url is None
        assert "continuing without IPFS" in caplog.text

    def test_unconfigured_pinner_skipped(self):
        service, _, ledger, pinner = _make_service(_student(), pinner_configured=False)
        service.issue(42, "Academic Excellence")
        pinner.upload.assert_not_called()
        assert ledger.issue_certificate.call_args.args[4] == ""

    @pytest.mark.parametrize(
        "student_id,certificate_type",
        [(None, "X"), ("", "X"), (42, None), (42, "  ")],
    )
    def test_missing_input(self, student_id, certificate_type):
        service, _, ledger, _ = _make_service(_student())
        with pytest.raises(ApiProblem) as exc_info:
            service.issue(student_id, certificate_type)
        assert exc_info.value.status == 400
        assert exc_info.value.error_type == BAD_REQUEST
        ledger.issue_certificate.assert_not_called()

    @pytest.mark.parametrize(
        "certificate_type,achievement",
        [(5, None), (["Academic"], None), ("Academic Excellence", 7)],
    )
    def test_non_string_text_rejected_before_pinning(self, certificate_type, achievement):
        service, students, ledger, pinner = _make_service(_student())
        with pytest.raises(ApiProblem) as exc_info:
            service.issue(42, certificate_type, achievement=achievement)
        assert exc_info.value.status == 400
        students.find_student_detail.assert_not_called()
        pinner.upload.assert_not_called()
        ledger.issue_certificate.assert_not_called()

    def test_ledger_not_ready(self):
        service, students, _, pinner = _make_service(_student(), ledger_ready=False)
        with pytest.raises(ApiProblem) as exc_info:
            service.issue(42, "Academic Excellence")
        assert exc_info.value.status == 503
        assert exc_info.value.detail == LEDGER_UNAVAILABLE_FOR_ISSUE
        students.find_student_detail.assert_not_called()
        pinner.upload.assert_not_called()

    def test_unknown_student(self):
        service, _, ledger, pinner = _make_service(None)
        with pytest.raises(ApiProblem) as exc_info:
            service.issue(999, "Academic Excellence")
        assert exc_info.value.status == 404
        assert exc_info.value.error_type == NOT_FOUND
        pinner.upload.assert_not_called()
        ledger.issue_certificate.assert_not_called()

    def test_ledger_failure_is_500_and_not_audited(self, caplog):
        service, _, ledger, _ = _make_service(_student())
        ledger.issue_certificate.side_effect = TransactionFailed("Failed to issue certificate: boom")
        with (
            caplog.at_level(logging.INFO, logger="schoolcert.audit"),
            pytest.raises(ApiProblem) as exc_info,
        ):
            service.issue(42, "Academic Excellence")
        assert exc_info.value.status == 500
        assert exc_info.value.error_type == SERVER_INTERNAL
        assert "boom" in exc_info.value.detail
        assert not [r for r in caplog.records if r.name == "schoolcert.audit"]

    def test_ledger_lost_between_check_and_call(self):
        service, _, ledger, _ = _make_service(_student())
        ledger.issue_certificate.side_effect = NotInitialized()
        with pytest.raises(ApiProblem) as exc_info:
            service.issue(42, "Academic Excellence")
        assert exc_info.value.status == 503

    def test_success_is_audited(self, caplog):
        service, _, _, _ = _make_service(_student())
        with caplog.at_level(logging.INFO, logger="schoolcert.audit"):
            service.issue(42, "Academic Excellence", issuer="Ms. Rivera")
        record = [r for r in caplog.records if r.name == "schoolcert.audit"][-1]
        assert record.event_id == "schoolcert.audit.certificate_issued"
        assert record.certificate_id == 1
        assert record.issued_by == "Ms. Rivera"


# ---------------------------------------------------------------------------
# verify / get
# ---------------------------------------------------------------------------


class TestVerify:
    def test_valid_with_metadata(self):
        service, _, ledger, pinner = _make_service()
        ledger.verify_certificate.return_value = True
        ledger.get_certificate.return_value = _certificate()
        pinner.fetch.return_value = {"name": "Certificate - Alice"}

        result = service.verify(1)
        assert result.valid is True
        assert result.view.certificate.id == 1
        assert result.view.metadata == {"name": "Certificate - Alice"}
        pinner.fetch.assert_called_once_with("QmMeta")

    def test_invalid(self):
        service, _, ledger, _ = _make_service()
        ledger.verify_certificate.return_value = False
        result = service.verify(999)
        assert result.valid is False
        assert result.message == NOT_VALID
        ledger.get_certificate.assert_not_called()

    def test_metadata_fetch_failure_tolerated(self):
        service, _, ledger, pinner = _make_service()
        ledger.verify_certificate.return_value = True
        ledger.get_certificate.return_value = _certificate()
        pinner.fetch.side_effect = StorageRetrievalFailed("gateway down")
        result = service.verify(1)
        assert result.valid is True
        assert result.view.metadata is None

    def test_no_hash_skips_fetch(self):
        service, _, ledger, pinner = _make_service()
        ledger.verify_certificate.return_value = True
        ledger.get_certificate.return_value = _certificate(metadata_hash="")
        assert service.verify(1).view.metadata is None
        pinner.fetch.assert_not_called()

    def test_ledger_not_ready(self):
        service, _, _, _ = _make_service(ledger_ready=False)
        with pytest.raises(ApiProblem) as exc_info:
            service.verify(1)
        assert exc_info.value.status == 503
        assert exc_info.value.error_type == SERVICE_UNAVAILABLE

    def test_read_failure_is_500(self):
        service, _, ledger, _ = _make_service()
        ledger.verify_certificate.return_value = True
        ledger.get_certificate.side_effect = RetrievalFailed("decode error")
        with pytest.raises(ApiProblem) as exc_info:
            service.verify(1)
        assert exc_info.value.status == 500


class TestGet:
    def test_includes_gateway_url(self):
        service, _, ledger, pinner = _make_service()
        ledger.get_certificate.return_value = _certificate(revoked=True)
        pinner.fetch.return_value = {"name": "x"}
        view = service.get(1)
        assert view.certificate.revoked is True
        assert view.ipfs_url == "https://gateway.pinata.cloud/ipfs/QmMeta"

    def test_missing_is_404(self):
        service, _, ledger, _ = _make_service()
        ledger.get_certificate.side_effect = RetrievalFailed("does not exist")
        with pytest.raises(ApiProblem) as exc_info:
            service.get(999)
        assert exc_info.value.status == 404


# ---------------------------------------------------------------------------
# list_for_student
# ---------------------------------------------------------------------------


class TestListForStudent:
    def test_uses_resolved_address(self):
        service, _, ledger, _ = _make_service(_student())
        ledger.get_student_certificates.return_value = [1, 2]
        ledger.get_certificate.side_effect = [_certificate(1), _certificate(2)]
        result = service.list_for_student(42)
        ledger.get_student_certificates.assert_called_once_with(derive_address(42))
        assert [c.id for c in result.certificates] == [1, 2]
        assert result.message is None

    def test_wallet_address_used(self):
        service, _, ledger, _ = _make_service(_student(wallet=WALLET))
        ledger.get_student_certificates.return_value = []
        service.list_for_student(42)
        ledger.get_student_certificates.assert_called_once_with(WALLET)

    def test_unreadable_entries_skipped(self):
        service, _, ledger, _ = _make_service(_student())
        ledger.get_student_certificates.return_value = [1, 2]
        ledger.get_certificate.side_effect = [RetrievalFailed("bad"), _certificate(2)]
        assert [c.id for c in service.list_for_student(42).certificates] == [2]

    def test_unknown_student(self):
        service, _, _, _ = _make_service(None)
        with pytest.raises(ApiProblem) as exc_info:
            service.list_for_student(7)
        assert exc_info.value.status == 404

    def test_ledger_not_ready_returns_empty_with_message(self):
        service, _, ledger, _ = _make_service(_student(), ledger_ready=False)
        result = service.list_for_student(42)
        assert result.certificates == []
        assert result.message == LEDGER_NOT_CONFIGURED
        ledger.get_student_certificates.assert_not_called()


# ---------------------------------------------------------------------------
# verify_by_hash / revoke / stats
# ---------------------------------------------------------------------------


class TestVerifyByHash:
    def test_found(self):
        service, _, ledger, _ = _make_service()
        ledger.verify_by_hash.return_value = HashVerification(valid=True, certificate_id=3)
        result = service.verify_by_hash(" QmMeta ")
        ledger.verify_by_hash.assert_called_once_with("QmMeta")
        assert (result.valid, result.certificate_id) == (True, 3)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_hash(self, value):
        service, _, _, _ = _make_service()
        with pytest.raises(ApiProblem) as exc_info:
            service.verify_by_hash(value)
        assert exc_info.value.status == 400


class TestRevoke:
    def test_success_is_audited(self, caplog):
        service, _, ledger, _ = _make_service()
        ledger.revoke_certificate.return_value = TransactionReceipt("0x" + "ee" * 32, 150)
        with caplog.at_level(logging.INFO, logger="schoolcert.audit"):
            receipt = service.revoke(1)
        assert receipt.block_number == 150
        record = [r for r in caplog.records if r.name == "schoolcert.audit"][-1]
        assert record.event_id == "schoolcert.audit.certificate_revoked"

    def test_already_revoked_is_500(self):
        service, _, ledger, _ = _make_service()
        ledger.revoke_certificate.side_effect = TransactionFailed(
            "Failed to revoke certificate: Certificate already revoked",
        )
        with pytest.raises(ApiProblem) as exc_info:
            service.revoke(1)
        assert exc_info.value.status == 500
        assert "already revoked" in exc_info.value.detail

    def test_ledger_not_ready(self):
        service, _, ledger, _ = _make_service(ledger_ready=False)
        with pytest.raises(ApiProblem) as exc_info:
            service.revoke(1)
        assert exc_info.value.status == 503
        ledger.revoke_certificate.assert_not_called()


class TestStats:
    def test_ready(self):
        service, _, ledger, _ = _make_service()
        ledger.get_total_certificates.return_value = 12
        stats = service.stats()
        assert stats.initialized is True
        assert stats.total_certificates == 12
        assert stats.network == "localhost"
        assert stats.contract_address == "0x" + "ab" * 20

    def test_not_ready(self):
        service, _, ledger, _ = _make_service(ledger_ready=False)
        stats = service.stats()
        assert stats.initialized is False
        assert stats.total_certificates == 0
        assert stats.network is None
        ledger.get_total_certificates.assert_not_called()

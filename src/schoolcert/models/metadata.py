"""Off-chain certificate metadata document."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class CertificateMetadata:
    """Point-in-time description of a certificate, pinned to IPFS.

    Built once at issuance and never mutated.  :meth:`to_dict` produces
    the ``certificateData`` object of the pinned document.
    """

    student_id: int | str
    student_name: str
    student_email: str
    certificate_type: str
    achievement: str
    issued_date: str
    issuer: str
    institution: str
    additional_info: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "studentName": self.student_name,
            "studentEmail": self.student_email,
            "studentId": self.student_id,
            "certificateType": self.certificate_type,
            "achievement": self.achievement,
            "issuedDate": self.issued_date,
            "issuer": self.issuer,
            "institution": self.institution,
            "additionalInfo": dict(self.additional_info),
        }

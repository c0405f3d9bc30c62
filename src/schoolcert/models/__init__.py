"""Entity models for schoolcert.

All models are frozen dataclasses.  Use :func:`dataclasses.replace`
for modifications (copy-on-write).
"""

from schoolcert.models.certificate import Certificate
from schoolcert.models.metadata import CertificateMetadata
from schoolcert.models.student import Student

__all__ = [
    "Certificate",
    "CertificateMetadata",
    "Student",
]

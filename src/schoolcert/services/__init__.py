"""Service layer for schoolcert."""

from schoolcert.services.certificate import CertificateService

__all__ = ["CertificateService"]

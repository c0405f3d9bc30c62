"""Dependency injection container for schoolcert.

Created once during application startup and stored on the Flask app
via ``app.extensions["container"]``.  Accessible from any request
context with :func:`get_container`.

Usage::

    from schoolcert.app.context import get_container

    c = get_container()
    result = c.certificate_service.verify(certificate_id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import current_app

from schoolcert.ledger.client import LedgerClient
from schoolcert.repositories.student import StudentRepository
from schoolcert.services.certificate import CertificateService
from schoolcert.storage.pinata import PinataClient

if TYPE_CHECKING:
    from schoolcert.config.settings import SchoolcertSettings
    from schoolcert.db.database import Database

log = logging.getLogger(__name__)


class Container:
    """Application-wide dependency container.

    Owns the single ledger client and pinner of the process.  Any
    collaborator may be passed in pre-built (tests pass fakes); the
    rest are constructed from *settings*.  The ledger client is
    initialized here, exactly once.
    """

    def __init__(  # noqa: PLR0913
        self,
        db: Database | None,
        settings: SchoolcertSettings,
        *,
        students: StudentRepository | None = None,
        ledger: LedgerClient | None = None,
        pinner: PinataClient | None = None,
    ) -> None:
        if students is None and db is None:
            msg = "Container needs either a database or a student repository"
            raise ValueError(msg)

        self.db: Database | None = db
        self.settings: SchoolcertSettings = settings

        # Repositories
        self.students: StudentRepository = students or StudentRepository(db)

        # External collaborators
        self.pinner: PinataClient = pinner or PinataClient(
            settings.storage,
            description=settings.certificates.metadata_description,
        )
        self.ledger: LedgerClient = ledger or LedgerClient(settings.ledger)
        if not self.ledger.initialize():
            log.warning(
                "Ledger unavailable (state=%s); issuance, verification and "
                "revocation will answer 503",
                self.ledger.state,
            )
        if not self.pinner.is_configured():
            log.info("Metadata pinning not configured; certificates will carry no IPFS hash")

        # Services
        self.certificate_service: CertificateService = CertificateService(
            self.students,
            self.ledger,
            self.pinner,
            settings.certificates,
        )

    def close(self) -> None:
        """Release pooled resources."""
        if self.db is not None:
            self.db.close()


def get_container() -> Container:
    """Return the :class:`Container` for the current Flask app."""
    return current_app.extensions["container"]

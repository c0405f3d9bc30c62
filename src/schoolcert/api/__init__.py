"""Certificate API layer: Flask blueprint registration.

Call :func:`register_blueprints` during application startup to wire
the certificate routes into the Flask app.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

log = logging.getLogger(__name__)


def register_blueprints(app: Flask) -> None:
    """Mount the certificate blueprint at ``api.base_path``."""
    from schoolcert.api.certificate import certificate_bp  # noqa: PLC0415

    settings = app.config["SCHOOLCERT_SETTINGS"]
    base = settings.api.base_path.rstrip("/")

    app.register_blueprint(certificate_bp, url_prefix=base)

    log.info(
        "Registered certificate API under base_path=%r (%d URL rules)",
        base or "/",
        len(list(app.url_map.iter_rules())),
    )

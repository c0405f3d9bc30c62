"""Flask application factory for schoolcert.

Usage::

    from schoolcert.app import create_app
    from schoolcert.config import get_config
    from schoolcert.db import init_database

    db  = init_database(get_config().settings.database)
    app = create_app(config=get_config(), database=db)
"""

from __future__ import annotations

import atexit
import logging
from typing import TYPE_CHECKING

from flask import Flask, jsonify

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from schoolcert.app.context import Container
    from schoolcert.config.schoolcert_config import SchoolcertConfig
    from schoolcert.db.database import Database

log = logging.getLogger(__name__)


def create_app(
    config: SchoolcertConfig | None = None,
    database: Database | None = None,
    *,
    container: Container | None = None,
) -> Flask:
    """Create and configure the schoolcert Flask application.

    Parameters
    ----------
    config:
        Loaded :class:`SchoolcertConfig`.  Falls back to
        :func:`get_config` when ``None``.
    database:
        Open :class:`Database`.  When provided, the dependency
        container is wired up from it and the certificate API is
        registered.
    container:
        Pre-built :class:`Container`; takes precedence over
        *database*.  Used by tests to inject fake collaborators.

    When neither *database* nor *container* is given the app still
    starts with only the infrastructure endpoints (useful for
    ``--validate-only``).

    Returns
    -------
    Flask
        Fully configured WSGI application.

    """
    if config is None:
        from schoolcert.config import get_config  # noqa: PLC0415

        config = get_config()

    settings = config.settings

    app = Flask("schoolcert")
    app.config["SCHOOLCERT_SETTINGS"] = settings
    app.config["SCHOOLCERT_CONFIG"] = config
    app.config["MAX_CONTENT_LENGTH"] = settings.security.max_request_body_bytes

    # -- Error handlers (RFC 7807) ------------------------------------------
    from schoolcert.app.errors import register_error_handlers  # noqa: PLC0415

    register_error_handlers(app)

    # -- Request lifecycle hooks --------------------------------------------
    from schoolcert.app.middleware import register_request_hooks  # noqa: PLC0415

    register_request_hooks(app)

    # -- Infrastructure endpoints -------------------------------------------
    _register_health(app)

    # -- Dependency container -----------------------------------------------
    if container is None and database is not None:
        from schoolcert.app.context import Container  # noqa: PLC0415

        container = Container(database, settings)
        atexit.register(container.close)

    if container is not None:
        app.extensions["container"] = container

        # -- Certificate API routes -----------------------------------------
        from schoolcert.api import register_blueprints  # noqa: PLC0415

        register_blueprints(app)

    log.info("Flask application created")
    return app


# ---------------------------------------------------------------------------
# Infrastructure endpoints
# ---------------------------------------------------------------------------


def _register_health(app: Flask) -> None:
    """Register ``/livez``, ``/healthz``, and ``/readyz`` probes."""
    from schoolcert import __version__  # noqa: PLC0415
    from schoolcert.core.types import CheckStatus  # noqa: PLC0415

    @app.route("/livez")
    def livez() -> ResponseReturnValue:
        """Return minimal liveness probe."""
        return jsonify({"alive": True, "version": __version__}), 200

    @app.route("/healthz")
    def healthz() -> ResponseReturnValue:
        """Return comprehensive health status.

        Only the database decides the overall status; an unavailable
        ledger or unconfigured storage is reported but the service
        keeps answering (with 503 on the affected endpoints).
        """
        result: dict = {"status": CheckStatus.OK.value, "version": __version__}
        checks: dict = {}

        container = app.extensions.get("container")
        if container is not None:
            if container.db is not None:
                try:
                    container.db.fetch_value("SELECT 1")
                    checks["database"] = "connected"
                except Exception:  # noqa: BLE001
                    checks["database"] = "disconnected"
                    result["status"] = CheckStatus.DEGRADED.value

                try:
                    stats = container.db.pool.get_stats()
                    result["pool"] = {
                        "size": stats.get("pool_size", 0),
                        "available": stats.get("pool_available", 0),
                        "waiting": stats.get("requests_waiting", 0),
                        "min": stats.get("pool_min", 0),
                        "max": stats.get("pool_max", 0),
                    }
                except Exception:  # noqa: BLE001
                    log.debug("Failed to retrieve connection pool stats")

            checks["ledger"] = {
                "state": container.ledger.state.value,
                "network": container.ledger.network,
            }
            checks["storage"] = (
                CheckStatus.OK.value
                if container.pinner.is_configured()
                else CheckStatus.DISABLED.value
            )

        if checks:
            result["checks"] = checks

        code = 200 if result["status"] == CheckStatus.OK.value else 503
        return jsonify(result), code

    @app.route("/readyz")
    def readyz() -> ResponseReturnValue:
        """Return Kubernetes readiness probe."""
        container = app.extensions.get("container")
        if container is None:
            return (
                jsonify(
                    {"ready": False, "reason": "Container not initialized"},
                ),
                503,
            )

        if container.db is not None:
            try:
                container.db.fetch_value("SELECT 1")
            except Exception:  # noqa: BLE001
                return (
                    jsonify(
                        {"ready": False, "reason": "Database not connected"},
                    ),
                    503,
                )

        return jsonify({"ready": True, "ledger": container.ledger.state.value}), 200

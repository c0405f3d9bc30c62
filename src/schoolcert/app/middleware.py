"""Request hooks for the certificate API.

Before each request the caller is identified: the request id comes
from ``X-Request-ID`` (or is generated) and the issuer display name
from the configured ``api.issuer_header``.  Both are kept on
:data:`flask.g`, where :class:`~schoolcert.logging.setup.RequestContextFilter`
picks them up for every record logged during the request.

After each request one ``schoolcert.access`` line is written, tagged
with the route and the certificate or student the request addressed.
Responses under the API base path are never cacheable.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING
from uuid import uuid4

from flask import Flask, g, request

if TYPE_CHECKING:
    from flask import Response

    from schoolcert.config.settings import SchoolcertSettings

access_log = logging.getLogger("schoolcert.access")

# URL variables copied onto the access record when a route has them.
_SUBJECT_ARGS = ("certificate_id", "student_id", "ipfs_hash")


def register_request_hooks(app: Flask) -> None:
    settings: SchoolcertSettings = app.config["SCHOOLCERT_SETTINGS"]
    issuer_header = settings.api.issuer_header
    base_path = settings.api.base_path
    hsts = (
        f"max-age={settings.security.hsts_max_age_seconds}; includeSubDomains"
        if settings.server.external_url.startswith("https://")
        and settings.security.hsts_max_age_seconds > 0
        else None
    )

    @app.before_request
    def _identify_caller() -> None:
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g.start_time = time.monotonic()
        issuer = (request.headers.get(issuer_header) or "").strip()
        if issuer:
            g.issuer = issuer

    @app.after_request
    def _finish(response: Response) -> Response:
        response.headers["X-Request-ID"] = g.get("request_id") or ""
        response.headers["X-Content-Type-Options"] = "nosniff"
        if request.path.startswith(base_path):
            response.headers["Cache-Control"] = "no-store"
        if hsts:
            response.headers["Strict-Transport-Security"] = hsts

        _log_access(response)
        return response


def _log_access(response: Response) -> None:
    status = response.status_code
    duration_ms = _elapsed_ms()
    if status >= 500:  # noqa: PLR2004
        level = logging.ERROR
    elif status >= 400:  # noqa: PLR2004
        level = logging.WARNING
    else:
        level = logging.INFO

    extra = {
        "status": status,
        "duration_ms": round(duration_ms, 1),
        "route": request.endpoint,
    }
    for name in _SUBJECT_ARGS:
        value = (request.view_args or {}).get(name)
        if value is not None:
            extra[name] = value

    access_log.log(
        level,
        "%s %s %s %.1fms",
        request.method,
        request.path,
        status,
        duration_ms,
        extra=extra,
    )


def _elapsed_ms() -> float:
    start = g.get("start_time")
    if start is None:
        return 0.0
    return (time.monotonic() - start) * 1000

"""RFC 7807 Problem Details for the certificate API.

Provides :class:`ApiProblem`, an exception that renders itself as an
``application/problem+json`` response, the service's error-type URNs,
and a Flask error-handler registration function.

Usage::

    raise ApiProblem(NOT_FOUND, "Student not found", 404)
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Error-type URNs
# ---------------------------------------------------------------------------
_P = "urn:schoolcert:error:"

BAD_REQUEST = _P + "badRequest"
NOT_FOUND = _P + "notFound"
SERVICE_UNAVAILABLE = _P + "serviceUnavailable"
SERVER_INTERNAL = _P + "serverInternal"

_TITLES = {
    BAD_REQUEST: "Bad Request",
    NOT_FOUND: "Not Found",
    SERVICE_UNAVAILABLE: "Service Unavailable",
    SERVER_INTERNAL: "Internal Server Error",
}

# Content type for RFC 7807 responses
PROBLEM_CONTENT_TYPE = "application/problem+json"


# ---------------------------------------------------------------------------
# Problem exception
# ---------------------------------------------------------------------------


class ApiProblem(Exception):
    """An RFC 7807 *problem details* object that doubles as an exception.

    Raise anywhere in request handling (or in the certificate service)
    to produce an error response.  The registered Flask error handler
    catches it and calls :meth:`to_response`.

    Parameters
    ----------
    error_type:
        A URN string (one of the constants above) or ``"about:blank"``
        for generic HTTP errors.
    detail:
        Human-readable explanation of the problem.
    status:
        HTTP status code (default 400).
    title:
        Short summary; defaults to the standard title for *error_type*.

    """

    def __init__(
        self,
        error_type: str,
        detail: str,
        status: int = 400,
        *,
        title: str | None = None,
    ) -> None:
        self.error_type = error_type
        self.detail = detail
        self.status = status
        self.title = title if title is not None else _TITLES.get(error_type)
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the RFC 7807 JSON structure.

        Always carries ``success: false`` alongside the problem fields.
        """
        body: dict[str, Any] = {
            "type": self.error_type,
            "detail": self.detail,
            "status": self.status,
            "success": False,
        }
        if self.title is not None:
            body["title"] = self.title
        return body

    def to_response(self):
        """Build a Flask :class:`~flask.Response`."""
        resp = jsonify(self.to_dict())
        resp.status_code = self.status
        resp.headers["Content-Type"] = PROBLEM_CONTENT_TYPE
        resp.headers["Cache-Control"] = "no-store"
        return resp


def bad_request(detail: str) -> ApiProblem:
    return ApiProblem(BAD_REQUEST, detail, 400)


def not_found(detail: str) -> ApiProblem:
    return ApiProblem(NOT_FOUND, detail, 404)


def service_unavailable(detail: str) -> ApiProblem:
    return ApiProblem(SERVICE_UNAVAILABLE, detail, 503)


def server_internal(detail: str) -> ApiProblem:
    return ApiProblem(SERVER_INTERNAL, detail, 500)


# ---------------------------------------------------------------------------
# Flask error handler registration
# ---------------------------------------------------------------------------


def register_error_handlers(app: Flask) -> None:
    """Attach handlers that produce RFC 7807 responses for all errors."""

    @app.errorhandler(ApiProblem)
    def _handle_api_problem(exc: ApiProblem):
        return exc.to_response()

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        problem = ApiProblem(
            "about:blank",
            exc.description or "An error occurred",
            exc.code or 500,
            title=exc.name,
        )
        return problem.to_response()

    @app.errorhandler(Exception)
    def _handle_unhandled(exc: Exception):
        # HTTPException subclasses are already caught above; this
        # handler covers everything else (genuine 500s).
        log.exception("Unhandled exception during request")
        problem = ApiProblem(
            SERVER_INTERNAL,
            "An unexpected internal error occurred",
            500,
        )
        return problem.to_response()

"""Structured logging configuration for schoolcert.

Provides JSON and text formatters, a request-context filter that
injects Flask ``g`` attributes into every log record, and a
one-call ``configure_logging`` function driven by config settings.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schoolcert.config.settings import LoggingSettings

# Attributes every LogRecord carries; anything else on a record was
# passed as ``extra`` or set by RequestContextFilter.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message"}

_CONTEXT_FIELDS = ("request_id", "client_ip", "issuer", "method", "path")
_UNSET = (None, "-")


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """One JSON object per line.

    Besides timestamp, level, logger and message, the object carries
    every ``extra`` field of the record (an audit record's ``event_id``
    and certificate fields, an access record's ``route`` and
    ``duration_ms``) and the request context.  Context fields that are
    unset outside a request are left out.
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if key in _CONTEXT_FIELDS and value in _UNSET:
                continue
            data[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Console format: ``time level logger [request-id client] message``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(name)s [%(request_id)s %(client_ip)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class RequestContextFilter(logging.Filter):
    """Inject Flask request context into every log record.

    Adds ``request_id``, ``client_ip``, ``issuer``, ``method`` and
    ``path`` from ``flask.g`` / ``flask.request`` when a request
    context is active, otherwise falls back to ``"-"`` / ``None``.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        from flask import g, has_request_context, request  # noqa: PLC0415

        if not hasattr(record, "request_id"):
            record.request_id = "-"  # type: ignore[attr-defined]
        if not hasattr(record, "client_ip"):
            record.client_ip = "-"  # type: ignore[attr-defined]
        for name in ("issuer", "method", "path"):
            if not hasattr(record, name):
                setattr(record, name, None)

        if has_request_context():
            record.request_id = getattr(g, "request_id", record.request_id)  # type: ignore[attr-defined]
            record.client_ip = request.remote_addr or record.client_ip  # type: ignore[attr-defined]
            record.method = request.method  # type: ignore[attr-defined]
            record.path = request.path  # type: ignore[attr-defined]
            issuer = getattr(g, "issuer", None)
            if issuer is not None:
                record.issuer = issuer  # type: ignore[attr-defined]

        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``schoolcert`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output.
    Sets up an optional audit log file if ``settings.audit.enabled``.

    Returns the root ``schoolcert`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    # -- Root schoolcert logger --
    root = logging.getLogger("schoolcert")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    ctx_filter = RequestContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    # -- Access logger (inherits from root, no extra handlers) --
    access = logging.getLogger("schoolcert.access")
    access.setLevel(logging.INFO)

    # -- Audit logger --
    audit = logging.getLogger("schoolcert.audit")
    audit.handlers.clear()
    if settings.audit.enabled:
        audit.setLevel(logging.INFO)
        audit.disabled = False

        if settings.audit.file:
            try:
                fh = RotatingFileHandler(
                    settings.audit.file,
                    maxBytes=settings.audit.max_file_size_bytes,
                    backupCount=settings.audit.backup_count,
                )
                # Audit logs are always structured JSON
                fh.setFormatter(StructuredFormatter())
                fh.addFilter(ctx_filter)
                audit.addHandler(fh)
            except OSError as exc:
                root.warning(
                    "Could not open audit log file %s: %s",
                    settings.audit.file,
                    exc,
                )
    else:
        audit.disabled = True

    # -- Quieten noisy third-party loggers --
    for lib in ("werkzeug", "gunicorn", "gunicorn.access", "gunicorn.error", "web3", "urllib3"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root

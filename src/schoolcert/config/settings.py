"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from schoolcert.config import get_config

    ledger = get_config().settings.ledger
    print(ledger.network, ledger.contract_address)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServerSettings:
    """HTTP server configuration (bind address, workers, timeouts)."""

    external_url: str
    bind: str
    port: int
    workers: int
    worker_class: str
    timeout: int
    graceful_timeout: int
    keepalive: int
    max_requests: int
    max_requests_jitter: int


def _build_server(data: dict | None) -> ServerSettings:
    d = data or {}
    return ServerSettings(
        external_url=d.get("external_url", "http://localhost:5007"),
        bind=d.get("bind", "0.0.0.0"),  # noqa: S104
        port=d.get("port", 5007),
        workers=d.get("workers", 4),
        worker_class=d.get("worker_class", "sync"),
        # Ledger writes block until the transaction is mined.
        timeout=d.get("timeout", 180),
        graceful_timeout=d.get("graceful_timeout", 30),
        keepalive=d.get("keepalive", 2),
        max_requests=d.get("max_requests", 0),
        max_requests_jitter=d.get("max_requests_jitter", 0),
    )


# ---------------------------------------------------------------------------
# Security
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SecuritySettings:
    """Request size limits and response hardening headers."""

    max_request_body_bytes: int
    hsts_max_age_seconds: int


def _build_security(data: dict | None) -> SecuritySettings:
    d = data or {}
    return SecuritySettings(
        max_request_body_bytes=d.get("max_request_body_bytes", 65536),
        hsts_max_age_seconds=d.get("hsts_max_age_seconds", 63072000),
    )


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiSettings:
    """Mount point of the certificate API and caller identity header."""

    base_path: str
    issuer_header: str


def _build_api(data: dict | None) -> ApiSettings:
    d = data or {}
    return ApiSettings(
        base_path=d.get("base_path", "/api/v1/certificates"),
        issuer_header=d.get("issuer_header", "X-Authenticated-User"),
    )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """Smart-contract ledger connection.

    ``private_key`` and ``contract_address`` are ``None`` when the
    ledger is not configured; the service then runs in degraded mode.
    """

    enabled: bool
    network: str
    rpc_urls: dict[str, str]
    private_key: str | None
    contract_address: str | None
    abi_path: str | None
    confirmation_timeout_seconds: int
    request_timeout_seconds: int


def _build_ledger(data: dict | None) -> LedgerSettings:
    d = data or {}
    return LedgerSettings(
        enabled=d.get("enabled", True),
        network=d.get("network", "localhost"),
        rpc_urls={k: v for k, v in (d.get("rpc_urls") or {}).items() if v},
        private_key=d.get("private_key") or None,
        contract_address=d.get("contract_address") or None,
        abi_path=d.get("abi_path") or None,
        confirmation_timeout_seconds=d.get("confirmation_timeout_seconds", 120),
        request_timeout_seconds=d.get("request_timeout_seconds", 30),
    )


# ---------------------------------------------------------------------------
# Storage (IPFS pinning)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageSettings:
    """Pinata IPFS pinning credentials and endpoints."""

    api_key: str | None
    api_secret: str | None
    api_base_url: str
    gateway_url: str
    timeout_seconds: int


def _build_storage(data: dict | None) -> StorageSettings:
    d = data or {}
    return StorageSettings(
        api_key=d.get("api_key") or None,
        api_secret=d.get("api_secret") or None,
        api_base_url=d.get("api_base_url", "https://api.pinata.cloud").rstrip("/"),
        gateway_url=d.get("gateway_url", "https://gateway.pinata.cloud/ipfs").rstrip("/"),
        timeout_seconds=d.get("timeout_seconds", 30),
    )


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertificateSettings:
    """Fixed values stamped into every certificate's metadata."""

    institution_name: str
    default_issuer_name: str
    metadata_description: str


def _build_certificates(data: dict | None) -> CertificateSettings:
    d = data or {}
    return CertificateSettings(
        institution_name=d.get("institution_name", "School Management System"),
        default_issuer_name=d.get("default_issuer_name", "System Administrator"),
        metadata_description=d.get(
            "metadata_description",
            "Student Achievement Certificate",
        ),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Audit log output settings (file, rotation)."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "json"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 104857600),
            backup_count=a.get("backup_count", 10),
        ),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection and pool settings for the student store."""

    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: float


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d["database"],
        user=d["user"],
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 1),
        max_connections=d.get("max_connections", 10),
        connection_timeout=d.get("connection_timeout", 30.0),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SchoolcertSettings:
    server: ServerSettings
    security: SecuritySettings
    api: ApiSettings
    ledger: LedgerSettings
    storage: StorageSettings
    certificates: CertificateSettings
    logging: LoggingSettings
    database: DatabaseSettings
    extra: dict[str, Any] = field(default_factory=dict)


def build_settings(data: dict) -> SchoolcertSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`SchoolcertConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return SchoolcertSettings(
        server=_build_server(data.get("server")),
        security=_build_security(data.get("security")),
        api=_build_api(data.get("api")),
        ledger=_build_ledger(data.get("ledger")),
        storage=_build_storage(data.get("storage")),
        certificates=_build_certificates(data.get("certificates")),
        logging=_build_logging(data.get("logging")),
        database=_build_database(data.get("database")),
    )

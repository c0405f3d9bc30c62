"""Configuration subsystem for schoolcert.

Public API::

    from schoolcert.config import get_config, SchoolcertConfig

    # At startup (CLI only):
    SchoolcertConfig(config_file="config.yaml")

    # Everywhere else:
    cfg     = get_config()
    network = cfg.settings.ledger.network        # typed access
    gateway = cfg.get("storage.gateway_url")     # dynamic dot-path
"""

from schoolcert.config.schoolcert_config import (
    ConfigValidationError,
    SchoolcertConfig,
    get_config,
)
from schoolcert.config.settings import (
    ApiSettings,
    AuditLogSettings,
    CertificateSettings,
    DatabaseSettings,
    LedgerSettings,
    LoggingSettings,
    SchoolcertSettings,
    SecuritySettings,
    ServerSettings,
    StorageSettings,
    build_settings,
)

__all__ = [
    "ApiSettings",
    "AuditLogSettings",
    "CertificateSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "LedgerSettings",
    "LoggingSettings",
    # Core
    "SchoolcertConfig",
    # Root
    "SchoolcertSettings",
    "SecuritySettings",
    # Sections
    "ServerSettings",
    "StorageSettings",
    "build_settings",
    "get_config",
]

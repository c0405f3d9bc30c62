"""schoolcert configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    SchoolcertConfig(config_file="/etc/schoolcert/config.yaml")

    # 2. Any module retrieves it afterwards
    from schoolcert.config import get_config
    cfg = get_config()
    cfg.settings.ledger.network  # typed access

    # 3. Dynamic access
    cfg.get("storage.gateway_url", default="https://gateway.pinata.cloud/ipfs")
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from schoolcert.config.settings import SchoolcertSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

_MIN_HSTS_ONE_DAY = 86400

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: SchoolcertConfig | None = None


def get_config() -> SchoolcertConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`SchoolcertConfig` has not
    been created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "SchoolcertConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when schema or cross-field validation finds problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _read_file(path: Path) -> dict:
    """Parse a YAML or JSON config file into a dict."""
    with open(path, encoding="utf-8") as f:  # noqa: PTH123
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            [f"Top level of {path} must be a mapping, got {type(data).__name__}"],
        )
    return data


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class SchoolcertConfig:
    """Central configuration for the schoolcert service.

    The JSON schema is bundled at ``config/schema.json``; users supply
    only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path) -> None:
        """Load, validate and publish the configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.

        Raises
        ------
        ConfigValidationError
            If the file violates the schema or a cross-field rule.

        """
        global _instance  # noqa: PLW0603

        path = Path(config_file)
        self._data: dict = _read_file(path)
        # Env vars are resolved before schema validation so that
        # substituted values are checked against the schema too.
        _resolve_env_vars(self._data)
        self._validate_schema()
        self.additional_checks()
        self._data["_source"] = str(path)

        self._settings: SchoolcertSettings = build_settings(self._data)
        _instance = self

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> SchoolcertSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict:
        """Raw resolved configuration data."""
        return self._data

    def get(self, dotted: str, default: Any = None) -> Any:  # noqa: ANN401
        """Return the raw value at *dotted* path, or *default*."""
        node: Any = self._data
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- validation ---------------------------------------------------------

    def _validate_schema(self) -> None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:  # noqa: PTH123
            schema = json.load(f)
        validator = jsonschema.Draft202012Validator(schema)
        found = sorted(
            validator.iter_errors(self._data),
            key=lambda e: [str(p) for p in e.path],
        )
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '<root>'}: {err.message}"
            for err in found
        ]
        if errors:
            raise ConfigValidationError(errors)

    def additional_checks(self) -> None:  # noqa: C901, PLR0912
        """Semantic & cross-field validation.

        Runs after schema validation passes.  Errors are collected and
        raised together; warnings are logged.
        """
        from schoolcert.ledger.networks import KNOWN_NETWORKS  # noqa: PLC0415

        errors: list[str] = []
        warnings: list[str] = []

        server = self._data.get("server") or {}
        api = self._data.get("api") or {}
        ledger = self._data.get("ledger") or {}
        storage = self._data.get("storage") or {}
        database = self._data.get("database") or {}
        security = self._data.get("security") or {}

        # -- server --
        ext_url = server.get("external_url", "")
        if ext_url.endswith("/"):
            errors.append(
                f"server.external_url must not end with '/' (got '{ext_url}')",
            )

        # -- api --
        base_path = api.get("base_path", "/api/v1/certificates")
        if not base_path.startswith("/"):
            errors.append(f"api.base_path must start with '/' (got '{base_path}')")
        if base_path != "/" and base_path.endswith("/"):
            errors.append(f"api.base_path must not end with '/' (got '{base_path}')")

        # -- ledger --
        if ledger.get("enabled", True):
            contract = ledger.get("contract_address") or ""
            key = ledger.get("private_key") or ""
            if contract and not _ADDRESS_RE.match(contract):
                errors.append(
                    "ledger.contract_address must be a 0x-prefixed 40-hex-digit address",
                )
            if key and not _PRIVATE_KEY_RE.match(key):
                errors.append(
                    "ledger.private_key must be 64 hex digits (optionally 0x-prefixed)",
                )
            present = [bool(contract), bool(key)]
            if any(present) and not all(present):
                warnings.append(
                    "ledger is partially configured (contract_address and "
                    "private_key are both required) -- the "
                    "service will run without the ledger",
                )
            elif not any(present):
                warnings.append(
                    "ledger.contract_address and ledger.private_key are not "
                    "set -- certificate issuance will be unavailable",
                )
            network = ledger.get("network", "localhost")
            if network not in KNOWN_NETWORKS and network not in (ledger.get("rpc_urls") or {}):
                warnings.append(
                    f"ledger.network '{network}' is unknown -- falling back "
                    f"to 'localhost'. Known networks: {sorted(KNOWN_NETWORKS)}",
                )
            confirm = ledger.get("confirmation_timeout_seconds", 120)
            if confirm > server.get("timeout", 180):
                warnings.append(
                    f"ledger.confirmation_timeout_seconds ({confirm}) exceeds "
                    f"server.timeout ({server.get('timeout', 180)}) -- workers "
                    "may be killed while waiting for a receipt",
                )

        # -- storage --
        if bool(storage.get("api_key")) != bool(storage.get("api_secret")):
            warnings.append(
                "storage.api_key and storage.api_secret must both be set -- "
                "metadata pinning is disabled",
            )

        # -- database --
        min_conn = database.get("min_connections", 1)
        max_conn = database.get("max_connections", 10)
        if min_conn > max_conn:
            errors.append(
                f"database.min_connections ({min_conn}) must be <= "
                f"database.max_connections ({max_conn})",
            )

        # -- HSTS --
        hsts_max_age = security.get("hsts_max_age_seconds", 63072000)
        if 0 < hsts_max_age < _MIN_HSTS_ONE_DAY:
            warnings.append(
                f"security.hsts_max_age_seconds ({hsts_max_age}) is "
                f"less than 1 day ({_MIN_HSTS_ONE_DAY})",
            )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        source = self._data.get("_source", "?")
        return f"<SchoolcertConfig config_file={source}>"

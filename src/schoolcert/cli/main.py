"""schoolcert command-line entry point.

Usage::

    schoolcert -c /etc/schoolcert/config.yaml
    schoolcert -c config.yaml --dev
    schoolcert -c config.yaml --validate-only
    schoolcert -c config.yaml serve --dev
    schoolcert -c config.yaml ledger status
    schoolcert -c config.yaml ledger add-issuer 0xAbC...
    schoolcert -c config.yaml inspect certificate 7
    schoolcert -c config.yaml inspect student 42
    schoolcert -c config.yaml identity derive 42
    schoolcert -c config.yaml storage unpin QmXyz...
    python -m schoolcert -c config.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from schoolcert import __version__

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schoolcert",
        description="schoolcert: certificate issuance and verification service",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        default=False,
        help="Use Flask's development server instead of gunicorn.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the schoolcert server")
    serve_parser.add_argument("--dev", action="store_true", default=False, dest="dev")

    # ledger
    ledger_parser = subparsers.add_parser("ledger", help="Ledger management")
    ledger_sub = ledger_parser.add_subparsers(dest="ledger_command")
    ledger_sub.add_parser("status", help="Connect to the ledger and print its state")
    for name, help_text in [
        ("add-issuer", "Grant an address the issuer role"),
        ("remove-issuer", "Revoke the issuer role from an address"),
    ]:
        p = ledger_sub.add_parser(name, help=help_text)
        p.add_argument("address", help="0x-prefixed account address")

    # inspect
    inspect_parser = subparsers.add_parser("inspect", help="Inspect certificates and students")
    inspect_sub = inspect_parser.add_subparsers(dest="inspect_command")
    for name, help_text in [
        ("certificate", "Inspect a certificate by ledger id"),
        ("student", "Inspect a student and their certificates"),
    ]:
        p = inspect_sub.add_parser(name, help=help_text)
        p.add_argument("resource_id", help=f"The {name} ID to inspect")

    # storage
    storage_parser = subparsers.add_parser("storage", help="Pinned metadata management")
    storage_sub = storage_parser.add_subparsers(dest="storage_command")
    for name, help_text in [
        ("pin", "Pin existing IPFS content by hash"),
        ("unpin", "Release a pinned document"),
    ]:
        p = storage_sub.add_parser(name, help=help_text)
        p.add_argument("ipfs_hash", help="IPFS content hash")

    # identity
    identity_parser = subparsers.add_parser("identity", help="Recipient address tools")
    identity_sub = identity_parser.add_subparsers(dest="identity_command")
    derive = identity_sub.add_parser("derive", help="Print the derived address of a student id")
    derive.add_argument("student_id", help="Student ID")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"schoolcert: error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, starts server."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from schoolcert.config import ConfigValidationError, SchoolcertConfig

        config = SchoolcertConfig(config_file=str(config_path))
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from schoolcert.logging import configure_logging

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    # -- dispatch subcommand ---
    command = args.command

    if command == "ledger":
        from schoolcert.cli.commands.ledger import run_ledger

        run_ledger(config, args)
    elif command == "inspect":
        from schoolcert.cli.commands.inspect import run_inspect

        run_inspect(config, args)
    elif command == "storage":
        from schoolcert.cli.commands.storage import run_storage

        run_storage(config, args)
    elif command == "identity":
        from schoolcert.cli.commands.identity import run_identity

        run_identity(config, args)
    else:
        # No subcommand means serve
        _print_settings_summary(config)
        _run_serve(config, args)


def _run_serve(config, args) -> None:
    """Open the database pool and start the HTTP server."""
    try:
        from schoolcert.db import init_database

        db = init_database(config.settings.database)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"database initialisation failed: {exc}")
        sys.exit(1)

    from schoolcert.app import create_app

    app = create_app(config=config, database=db)

    if args.dev:
        log.info("Starting development server (not for production)")
        app.run(
            host=config.settings.server.bind,
            port=config.settings.server.port,
            debug=True,
            use_reloader=True,
        )
    else:
        try:
            from schoolcert.server.gunicorn_app import run_gunicorn

            run_gunicorn(app, config.settings.server)
        except RuntimeError as exc:
            _print_error(str(exc))
            sys.exit(1)


def _print_settings_summary(config) -> None:
    """Print a short summary of the loaded configuration."""
    from schoolcert.logging.sanitize import sanitize_for_logs

    s = config.settings
    summary = sanitize_for_logs(
        {
            "config": config.data.get("_source"),
            "external_url": s.server.external_url,
            "listen": f"{s.server.bind}:{s.server.port}",
            "api_base_path": s.api.base_path,
            "database": f"{s.database.user}@{s.database.host}:{s.database.port}/{s.database.database}",
            "ledger_enabled": s.ledger.enabled,
            "ledger_network": s.ledger.network,
            "contract_address": s.ledger.contract_address or "(not set)",
            "private_key": s.ledger.private_key,
            "storage": "configured" if s.storage.api_key and s.storage.api_secret else "disabled",
            "gateway_url": s.storage.gateway_url,
        },
    )
    width = max(len(k) for k in summary)
    for key, value in summary.items():
        print(f"  {key:<{width}}  {value if value is not None else '(not set)'}")  # noqa: T201

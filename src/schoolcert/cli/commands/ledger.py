"""Ledger management subcommands."""

from __future__ import annotations

import json
import logging
import sys

log = logging.getLogger(__name__)


def run_ledger(config, args) -> None:
    """Handle ledger subcommands."""
    if args.ledger_command == "status":
        _ledger_status(config)
    elif args.ledger_command in ("add-issuer", "remove-issuer"):
        _change_issuer(config, args.address, added=args.ledger_command == "add-issuer")
    else:
        sys.exit(1)


def _connect(config):
    """Build and initialize a ledger client, exiting on failure."""
    from schoolcert.ledger import LedgerClient

    client = LedgerClient(config.settings.ledger)
    if not client.initialize():
        print(  # noqa: T201
            f"ledger unavailable on {client.network} (state={client.state})",
            file=sys.stderr,
        )
        sys.exit(1)
    return client


def _ledger_status(config) -> None:
    """Connect to the ledger and print network, contract and totals."""
    client = _connect(config)
    result = {
        "state": str(client.state),
        "network": client.network,
        "contract_address": client.contract_address,
        "signer_address": client.signer_address,
        "total_certificates": client.get_total_certificates(),
    }
    print(json.dumps(result, indent=2))  # noqa: T201


def _change_issuer(config, address: str, *, added: bool) -> None:
    """Grant or revoke the contract's issuer role."""
    from schoolcert.core.identity import is_address
    from schoolcert.ledger import LedgerError
    from schoolcert.logging import audit_events

    if not is_address(address):
        print(f"not an address: {address!r}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    client = _connect(config)
    try:
        receipt = client.add_issuer(address) if added else client.remove_issuer(address)
    except LedgerError as exc:
        print(exc.detail, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    audit_events.issuer_changed(address, added=added, transaction_hash=receipt.transaction_hash)
    print(  # noqa: T201
        json.dumps(
            {
                "issuer": address,
                "action": "added" if added else "removed",
                "transaction_hash": receipt.transaction_hash,
                "block_number": receipt.block_number,
            },
            indent=2,
        ),
    )

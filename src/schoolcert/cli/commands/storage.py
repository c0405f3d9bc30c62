"""Pinned metadata subcommands.

``pin`` pins content that already exists on IPFS; ``unpin`` releases
a document.  Neither touches the ledger.
"""

from __future__ import annotations

import json
import sys

from schoolcert.storage import PinataClient, StorageError


def run_storage(config, args) -> None:
    """Handle storage subcommands."""
    if args.storage_command not in ("pin", "unpin"):
        sys.exit(1)

    ipfs_hash = args.ipfs_hash.strip()
    if not ipfs_hash:
        print("an IPFS hash is required", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    client = PinataClient(
        config.settings.storage,
        description=config.settings.certificates.metadata_description,
    )
    try:
        if args.storage_command == "pin":
            client.pin_by_hash(ipfs_hash)
        else:
            client.unpin(ipfs_hash)
    except StorageError as exc:
        print(exc.detail, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    print(  # noqa: T201
        json.dumps(
            {
                "ipfs_hash": ipfs_hash,
                "action": "pinned" if args.storage_command == "pin" else "unpinned",
                "url": client.gateway_url_for(ipfs_hash),
            },
            indent=2,
        ),
    )

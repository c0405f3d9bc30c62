"""Identity subcommand -- print the derived recipient address of a student."""

from __future__ import annotations

import sys


def run_identity(config, args) -> None:  # noqa: ARG001
    if getattr(args, "identity_command", None) != "derive":
        sys.exit(1)

    from schoolcert.core.identity import derive_address

    print(derive_address(args.student_id.strip()))  # noqa: T201

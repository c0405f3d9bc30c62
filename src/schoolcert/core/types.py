"""Enumerated types shared across schoolcert.

All enums inherit from :class:`enum.StrEnum` so their ``.value`` is a
plain string that logs and JSON round-trip naturally.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Ledger client lifecycle
# ---------------------------------------------------------------------------


class LedgerState(StrEnum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Health check outcomes
# ---------------------------------------------------------------------------


class CheckStatus(StrEnum):
    OK = "ok"
    DEGRADED = "degraded"
    DISABLED = "disabled"

"""Ledger client state machine.

Defines the valid lifecycle transitions of the ledger client.  All
transitions are enforced via :func:`assert_transition`.

Usage::

    from schoolcert.core.state import LEDGER_TRANSITIONS, assert_transition
    from schoolcert.core.types import LedgerState

    assert_transition(
        LedgerState.UNINITIALIZED, LedgerState.INITIALIZING,
        LEDGER_TRANSITIONS,
    )
"""

from __future__ import annotations

import logging

from schoolcert.core.types import LedgerState

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Ledger: uninitialized → initializing → ready/failed.
#         ready & failed are terminal for the process lifetime.
# ---------------------------------------------------------------------------

LEDGER_TRANSITIONS: dict[LedgerState, frozenset[LedgerState]] = {
    LedgerState.UNINITIALIZED: frozenset({LedgerState.INITIALIZING}),
    LedgerState.INITIALIZING: frozenset({LedgerState.READY, LedgerState.FAILED}),
    LedgerState.READY: frozenset(),
    LedgerState.FAILED: frozenset(),
}


def assert_transition(
    current: LedgerState,
    target: LedgerState,
    table: dict,
) -> None:
    """Raise :class:`ValueError` if *current* → *target* is not allowed.

    Parameters
    ----------
    current:
        The current state.
    target:
        The desired new state.
    table:
        A transition table such as :data:`LEDGER_TRANSITIONS`.

    """
    allowed = table.get(current)
    if allowed is None:
        msg = f"Unknown state {current!r}"
        raise ValueError(msg)
    if target not in allowed:
        msg = (
            f"Invalid transition {current.value!r} -> {target.value!r}; "
            f"allowed targets: {sorted(s.value for s in allowed) or '(terminal)'}"
        )
        raise ValueError(
            msg,
        )


def log_transition(
    resource_type: str,
    resource_id,
    from_status,
    to_status,
    *,
    reason: str | None = None,
) -> None:
    """Emit a structured log entry for a state transition.

    Parameters
    ----------
    resource_type:
        e.g. ``"ledger"``.
    resource_id:
        Identifier of the resource (network name for the ledger).
    from_status:
        The previous state value.
    to_status:
        The new state value.
    reason:
        Optional human-readable reason for the transition.

    """
    extra = {
        "event": "state_transition",
        "resource_type": resource_type,
        "resource_id": str(resource_id),
        "from_status": from_status.value if hasattr(from_status, "value") else str(from_status),
        "to_status": to_status.value if hasattr(to_status, "value") else str(to_status),
    }
    if reason:
        extra["reason"] = reason
    log.info(
        "%s %s: %s -> %s%s",
        resource_type,
        resource_id,
        extra["from_status"],
        extra["to_status"],
        f" ({reason})" if reason else "",
        extra=extra,
    )

"""Named blockchain networks and their JSON-RPC endpoints.

Only ``localhost`` has a built-in URL.  Public networks need an RPC
provider URL from ``ledger.rpc_urls`` (usually an environment variable
reference in the config file).
"""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)

DEFAULT_NETWORK = "localhost"

KNOWN_NETWORKS: dict[str, str | None] = {
    "localhost": "http://127.0.0.1:8545",
    "sepolia": None,
    "polygon": None,
    "mumbai": None,
}


def resolve_rpc_url(network: str, overrides: dict[str, str] | None = None) -> str:
    """Return the JSON-RPC URL for *network*.

    *overrides* (``ledger.rpc_urls``) take precedence over the built-in
    table and may also name networks the table does not know.  An
    unknown network, or one without a URL, falls back to ``localhost``
    with a warning.  Never raises.
    """
    urls = dict(KNOWN_NETWORKS)
    urls.update({k: v for k, v in (overrides or {}).items() if v})

    url = urls.get(network)
    if url:
        return url

    if network in urls:
        log.warning(
            "No RPC URL configured for network '%s', falling back to '%s'",
            network,
            DEFAULT_NETWORK,
        )
    else:
        log.warning(
            "Unknown network '%s', falling back to '%s'",
            network,
            DEFAULT_NETWORK,
        )
    return urls[DEFAULT_NETWORK] or KNOWN_NETWORKS[DEFAULT_NETWORK]

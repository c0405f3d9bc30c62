r"""Pinata pinning client for certificate metadata.

Talks to the Pinata REST API over HTTPS.  Credentials are sent as the
``pinata_api_key`` / ``pinata_secret_api_key`` headers on every
management call; gateway reads are anonymous.

API contract
------------
**Pin JSON**: ``POST {api_base_url}/pinning/pinJSONToIPFS``

Request body (JSON)::

    {
        "name": "Certificate - Alice",
        "description": "Student Achievement Certificate",
        "certificateData": {...},
        "attributes": [{"trait_type": "Certificate Type", "value": "..."}, ...]
    }

Response body (JSON, HTTP 200)::

    {"IpfsHash": "Qm...", "PinSize": 123, "Timestamp": "2024-..."}

**Pin by hash**: ``POST {api_base_url}/pinning/pinByHash`` with
``{"hashToPin": "Qm..."}``.

**Unpin**: ``DELETE {api_base_url}/pinning/unpin/{hash}``.

**Fetch**: ``GET {gateway_url}/{hash}``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import ssl
import urllib.error
import urllib.request
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from schoolcert.storage.base import (
    PinResult,
    RetrievalFailed,
    StorageError,
    StorageUnavailable,
    UploadFailed,
)

if TYPE_CHECKING:
    from schoolcert.config.settings import StorageSettings
    from schoolcert.models.metadata import CertificateMetadata

log = logging.getLogger(__name__)

_ERROR_BODY_PREVIEW = 500


class PinataClient:
    """Pins certificate metadata documents and reads them back."""

    def __init__(
        self,
        settings: StorageSettings,
        *,
        description: str = "Student Achievement Certificate",
    ) -> None:
        self._settings = settings
        self._description = description
        self._ssl_ctx: ssl.SSLContext | None = None

    def is_configured(self) -> bool:
        return bool(self._settings.api_key and self._settings.api_secret)

    def gateway_url_for(self, ipfs_hash: str) -> str:
        """Return the public gateway URL of *ipfs_hash* (no validation)."""
        return f"{self._settings.gateway_url}/{ipfs_hash}"

    # -- HTTP plumbing ------------------------------------------------------

    def _get_ssl_context(self) -> ssl.SSLContext:
        if self._ssl_ctx is None:
            self._ssl_ctx = ssl.create_default_context()
        return self._ssl_ctx

    def _auth_headers(self) -> dict[str, str]:
        return {
            "pinata_api_key": self._settings.api_key or "",
            "pinata_secret_api_key": self._settings.api_secret or "",
        }

    def _require_configured(self) -> None:
        if not self.is_configured():
            msg = "IPFS service not configured. Set storage.api_key and storage.api_secret"
            raise StorageUnavailable(msg)

    def _do_request(
        self,
        method: str,
        url: str,
        *,
        payload: dict | None = None,
        headers: dict[str, str] | None = None,
        error_cls: type[StorageError] = UploadFailed,
    ) -> bytes:
        """Send a single request and return the raw response body."""
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(  # noqa: S310
            url,
            data=data,
            method=method,
            headers={
                "Accept": "application/json",
                **({"Content-Type": "application/json"} if data is not None else {}),
                **(headers or {}),
            },
        )
        handler = urllib.request.HTTPSHandler(context=self._get_ssl_context())
        opener = urllib.request.build_opener(handler)

        try:
            resp = opener.open(req, timeout=self._settings.timeout_seconds)
        except urllib.error.HTTPError as exc:
            body = ""
            with contextlib.suppress(Exception):
                body = exc.read().decode("utf-8", errors="replace")[:_ERROR_BODY_PREVIEW]
            msg = f"{method} {url} returned HTTP {exc.code}: {body}"
            raise error_cls(msg, retryable=exc.code >= 500) from exc
        except (urllib.error.URLError, OSError) as exc:
            msg = f"Failed to reach {url}: {exc}"
            raise error_cls(msg, retryable=True) from exc

        with resp:
            if resp.status >= 300:  # noqa: PLR2004
                msg = f"{method} {url} returned unexpected HTTP {resp.status}"
                raise error_cls(msg, retryable=resp.status >= 500)
            return resp.read()

    @staticmethod
    def _decode_json(raw: bytes, error_cls: type[StorageError]) -> Any:  # noqa: ANN401
        try:
            return json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            msg = f"Invalid JSON response: {exc}"
            raise error_cls(msg) from exc

    # -- public API ---------------------------------------------------------

    def build_document(self, metadata: CertificateMetadata) -> dict[str, Any]:
        """Wrap *metadata* in the pinned document envelope."""
        return {
            "name": f"Certificate - {metadata.student_name}",
            "description": self._description,
            "certificateData": metadata.to_dict(),
            "attributes": [
                {"trait_type": "Certificate Type", "value": metadata.certificate_type},
                {"trait_type": "Student Name", "value": metadata.student_name},
                {"trait_type": "Issue Date", "value": metadata.issued_date},
            ],
        }

    def upload(self, metadata: CertificateMetadata) -> PinResult:
        """Pin *metadata* and return its content hash and gateway URL.

        Raises
        ------
        StorageUnavailable
            Credentials are not configured.
        UploadFailed
            Any transport, HTTP or response-format failure.

        """
        self._require_configured()
        url = f"{self._settings.api_base_url}/pinning/pinJSONToIPFS"
        raw = self._do_request(
            "POST",
            url,
            payload=self.build_document(metadata),
            headers=self._auth_headers(),
        )
        body = self._decode_json(raw, UploadFailed)

        ipfs_hash = body.get("IpfsHash") if isinstance(body, dict) else None
        if not ipfs_hash:
            msg = "Pinata response missing 'IpfsHash' field"
            raise UploadFailed(msg)

        log.info("Pinned metadata for %s as %s", metadata.student_name, ipfs_hash)
        return PinResult(
            ipfs_hash=ipfs_hash,
            url=self.gateway_url_for(ipfs_hash),
            timestamp=body.get("Timestamp"),
        )

    def fetch(self, ipfs_hash: str) -> dict[str, Any]:
        """Return the document pinned as *ipfs_hash* from the gateway."""
        if not ipfs_hash:
            msg = "Cannot fetch metadata for an empty hash"
            raise RetrievalFailed(msg)
        raw = self._do_request(
            "GET",
            self.gateway_url_for(quote(ipfs_hash, safe="")),
            error_cls=RetrievalFailed,
        )
        return self._decode_json(raw, RetrievalFailed)

    def pin_by_hash(self, ipfs_hash: str) -> None:
        """Ask the service to pin content that already exists on IPFS."""
        self._require_configured()
        self._do_request(
            "POST",
            f"{self._settings.api_base_url}/pinning/pinByHash",
            payload={"hashToPin": ipfs_hash},
            headers=self._auth_headers(),
        )
        log.info("Pinned existing hash %s", ipfs_hash)

    def unpin(self, ipfs_hash: str) -> None:
        self._require_configured()
        self._do_request(
            "DELETE",
            f"{self._settings.api_base_url}/pinning/unpin/{quote(ipfs_hash, safe='')}",
            headers=self._auth_headers(),
        )
        log.info("Unpinned %s", ipfs_hash)

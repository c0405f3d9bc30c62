"""web3.py client for the ``StudentCertificate`` contract.

The client is owned by the application container and initialized
exactly once at startup.  Until :meth:`LedgerClient.initialize`
succeeds every contract operation raises
:class:`~schoolcert.ledger.base.NotInitialized`.

Write path
----------
``build_transaction`` -> local signature with the configured key ->
``send_raw_transaction`` -> ``wait_for_transaction_receipt``.  A
receipt with ``status == 0`` is a failed transaction.

Read path
---------
``verify_certificate``, ``get_student_certificates``,
``get_total_certificates`` and ``verify_by_hash`` swallow remote errors
and return a neutral value; ``get_certificate`` raises
:class:`~schoolcert.ledger.base.RetrievalFailed`.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from web3 import Web3
from web3.exceptions import Web3Exception
from web3.logs import DISCARD

from schoolcert.core.state import LEDGER_TRANSITIONS, assert_transition, log_transition
from schoolcert.core.types import LedgerState
from schoolcert.ledger.base import (
    EventNotFound,
    HashVerification,
    IssueReceipt,
    NotInitialized,
    RetrievalFailed,
    TransactionFailed,
    TransactionReceipt,
)
from schoolcert.ledger.networks import resolve_rpc_url
from schoolcert.models.certificate import Certificate

if TYPE_CHECKING:
    from schoolcert.config.settings import LedgerSettings

log = logging.getLogger(__name__)

BUNDLED_ABI_PATH = Path(__file__).parent / "StudentCertificate.abi.json"

# Errors a JSON-RPC round trip can surface.  requests' exceptions
# derive from OSError; eth-abi decoding problems from ValueError.
_REMOTE_ERRORS = (Web3Exception, ValueError, OSError)


def load_abi(path: str | Path) -> list[dict]:
    """Read a contract ABI from *path*.

    Accepts a bare ABI list or a compiler artifact with an ``abi`` key.
    """
    with open(path, encoding="utf-8") as f:  # noqa: PTH123
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        msg = f"{path} does not contain a contract ABI list"
        raise ValueError(msg)
    return data


def _checksum(address: str, action: str) -> str:
    try:
        return Web3.to_checksum_address(address)
    except (ValueError, TypeError) as exc:
        msg = f"Failed to {action}: invalid address {address!r}"
        raise TransactionFailed(msg) from exc


class LedgerClient:
    """Issues, reads and revokes certificates on the contract.

    Parameters
    ----------
    settings:
        The ``ledger`` configuration section.
    web3:
        Pre-built :class:`~web3.Web3` instance.  When omitted one is
        created from the configured network's RPC URL at
        :meth:`initialize`.

    """

    def __init__(self, settings: LedgerSettings, *, web3: Web3 | None = None) -> None:
        self._settings = settings
        self._w3 = web3
        self._contract = None
        self._account = None
        self._state = LedgerState.UNINITIALIZED
        self._init_lock = threading.Lock()
        # Serializes nonce allocation between concurrent requests.
        self._tx_lock = threading.Lock()

    # -- lifecycle ----------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def network(self) -> str:
        return self._settings.network

    @property
    def contract_address(self) -> str | None:
        return self._settings.contract_address

    @property
    def signer_address(self) -> str | None:
        """Address of the service's own signing key, once initialized."""
        return self._account.address if self._account is not None else None

    def is_initialized(self) -> bool:
        return self._state is LedgerState.READY

    def _transition(self, target: LedgerState, reason: str | None = None) -> None:
        assert_transition(self._state, target, LEDGER_TRANSITIONS)
        previous = self._state
        self._state = target
        log_transition("ledger", self._settings.network, previous, target, reason=reason)

    def initialize(self) -> bool:
        """Connect to the configured network and bind the contract.

        Returns ``True`` when the client is ready.  Missing settings, an
        unreadable ABI or a failed connectivity probe are logged and
        yield ``False``; nothing is raised.  Calling again after the
        first attempt returns the outcome of that attempt.
        """
        with self._init_lock:
            if self._state is not LedgerState.UNINITIALIZED:
                return self.is_initialized()

            self._transition(LedgerState.INITIALIZING)
            s = self._settings

            if not s.enabled:
                self._transition(LedgerState.FAILED, reason="disabled in configuration")
                return False

            if not s.private_key or not s.contract_address:
                log.warning(
                    "Ledger not configured: ledger.private_key and "
                    "ledger.contract_address are required",
                )
                self._transition(LedgerState.FAILED, reason="not configured")
                return False

            abi_path = Path(s.abi_path) if s.abi_path else BUNDLED_ABI_PATH
            if not abi_path.is_file():
                log.warning("Contract ABI not found at %s", abi_path)
                self._transition(LedgerState.FAILED, reason="ABI missing")
                return False

            try:
                abi = load_abi(abi_path)
            except (OSError, ValueError) as exc:
                log.warning("Contract ABI at %s is unreadable: %s", abi_path, exc)
                self._transition(LedgerState.FAILED, reason="ABI unreadable")
                return False

            try:
                if self._w3 is None:
                    rpc_url = resolve_rpc_url(s.network, s.rpc_urls)
                    self._w3 = Web3(
                        Web3.HTTPProvider(
                            rpc_url,
                            request_kwargs={"timeout": s.request_timeout_seconds},
                        ),
                    )
                self._account = self._w3.eth.account.from_key(s.private_key)
                self._contract = self._w3.eth.contract(
                    address=Web3.to_checksum_address(s.contract_address),
                    abi=abi,
                )
                block = self._w3.eth.block_number
            except (*_REMOTE_ERRORS, TypeError) as exc:
                log.error("Failed to initialize ledger on %s: %s", s.network, exc)  # noqa: TRY400
                self._contract = None
                self._account = None
                self._transition(LedgerState.FAILED, reason=str(exc))
                return False

            self._transition(LedgerState.READY)
            log.info(
                "Ledger ready on %s (block %s), contract=%s, signer=%s",
                s.network,
                block,
                s.contract_address,
                self._account.address,
            )
            return True

    def _require_ready(self) -> None:
        if not self.is_initialized():
            raise NotInitialized

    # -- transactions -------------------------------------------------------

    def _transact(self, action: str, function: str, *args: Any) -> Any:  # noqa: ANN401
        """Call contract *function* with *args* in a signed transaction.

        web3 matches *args* against the ABI when the call is built, so
        argument type errors surface here as :class:`TransactionFailed`
        like any other write failure.  Returns the confirmed receipt.
        """
        account = self._account
        try:
            fn = getattr(self._contract.functions, function)(*args)
            with self._tx_lock:
                tx = fn.build_transaction(
                    {
                        "from": account.address,
                        "nonce": self._w3.eth.get_transaction_count(account.address, "pending"),
                    },
                )
                signed = account.sign_transaction(tx)
                tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._settings.confirmation_timeout_seconds,
            )
        except _REMOTE_ERRORS as exc:
            msg = f"Failed to {action}: {exc}"
            raise TransactionFailed(msg) from exc

        if receipt["status"] == 0:
            msg = f"Failed to {action}: transaction {Web3.to_hex(receipt['transactionHash'])} reverted"
            raise TransactionFailed(msg)
        return receipt

    @staticmethod
    def _receipt(receipt: Any) -> TransactionReceipt:  # noqa: ANN401
        return TransactionReceipt(
            transaction_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
        )

    def issue_certificate(  # noqa: PLR0913
        self,
        recipient: str,
        name: str,
        email: str,
        certificate_type: str,
        metadata_hash: str,
    ) -> IssueReceipt:
        """Record a certificate and return its ledger-assigned id.

        Raises
        ------
        NotInitialized
            The client is not ready.
        TransactionFailed
            Build, send or confirmation failed, or the contract
            reverted (e.g. a duplicate non-empty *metadata_hash*).
        EventNotFound
            The confirmed receipt carries no ``CertificateIssued`` event.

        """
        self._require_ready()
        address = _checksum(recipient, "issue certificate")
        receipt = self._transact(
            "issue certificate",
            "issueCertificate",
            address,
            name,
            email,
            certificate_type,
            metadata_hash,
        )
        tx = self._receipt(receipt)

        events = self._contract.events.CertificateIssued().process_receipt(
            receipt,
            errors=DISCARD,
        )
        if not events:
            msg = (
                f"Transaction {tx.transaction_hash} was confirmed but emitted "
                "no CertificateIssued event"
            )
            raise EventNotFound(msg)

        certificate_id = int(events[0]["args"]["certificateId"])
        log.info(
            "Certificate %d issued to %s in tx %s (block %d)",
            certificate_id,
            address,
            tx.transaction_hash,
            tx.block_number,
        )
        return IssueReceipt(
            certificate_id=certificate_id,
            transaction_hash=tx.transaction_hash,
            block_number=tx.block_number,
        )

    def revoke_certificate(self, certificate_id: int) -> TransactionReceipt:
        self._require_ready()
        receipt = self._transact("revoke certificate", "revokeCertificate", certificate_id)
        tx = self._receipt(receipt)
        log.info("Certificate %s revoked in tx %s", certificate_id, tx.transaction_hash)
        return tx

    def add_issuer(self, address: str) -> TransactionReceipt:
        """Grant *address* the contract's issuer role."""
        self._require_ready()
        receipt = self._transact("add issuer", "addIssuer", _checksum(address, "add issuer"))
        return self._receipt(receipt)

    def remove_issuer(self, address: str) -> TransactionReceipt:
        """Revoke the issuer role from *address*."""
        self._require_ready()
        receipt = self._transact(
            "remove issuer",
            "removeIssuer",
            _checksum(address, "remove issuer"),
        )
        return self._receipt(receipt)

    # -- reads --------------------------------------------------------------

    def verify_certificate(self, certificate_id: int) -> bool:
        """Return ``True`` if the certificate exists and is not revoked."""
        self._require_ready()
        try:
            return bool(self._contract.functions.verifyCertificate(int(certificate_id)).call())
        except _REMOTE_ERRORS as exc:
            log.warning("verifyCertificate(%s) failed: %s", certificate_id, exc)
            return False

    def get_certificate(self, certificate_id: int) -> Certificate:
        self._require_ready()
        try:
            raw = self._contract.functions.getCertificate(int(certificate_id)).call()
        except _REMOTE_ERRORS as exc:
            msg = f"Failed to get certificate {certificate_id}: {exc}"
            raise RetrievalFailed(msg) from exc

        (
            cert_id,
            student_address,
            student_name,
            student_email,
            certificate_type,
            ipfs_hash,
            issued_at,
            issued_by,
            revoked,
        ) = raw
        if int(cert_id) == 0:
            msg = f"Failed to get certificate {certificate_id}: certificate does not exist"
            raise RetrievalFailed(msg)

        return Certificate(
            id=int(cert_id),
            recipient_address=student_address,
            recipient_name=student_name,
            recipient_email=student_email,
            certificate_type=certificate_type,
            metadata_hash=ipfs_hash,
            issued_at=datetime.fromtimestamp(int(issued_at), tz=UTC),
            issued_by=issued_by,
            revoked=bool(revoked),
        )

    def get_student_certificates(self, address: str) -> list[int]:
        """Return ids of every certificate issued to *address*, oldest first."""
        self._require_ready()
        try:
            ids = self._contract.functions.getStudentCertificates(
                Web3.to_checksum_address(address),
            ).call()
        except _REMOTE_ERRORS as exc:
            log.warning("getStudentCertificates(%s) failed: %s", address, exc)
            return []
        return [int(i) for i in ids]

    def get_total_certificates(self) -> int:
        self._require_ready()
        try:
            return int(self._contract.functions.getTotalCertificates().call())
        except _REMOTE_ERRORS as exc:
            log.warning("getTotalCertificates() failed: %s", exc)
            return 0

    def verify_by_hash(self, metadata_hash: str) -> HashVerification:
        """Look up a certificate by its pinned-metadata hash."""
        self._require_ready()
        try:
            valid, cert_id = self._contract.functions.verifyCertificateByHash(
                metadata_hash,
            ).call()
        except _REMOTE_ERRORS as exc:
            log.warning("verifyCertificateByHash(%s) failed: %s", metadata_hash, exc)
            return HashVerification(valid=False)
        return HashVerification(
            valid=bool(valid),
            certificate_id=int(cert_id) or None,
        )

"""In-memory stand-in for a node running the StudentCertificate contract.

Only the slice of the web3 surface that
:class:`~schoolcert.ledger.client.LedgerClient` touches is emulated:
``eth.block_number``, ``eth.account.from_key``, ``eth.contract``,
``get_transaction_count``, ``send_raw_transaction`` and
``wait_for_transaction_receipt``.  Reverts surface from
``build_transaction`` the way a node's gas estimation reports them.
"""

from __future__ import annotations

import hashlib
import itertools
from types import SimpleNamespace

from web3.exceptions import ContractLogicError, MismatchedABI

TEST_PRIVATE_KEY = "0x" + "11" * 32
TEST_CONTRACT_ADDRESS = "0x" + "ab" * 20
SIGNER_ADDRESS = "0x" + "5e" * 20
ZERO_ADDRESS = "0x" + "0" * 40


def tx_hash_for(nonce: int) -> bytes:
    """Transaction hash the chain assigns to the transaction with *nonce*."""
    return hashlib.sha256(f"tx-{nonce}".encode()).digest()


def _accepts(abi_type: str, value) -> bool:
    if abi_type in ("string", "address"):
        return isinstance(value, str)
    if abi_type.startswith("uint"):
        return isinstance(value, int) and not isinstance(value, bool)
    return True


class _Account:
    def __init__(self, address: str) -> None:
        self.address = address

    def sign_transaction(self, tx: dict):
        return SimpleNamespace(raw_transaction=tx["_staged"])


class _AccountFactory:
    def __init__(self, chain: FakeChain) -> None:
        self._chain = chain

    def from_key(self, key: str) -> _Account:
        self._chain.loaded_key = key
        return _Account(SIGNER_ADDRESS)


class _ContractCall:
    def __init__(self, chain: FakeChain, name: str, args: tuple) -> None:
        self._chain = chain
        self._name = name
        self._args = args

    def call(self):
        self._chain.require_reachable()
        return getattr(self._chain, f"view_{self._name}")(*self._args)

    def build_transaction(self, params: dict) -> dict:
        self._chain.require_reachable()
        reason = getattr(self._chain, f"check_{self._name}", lambda *_: None)(*self._args)
        if reason:
            msg = f"execution reverted: {reason}"
            raise ContractLogicError(msg)
        staged = self._chain.stage(self._name, self._args)
        return {**params, "_staged": staged}


class _Functions:
    def __init__(self, chain: FakeChain) -> None:
        self._chain = chain

    def __getattr__(self, name: str):
        def build(*args):
            self._chain.match_abi(name, args)
            return _ContractCall(self._chain, name, args)

        return build


class _EventType:
    def __init__(self, name: str) -> None:
        self._name = name

    def process_receipt(self, receipt: dict, errors=None):  # noqa: ARG002
        return [e for e in receipt.get("_events", []) if e["event"] == self._name]


class _Events:
    def __getattr__(self, name: str):
        return lambda: _EventType(name)


class _Contract:
    def __init__(self, chain: FakeChain, address: str) -> None:
        self.address = address
        self.functions = _Functions(chain)
        self.events = _Events()


class _Eth:
    def __init__(self, chain: FakeChain) -> None:
        self._chain = chain
        self.account = _AccountFactory(chain)

    @property
    def block_number(self) -> int:
        self._chain.require_reachable()
        return self._chain.block

    def contract(self, address: str, abi: list) -> _Contract:
        self._chain.contract_abi = abi
        return _Contract(self._chain, address)

    def get_transaction_count(self, address: str, block_identifier: str) -> int:  # noqa: ARG002
        return self._chain.nonce

    def send_raw_transaction(self, raw: int) -> bytes:
        self._chain.require_reachable()
        return self._chain.execute(raw)

    def wait_for_transaction_receipt(self, tx_hash: bytes, timeout: float) -> dict:  # noqa: ARG002
        return self._chain.receipts[tx_hash]


class FakeChain:
    """A single contract deployment with its ledger state."""

    def __init__(self, *, block: int = 100, reachable: bool = True) -> None:
        self.block = block
        self.reachable = reachable
        self.nonce = 0
        self.clock = 1_700_000_000
        self.certificates: dict[int, dict] = {}
        self.by_hash: dict[str, int] = {}
        self.by_student: dict[str, list[int]] = {}
        self.issuers: set[str] = {SIGNER_ADDRESS.lower()}
        self.receipts: dict[bytes, dict] = {}
        self.revert_receipts = False
        self.emit_events = True
        self.loaded_key: str | None = None
        self.contract_abi: list | None = None
        self._staged: dict[int, tuple[str, tuple]] = {}
        self._ids = itertools.count(1)
        self.eth = _Eth(self)

    @property
    def web3(self):
        """Object accepted as ``LedgerClient(..., web3=...)``."""
        return SimpleNamespace(eth=self.eth)

    def require_reachable(self) -> None:
        if not self.reachable:
            msg = "connection refused"
            raise ConnectionError(msg)

    def match_abi(self, name: str, args: tuple) -> None:
        """Reject *args* the way web3 does when no ABI entry accepts them."""
        if self.contract_abi is None:
            return
        for entry in self.contract_abi:
            if entry.get("type") != "function" or entry.get("name") != name:
                continue
            inputs = [i["type"] for i in entry.get("inputs", [])]
            if len(inputs) == len(args) and all(map(_accepts, inputs, args)):
                return
        msg = f"ABI Not Found! No element named {name} accepts {len(args)} argument(s) {args!r}"
        raise MismatchedABI(msg)

    # -- transactions -------------------------------------------------------

    def stage(self, name: str, args: tuple) -> int:
        key = len(self._staged) + 1
        self._staged[key] = (name, args)
        return key

    def execute(self, staged: int) -> bytes:
        name, args = self._staged.pop(staged)
        self.nonce += 1
        self.block += 1
        self.clock += 60
        tx_hash = tx_hash_for(self.nonce)
        events = [] if self.revert_receipts else getattr(self, f"apply_{name}")(*args)
        self.receipts[tx_hash] = {
            "status": 0 if self.revert_receipts else 1,
            "transactionHash": tx_hash,
            "blockNumber": self.block,
            "_events": events if self.emit_events else [],
        }
        return tx_hash

    # -- contract rules -----------------------------------------------------

    def check_issueCertificate(self, student, name, email, ctype, ipfs_hash):  # noqa: N802, ARG002, PLR0913
        if student.lower() == ZERO_ADDRESS:
            return "Invalid student address"
        if ipfs_hash and ipfs_hash in self.by_hash:
            return "Certificate already exists"
        return None

    def apply_issueCertificate(self, student, name, email, ctype, ipfs_hash):  # noqa: N802, PLR0913
        cid = next(self._ids)
        self.certificates[cid] = {
            "student": student,
            "name": name,
            "email": email,
            "type": ctype,
            "hash": ipfs_hash,
            "issued_at": self.clock,
            "revoked": False,
        }
        if ipfs_hash:
            self.by_hash[ipfs_hash] = cid
        self.by_student.setdefault(student.lower(), []).append(cid)
        return [{"event": "CertificateIssued", "args": {"certificateId": cid, "studentAddress": student}}]

    def check_revokeCertificate(self, cid):  # noqa: N802
        if cid not in self.certificates:
            return "Certificate does not exist"
        if self.certificates[cid]["revoked"]:
            return "Certificate already revoked"
        return None

    def apply_revokeCertificate(self, cid):  # noqa: N802
        self.certificates[cid]["revoked"] = True
        return [{"event": "CertificateRevoked", "args": {"certificateId": cid}}]

    def apply_addIssuer(self, address):  # noqa: N802
        self.issuers.add(address.lower())
        return [{"event": "IssuerAdded", "args": {"issuer": address}}]

    def apply_removeIssuer(self, address):  # noqa: N802
        self.issuers.discard(address.lower())
        return [{"event": "IssuerRemoved", "args": {"issuer": address}}]

    # -- views --------------------------------------------------------------

    def view_verifyCertificate(self, cid):  # noqa: N802
        cert = self.certificates.get(cid)
        return cert is not None and not cert["revoked"]

    def view_getCertificate(self, cid):  # noqa: N802
        cert = self.certificates.get(cid)
        if cert is None:
            return (0, ZERO_ADDRESS, "", "", "", "", 0, ZERO_ADDRESS, False)
        return (
            cid,
            cert["student"],
            cert["name"],
            cert["email"],
            cert["type"],
            cert["hash"],
            cert["issued_at"],
            SIGNER_ADDRESS,
            cert["revoked"],
        )

    def view_getStudentCertificates(self, student):  # noqa: N802
        return list(self.by_student.get(student.lower(), []))

    def view_getTotalCertificates(self):  # noqa: N802
        return len(self.certificates)

    def view_verifyCertificateByHash(self, ipfs_hash):  # noqa: N802
        cid = self.by_hash.get(ipfs_hash, 0)
        if not cid:
            return (False, 0)
        return (not self.certificates[cid]["revoked"], cid)

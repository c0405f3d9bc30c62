"""schoolcert -- blockchain-anchored student certificates.

Issues tamper-evident certificates by writing a record to the
``StudentCertificate`` smart contract and pinning the certificate
metadata to IPFS, and verifies them by reading both back.
"""

__version__ = "1.0.0"

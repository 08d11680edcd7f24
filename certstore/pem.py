"""PEM bundle helpers."""

import re
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization

PEM_PATTERN = re.compile(
    rb"-----BEGIN CERTIFICATE-----\s+.+?\s+-----END CERTIFICATE-----",
    re.DOTALL,
)


def parse_pem_chain(pem_data: bytes) -> list[bytes]:
    """Split a PEM bundle into individual certificate blocks.

    Private keys and other non-certificate blocks are skipped.
    """
    return PEM_PATTERN.findall(pem_data)


def is_ca(cert: x509.Certificate) -> bool:
    try:
        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        return False
    return constraints.value.ca


def retrieve_server_certificate(pem_data: bytes) -> bytes:
    """Return the first non-CA certificate of a PEM bundle, PEM encoded.

    Returns empty bytes when the bundle holds no end-entity certificate.

    Raises:
        ValueError: If a certificate block cannot be parsed.
    """
    for block in parse_pem_chain(pem_data):
        cert = x509.load_pem_x509_certificate(block)
        if not is_ca(cert):
            return cert.public_bytes(serialization.Encoding.PEM)
    return b""


def split_full_chain(pem_data: bytes) -> tuple[bytes, bytes]:
    """Split a full chain into (server certificate, issuer chain)."""
    blocks = parse_pem_chain(pem_data)
    if not blocks:
        return b"", b""
    leaf, issuers = blocks[0], blocks[1:]
    return leaf + b"\n", b"".join(block + b"\n" for block in issuers)


def fingerprint(pem_data: bytes, algorithm: str = "sha256") -> Optional[str]:
    """Colon-separated hex fingerprint of the first certificate in ``pem_data``."""
    blocks = parse_pem_chain(pem_data)
    if not blocks:
        return None
    hash_cls = {"sha256": hashes.SHA256, "sha1": hashes.SHA1}[algorithm]
    digest = x509.load_pem_x509_certificate(blocks[0]).fingerprint(hash_cls()).hex()
    return ":".join(digest[i:i+2].upper() for i in range(0, len(digest), 2))


def not_after(pem_data: bytes):
    """Expiry of the first certificate in ``pem_data`` as an aware UTC datetime."""
    blocks = parse_pem_chain(pem_data)
    if not blocks:
        return None
    return x509.load_pem_x509_certificate(blocks[0]).not_valid_after_utc

"""DNS-01 challenge record naming helpers."""

import base64
import hashlib

ACME_CHALLENGE_LABEL = "_acme-challenge"


def to_fqdn(name: str) -> str:
    """Return ``name`` with a trailing dot."""
    return name if name.endswith(".") else f"{name}."


def un_fqdn(name: str) -> str:
    """Return ``name`` without its trailing dot."""
    return name[:-1] if name.endswith(".") else name


def challenge_record(domain: str, key_authorization: str) -> tuple[str, str]:
    """Compute the TXT record name and value for a DNS-01 challenge.

    Args:
        domain: The domain being validated. A leading ``*.`` is ignored.
        key_authorization: The ACME key authorization for the challenge.

    Returns:
        (fqdn, value) where fqdn is ``_acme-challenge.<domain>.`` and value
        is the unpadded base64url SHA-256 digest of the key authorization.
    """
    digest = hashlib.sha256(key_authorization.encode("utf-8")).digest()
    value = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    name = un_fqdn(domain.strip().lower())
    if name.startswith("*."):
        name = name[2:]
    return to_fqdn(f"{ACME_CHALLENGE_LABEL}.{name}"), value


def label_suffixes(fqdn: str) -> list[str]:
    """List every parent name of ``fqdn``, most specific first.

    ``_acme-challenge.www.example.com.`` gives
    ``["_acme-challenge.www.example.com", "www.example.com", "example.com", "com"]``.
    """
    labels = un_fqdn(fqdn.lower()).split(".")
    return [".".join(labels[i:]) for i in range(len(labels)) if labels[i]]


def relative_name(fqdn: str, zone_name: str) -> str:
    """Return the record name of ``fqdn`` relative to ``zone_name``.

    The zone apex is returned as ``@``.

    Raises:
        ValueError: If ``fqdn`` does not belong to ``zone_name``.
    """
    name = un_fqdn(fqdn.lower())
    zone = un_fqdn(zone_name.lower())
    if name == zone:
        return "@"
    if not name.endswith("." + zone):
        raise ValueError(f"{fqdn} is not inside zone {zone_name}")
    return name[: -(len(zone) + 1)]

"""Certificate issuance over ACME using DNS-01 challenges."""

from issuance.acme_issuer import AcmeIssuer, IssuanceError, generate_private_key

__all__ = ["AcmeIssuer", "IssuanceError", "generate_private_key"]

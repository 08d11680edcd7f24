"""
Certificate Store Module.

Looks up, describes and imports certificates in Azure Key Vault and
evaluates how close a stored certificate is to renewal.
"""

from certstore.keyvault import (
    CertificateDetail,
    CertificateResource,
    CertificateStoreError,
    KeyVaultCertificateStore,
    StoredCertificate,
)
from certstore.status import RenewalStatus, check_expiration

__all__ = [
    "CertificateDetail", "CertificateResource", "CertificateStoreError",
    "KeyVaultCertificateStore", "StoredCertificate", "RenewalStatus",
    "check_expiration",
]

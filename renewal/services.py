"""Provider client construction from settings.

Clients are built once per process and passed explicitly into the
renewal run.
"""

import logging
from functools import lru_cache

from config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def get_credential():
    """Return an Azure credential using service principal or default chain."""
    if settings.AZURE_TENANT_ID and settings.AZURE_CLIENT_ID and settings.AZURE_CLIENT_SECRET:
        from azure.identity import ClientSecretCredential
        return ClientSecretCredential(
            tenant_id=settings.AZURE_TENANT_ID,
            client_id=settings.AZURE_CLIENT_ID,
            client_secret=settings.AZURE_CLIENT_SECRET,
        )
    from azure.identity import DefaultAzureCredential
    return DefaultAzureCredential()


@lru_cache(maxsize=None)
def get_dns_provider():
    from dnsprovider.azure_dns import AzureDnsProvider, DnsProviderConfig
    config = DnsProviderConfig(
        zone_id=settings.AZURE_DNS_ZONE_ID,
        zone_name=settings.AZURE_DNS_ZONE_NAME,
        resource_group=settings.AZURE_RESOURCE_GROUP,
        ttl=settings.DNS_TTL,
        propagation_timeout=settings.DNS_PROPAGATION_TIMEOUT,
        polling_interval=settings.DNS_POLLING_INTERVAL,
    )
    return AzureDnsProvider(
        get_credential(),
        subscription_id=settings.AZURE_SUBSCRIPTION_ID,
        config=config,
    )


@lru_cache(maxsize=None)
def get_certificate_store():
    from certstore.keyvault import KeyVaultCertificateStore
    return KeyVaultCertificateStore(settings.KEY_VAULT_URL, credential=get_credential())


def get_issuer(staging: bool = False):
    from issuance.acme_issuer import AcmeIssuer
    directory_url = settings.LE_STAGING_DIRECTORY_URL if staging else settings.ACME_DIRECTORY_URL
    logger.debug("Using ACME directory %s", directory_url)
    return AcmeIssuer(directory_url, key_size=settings.ACME_KEY_SIZE)

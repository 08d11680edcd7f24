"""Azure Key Vault certificate store."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from azure.core.exceptions import HttpResponseError
from azure.keyvault.certificates import (
    CertificateClient,
    CertificateContentType,
    CertificatePolicy,
    KeyType,
    WellKnownIssuerNames,
)

from certstore.pem import fingerprint, retrieve_server_certificate

logger = logging.getLogger(__name__)

DOMAINS_TAG = "domains"


class CertificateStoreError(Exception):
    """A certificate store operation failed."""


@dataclass
class CertificateResource:
    """A freshly issued certificate, ready to import."""

    domain: str
    certificate: bytes  # full chain, leaf first
    private_key: bytes
    issuer_certificate: bytes = b""
    csr: bytes = b""
    domains: list[str] = field(default_factory=list)


@dataclass
class StoredCertificate:
    """A certificate entry as listed by the store."""

    name: str
    domains: list[str] = field(default_factory=list)
    expires_on: Optional[datetime] = None
    enabled: bool = True


@dataclass
class CertificateDetail:
    """A described certificate entry."""

    name: str
    expires_on: datetime
    version: str = ""
    not_before: Optional[datetime] = None
    certificate_id: str = ""


def certificate_name_for(domain: str) -> str:
    """Derive a Key Vault certificate name from a domain.

    Key Vault names only allow letters, digits and dashes:
    ``www.example.com`` becomes ``www-example-com`` and
    ``*.example.com`` becomes ``wildcard-example-com``.
    """
    name = domain.strip().lower().rstrip(".")
    if name.startswith("*."):
        name = "wildcard." + name[2:]
    return re.sub(r"[^a-z0-9-]+", "-", name).strip("-")


class KeyVaultCertificateStore:
    """List, describe and import certificates in an Azure Key Vault."""

    def __init__(self, vault_url: str = "", credential=None, client: Optional[CertificateClient] = None):
        if client is None:
            if not vault_url:
                raise CertificateStoreError("No Key Vault URL configured")
            client = CertificateClient(vault_url=vault_url, credential=credential)
        self.vault_url = vault_url
        self.client = client

    def list_certificates(self) -> list[StoredCertificate]:
        """List every certificate entry in the vault."""
        try:
            return [
                StoredCertificate(
                    name=props.name,
                    domains=self._tagged_domains(props.tags),
                    expires_on=props.expires_on,
                    enabled=props.enabled is not False,
                )
                for props in self.client.list_properties_of_certificates()
            ]
        except HttpResponseError as exc:
            raise CertificateStoreError(f"keyvault: failed to list certificates: {exc}") from exc

    def find_certificate(self, domains: list[str]) -> Optional[StoredCertificate]:
        """Return the entry covering any of ``domains``, or None.

        An entry matches when its domains tag lists one of the domains, or
        when its name is the derived name of one of them.
        """
        wanted = {d.strip().lower() for d in domains}
        wanted_names = {certificate_name_for(d) for d in domains}
        for cert in self.list_certificates():
            if wanted & {d.lower() for d in cert.domains} or cert.name in wanted_names:
                return cert
        return None

    def get_certificate_details(self, name: str) -> CertificateDetail:
        """Describe the current version of the named certificate."""
        try:
            cert = self.client.get_certificate(name)
        except HttpResponseError as exc:
            raise CertificateStoreError(f"keyvault: failed to get certificate {name}: {exc}") from exc

        if cert.properties.expires_on is None:
            raise CertificateStoreError(f"keyvault: certificate {name} has no expiry date")

        return CertificateDetail(
            name=cert.name,
            expires_on=cert.properties.expires_on,
            version=cert.properties.version or "",
            not_before=cert.properties.not_before,
            certificate_id=cert.id or "",
        )

    def import_certificate(self, name: Optional[str], resource: CertificateResource) -> str:
        """Upload ``resource`` under ``name``.

        With no name, a new entry named after the resource's domain is
        created. Importing under an existing name adds a new current version
        to that entry, replacing the certificate in place.

        Returns:
            The name of the certificate entry.
        """
        try:
            server_certificate = retrieve_server_certificate(resource.certificate)
        except ValueError as exc:
            raise CertificateStoreError(f"keyvault: unable to parse certificate: {exc}") from exc
        if not server_certificate:
            raise CertificateStoreError("keyvault: unable to retrieve server certificate")

        domains = resource.domains or [resource.domain]
        name = name or certificate_name_for(resource.domain)
        bundle = b"".join(
            part if part.endswith(b"\n") else part + b"\n"
            for part in (resource.private_key, server_certificate, resource.issuer_certificate)
            if part
        )
        policy = CertificatePolicy(
            issuer_name=WellKnownIssuerNames.unknown,
            subject=f"CN={domains[0]}",
            san_dns_names=domains,
            content_type=CertificateContentType.pem,
            key_type=KeyType.rsa,
            exportable=True,
            reuse_key=False,
        )

        try:
            imported = self.client.import_certificate(
                name,
                bundle,
                policy=policy,
                tags={DOMAINS_TAG: ",".join(domains)},
            )
        except HttpResponseError as exc:
            raise CertificateStoreError(f"keyvault: failed to import certificate {name}: {exc}") from exc

        logger.info(
            "Imported certificate %s version %s (%s)",
            name, imported.properties.version, fingerprint(server_certificate),
        )
        return name

    @staticmethod
    def _tagged_domains(tags: Optional[dict]) -> list[str]:
        raw = (tags or {}).get(DOMAINS_TAG, "")
        return [d.strip() for d in raw.split(",") if d.strip()]

"""Certificate renewal run: look up, evaluate, obtain and import."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from azure.core.exceptions import AzureError

from certstore.keyvault import CertificateResource, CertificateStoreError, KeyVaultCertificateStore
from certstore.status import RenewalStatus, check_expiration
from dnsprovider.errors import DnsProviderError
from issuance.acme_issuer import AcmeIssuer, ChallengeProvider, IssuanceError

logger = logging.getLogger(__name__)

# Run outcomes
ISSUED = "issued"
RENEWED = "renewed"
SKIPPED = "skipped"


class RenewalError(Exception):
    """A renewal run failed at ``stage``."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage
        self.message = message

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


@dataclass
class RenewalEvent:
    """Trigger input for a renewal run."""

    domain_names: list[str]
    email: str
    renew_threshold: int = 30

    @classmethod
    def from_dict(cls, data: dict) -> "RenewalEvent":
        """Build an event from its JSON form.

        The domain list is read from ``domainName`` or ``domainNames``.
        """
        domains = data.get("domainName") or data.get("domainNames") or []
        if isinstance(domains, str):
            domains = [domains]
        elif not isinstance(domains, list):
            raise RenewalError(
                "validate", f"domainName must be a string or a list, got {domains!r}"
            )
        threshold = data.get("renewThreshold", 30)
        try:
            threshold = int(threshold)
        except (TypeError, ValueError):
            raise RenewalError(
                "validate", f"renewThreshold must be an integer, got {threshold!r}"
            ) from None
        return cls(
            domain_names=[str(d).strip() for d in domains if str(d).strip()],
            email=str(data.get("email", "") or "").strip(),
            renew_threshold=threshold,
        )

    def validate(self) -> None:
        if not self.domain_names:
            raise RenewalError("validate", "at least one domain name is required")
        if not self.email:
            raise RenewalError("validate", "a contact email is required")
        if self.renew_threshold < 0:
            raise RenewalError("validate", "renewThreshold must not be negative")


@dataclass
class RenewalOutcome:
    """What a renewal run did."""

    action: str  # issued, renewed or skipped
    certificate_name: str
    status: Optional[RenewalStatus] = None
    domains: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "certificate_name": self.certificate_name,
            "domains": self.domains,
            "status": self.status.to_dict() if self.status else None,
        }


def check_status(
    event: RenewalEvent, store: KeyVaultCertificateStore, now: Optional[datetime] = None,
) -> tuple[Optional[str], Optional[RenewalStatus]]:
    """Return (certificate name, renewal status) for the stored certificate.

    Both are None when no certificate covers the event's domains.
    """
    try:
        summary = store.find_certificate(event.domain_names)
    except (CertificateStoreError, AzureError) as exc:
        raise RenewalError("list", f"failed listing certificates: {exc}") from exc

    if summary is None:
        return None, None

    try:
        details = store.get_certificate_details(summary.name)
    except (CertificateStoreError, AzureError) as exc:
        raise RenewalError("describe", f"failed to get certificate details: {exc}") from exc

    return summary.name, check_expiration(event.renew_threshold, details.expires_on, now=now)


def run(
    event: RenewalEvent,
    store: KeyVaultCertificateStore,
    dns_provider: ChallengeProvider,
    issuer: AcmeIssuer,
    now: Optional[datetime] = None,
) -> RenewalOutcome:
    """Issue or renew the certificate for ``event`` when needed.

    Any failing stage aborts the run with a RenewalError; nothing is rolled
    back.
    """
    logger.info(
        "Starting renewal run: domains=%s threshold=%d",
        event.domain_names, event.renew_threshold,
    )
    event.validate()

    name, status = check_status(event, store, now=now)

    if name is None:
        logger.info("No certificate found for domain(s) %s", event.domain_names)
        logger.info("Requesting new certificate")
        resource = _obtain(event, dns_provider, issuer, "failed to request new certificate")
        logger.info("Successfully requested new certificate")
        name = _import(store, None, resource)
        return RenewalOutcome(ISSUED, name, None, list(event.domain_names))

    logger.info(
        "Certificate %s found for domain(s) %s: expires %s, %d day(s) remaining, renewal due=%s",
        name, event.domain_names, status.not_after.isoformat(),
        status.days_remaining, status.renewal_due,
    )
    if not status.renewal_due:
        logger.info("Certificate still valid, no action required")
        return RenewalOutcome(SKIPPED, name, status, list(event.domain_names))

    logger.info("Renewing certificate %s", name)
    resource = _obtain(event, dns_provider, issuer, "failed to renew certificate")
    logger.info("Successfully renewed certificate")
    _import(store, name, resource)
    return RenewalOutcome(RENEWED, name, status, list(event.domain_names))


def _obtain(
    event: RenewalEvent, dns_provider: ChallengeProvider, issuer: AcmeIssuer, message: str,
) -> CertificateResource:
    try:
        return issuer.obtain(dns_provider, event.domain_names, event.email)
    except (IssuanceError, DnsProviderError, AzureError) as exc:
        raise RenewalError("obtain", f"{message}: {exc}") from exc


def _import(store: KeyVaultCertificateStore, name: Optional[str], resource: CertificateResource) -> str:
    logger.info("Importing certificate into Key Vault")
    try:
        name = store.import_certificate(name, resource)
    except (CertificateStoreError, AzureError) as exc:
        raise RenewalError("import", f"failed to import certificate: {exc}") from exc
    logger.info("Successfully imported certificate %s", name)
    return name

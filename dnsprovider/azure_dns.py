"""Azure DNS provider for ACME DNS-01 challenges."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.mgmt.dns import DnsManagementClient
from azure.mgmt.dns.models import RecordSet, TxtRecord
from azure.mgmt.subscription import SubscriptionClient

from dnsprovider.errors import DnsProviderError, PropagationTimeoutError
from dnsprovider.models import DELETE, INSYNC, PENDING, UPSERT, DnsChange, DnsZone
from dnsprovider.propagation import NameserverChecker, wait_for
from dnsprovider.records import challenge_record, label_suffixes, relative_name, un_fqdn

logger = logging.getLogger(__name__)

CHANGE_COMMENT = "ACME DNS challenge"


@dataclass
class DnsProviderConfig:
    """Tunables for the Azure DNS provider.

    ``zone_id`` (a full Azure resource ID) or ``zone_name`` together with
    ``resource_group`` pin the zone and skip auto-discovery.
    """

    zone_id: str = ""
    zone_name: str = ""
    resource_group: str = ""
    ttl: int = 10
    propagation_timeout: float = 120.0
    polling_interval: float = 4.0


class AzureDnsProvider:
    """Publish and remove ACME challenge TXT records in Azure DNS."""

    def __init__(
        self,
        credential,
        subscription_id: str = "",
        config: Optional[DnsProviderConfig] = None,
        checker: Optional[NameserverChecker] = None,
        client_factory: Optional[Callable[[str], DnsManagementClient]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.credential = credential
        self.subscription_id = subscription_id
        self.config = config or DnsProviderConfig()
        self.checker = checker or NameserverChecker()
        self._client_factory = client_factory or (
            lambda sub_id: DnsManagementClient(self.credential, sub_id)
        )
        self._clients: dict[str, DnsManagementClient] = {}
        self._clock = clock
        self._sleep = sleep

    # ── Challenge operations ───────────────────────────────────────

    def present(self, domain: str, token: str, key_authorization: str) -> None:
        """Create the challenge TXT record and wait until it is served."""
        fqdn, value = challenge_record(domain, key_authorization)

        try:
            zone = self.get_zone(fqdn)
        except DnsProviderError as exc:
            raise DnsProviderError(f"azuredns: failed to determine DNS zone: {exc}") from exc

        values = self.get_existing_values(zone, fqdn)
        if value in values:
            logger.info("Challenge value for %s already present", fqdn)
        else:
            values.append(value)

        change = self.change_record(UPSERT, zone, fqdn, values)
        self.wait_for_change(change)

    def cleanup(self, domain: str, token: str, key_authorization: str) -> None:
        """Delete the challenge TXT record set and wait until it is gone."""
        fqdn, _ = challenge_record(domain, key_authorization)

        try:
            zone = self.get_zone(fqdn)
        except DnsProviderError as exc:
            raise DnsProviderError(f"azuredns: failed to determine DNS zone: {exc}") from exc

        values = self.get_existing_values(zone, fqdn)
        if not values:
            logger.info("No TXT record at %s, nothing to clean up", fqdn)
            return

        change = self.change_record(DELETE, zone, fqdn, values)
        self.wait_for_change(change)

    # ── Zone resolution ────────────────────────────────────────────

    def get_zone(self, fqdn: str) -> DnsZone:
        """Find the zone that owns ``fqdn``.

        A configured zone always wins. Otherwise the fqdn's parent names are
        tried from most to least specific against the public zones listed
        by the provider.
        """
        if self.config.zone_id:
            sub_id, rg, name = self._parse_zone_id(self.config.zone_id)
            return self._get_configured_zone(sub_id or self.subscription_id, rg, name)

        if self.config.zone_name:
            rg = self.config.resource_group
            if not rg:
                raise DnsProviderError(
                    f"no resource group configured for zone {self.config.zone_name}"
                )
            return self._get_configured_zone(self.subscription_id, rg, self.config.zone_name)

        zones = {
            un_fqdn(z.name.lower()): z for z in self.list_zones() if not z.is_private
        }
        for candidate in label_suffixes(fqdn):
            if candidate in zones:
                logger.debug("Resolved zone %s for %s", zones[candidate].name, fqdn)
                return zones[candidate]

        raise DnsProviderError(f"zone not found for domain {fqdn}")

    def list_zones(self) -> list[DnsZone]:
        """List DNS zones across one or all subscriptions.

        If subscription_id is set, queries that single subscription.
        Otherwise, auto-discovers all subscriptions.
        """
        if self.subscription_id:
            subscription_ids = [self.subscription_id]
        else:
            subscription_ids = self.list_subscriptions()

        if not subscription_ids:
            logger.warning("No Azure subscriptions available")
            return []

        zones = []
        for sub_id in subscription_ids:
            client = self._client(sub_id)
            try:
                if self.config.resource_group:
                    listing = client.zones.list_by_resource_group(self.config.resource_group)
                else:
                    listing = client.zones.list()
                for zone in listing:
                    zones.append(self._to_zone(zone, sub_id))
            except HttpResponseError as exc:
                raise DnsProviderError(
                    f"failed to list zones in subscription {sub_id}: {exc}"
                ) from exc

        return zones

    def list_subscriptions(self) -> list[str]:
        """Auto-discover the subscriptions the credential can access."""
        try:
            client = SubscriptionClient(self.credential)
            return [sub.subscription_id for sub in client.subscriptions.list()]
        except HttpResponseError as exc:
            raise DnsProviderError(f"failed to list Azure subscriptions: {exc}") from exc

    # ── Record sets ────────────────────────────────────────────────

    def get_existing_values(self, zone: DnsZone, fqdn: str) -> list[str]:
        """Return the TXT values currently stored at ``fqdn``."""
        name = self._record_name(fqdn, zone)
        client = self._client(zone.subscription_id)
        try:
            record_set = client.record_sets.get(zone.resource_group, zone.name, name, "TXT")
        except ResourceNotFoundError:
            return []
        except HttpResponseError as exc:
            raise DnsProviderError(
                f"azuredns: failed to read record set {fqdn}: {exc}"
            ) from exc

        return ["".join(txt.value or []) for txt in record_set.txt_records or []]

    def change_record(self, action: str, zone: DnsZone, fqdn: str, values: list[str]) -> DnsChange:
        """Submit an UPSERT or DELETE of the full TXT record set at ``fqdn``."""
        name = self._record_name(fqdn, zone)
        client = self._client(zone.subscription_id)
        try:
            if action == UPSERT:
                client.record_sets.create_or_update(
                    zone.resource_group, zone.name, name, "TXT",
                    RecordSet(
                        ttl=self.config.ttl,
                        txt_records=[TxtRecord(value=[v]) for v in values],
                        metadata={"comment": CHANGE_COMMENT},
                    ),
                )
            elif action == DELETE:
                client.record_sets.delete(zone.resource_group, zone.name, name, "TXT")
            else:
                raise ValueError(f"Unknown change action: {action}")
        except HttpResponseError as exc:
            raise DnsProviderError(f"azuredns: failed to change record set: {exc}") from exc

        logger.info("Submitted %s of TXT %s (%d value(s))", action, fqdn, len(values))
        return DnsChange(
            action=action, zone=zone, fqdn=fqdn, values=list(values), ttl=self.config.ttl,
        )

    # ── Propagation ────────────────────────────────────────────────

    def get_change_status(self, change: DnsChange) -> str:
        """Return INSYNC once every name server serves the change."""
        return INSYNC if self.checker.is_synchronized(change) else PENDING

    def wait_for_change(self, change: DnsChange) -> None:
        """Block until ``change`` is INSYNC or the propagation timeout expires."""
        logger.info(
            "Waiting up to %ss for %s of %s to propagate",
            self.config.propagation_timeout, change.action, change.fqdn,
        )
        try:
            attempts = wait_for(
                "azuredns",
                self.config.propagation_timeout,
                self.config.polling_interval,
                lambda: self.get_change_status(change) == INSYNC,
                clock=self._clock,
                sleep=self._sleep,
            )
        except PropagationTimeoutError:
            raise
        except DnsProviderError as exc:
            raise DnsProviderError(f"azuredns: failed to query change status: {exc}") from exc
        logger.info("%s of %s is in sync after %d check(s)", change.action, change.fqdn, attempts)

    # ── Helpers ────────────────────────────────────────────────────

    def _client(self, subscription_id: str) -> DnsManagementClient:
        if subscription_id not in self._clients:
            self._clients[subscription_id] = self._client_factory(subscription_id)
        return self._clients[subscription_id]

    @staticmethod
    def _record_name(fqdn: str, zone: DnsZone) -> str:
        try:
            return relative_name(fqdn, zone.name)
        except ValueError as exc:
            raise DnsProviderError(f"azuredns: {exc}") from exc

    def _get_configured_zone(self, subscription_id: str, resource_group: str, name: str) -> DnsZone:
        if not subscription_id:
            raise DnsProviderError(f"no subscription configured for zone {name}")
        try:
            zone = self._client(subscription_id).zones.get(resource_group, name)
        except HttpResponseError as exc:
            raise DnsProviderError(f"failed to read configured zone {name}: {exc}") from exc
        return self._to_zone(zone, subscription_id, resource_group)

    def _to_zone(self, zone, subscription_id: str, resource_group: str = "") -> DnsZone:
        return DnsZone(
            name=zone.name,
            resource_group=(
                resource_group
                or self.config.resource_group
                or self._extract_resource_group(zone.id or "")
            ),
            subscription_id=subscription_id,
            name_servers=list(zone.name_servers or []),
            zone_type=zone.zone_type or "Public",
        )

    @classmethod
    def _parse_zone_id(cls, resource_id: str) -> tuple[str, str, str]:
        """Split a DNS zone resource ID into (subscription, resource group, zone)."""
        parts = resource_id.strip("/").split("/")
        lowered = [p.lower() for p in parts]
        if "dnszones" not in lowered or lowered.index("dnszones") + 1 >= len(parts):
            raise DnsProviderError(f"not a DNS zone resource ID: {resource_id}")
        name = parts[lowered.index("dnszones") + 1]
        sub_id = ""
        if "subscriptions" in lowered and lowered.index("subscriptions") + 1 < len(parts):
            sub_id = parts[lowered.index("subscriptions") + 1]
        return sub_id, cls._extract_resource_group(resource_id), name

    @staticmethod
    def _extract_resource_group(resource_id: str) -> str:
        """Extract resource group name from an Azure resource ID."""
        parts = resource_id.split("/")
        for i, part in enumerate(parts):
            if part.lower() == "resourcegroups" and i + 1 < len(parts):
                return parts[i + 1]
        return ""

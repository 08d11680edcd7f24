"""Data types shared by the DNS challenge provider."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

# Change actions
UPSERT = "UPSERT"
DELETE = "DELETE"

# Change status
INSYNC = "INSYNC"
PENDING = "PENDING"


@dataclass
class DnsZone:
    """A DNS zone hosted by the provider."""

    name: str
    resource_group: str
    subscription_id: str = ""
    name_servers: list[str] = field(default_factory=list)
    zone_type: str = "Public"

    @property
    def is_private(self) -> bool:
        return (self.zone_type or "").lower() == "private"


@dataclass
class DnsChange:
    """A submitted TXT record set change awaiting propagation."""

    action: str  # UPSERT or DELETE
    zone: DnsZone
    fqdn: str
    values: list[str]
    ttl: int
    record_type: str = "TXT"
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

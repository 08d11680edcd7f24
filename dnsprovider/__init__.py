"""
DNS-01 Challenge Provider Module.

Publishes and removes ACME challenge TXT records through Azure DNS and
waits for each change to reach the zone's name servers.
"""

from dnsprovider.azure_dns import AzureDnsProvider, DnsProviderConfig
from dnsprovider.errors import DnsProviderError, PropagationTimeoutError
from dnsprovider.models import DnsChange, DnsZone
from dnsprovider.propagation import NameserverChecker, wait_for
from dnsprovider.records import challenge_record

__all__ = [
    "AzureDnsProvider", "DnsProviderConfig", "DnsProviderError",
    "PropagationTimeoutError", "DnsChange", "DnsZone", "NameserverChecker",
    "wait_for", "challenge_record",
]

"""Propagation polling for DNS changes."""

import logging
import time
from typing import Callable, Optional

import dns.exception
import dns.message
import dns.query
import dns.rcode
import dns.rdatatype
import dns.resolver

from dnsprovider.errors import DnsProviderError, PropagationTimeoutError
from dnsprovider.models import UPSERT, DnsChange
from dnsprovider.records import un_fqdn

logger = logging.getLogger(__name__)


def wait_for(
    name: str,
    timeout: float,
    interval: float,
    check: Callable[[], bool],
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Call ``check`` every ``interval`` seconds until it returns True.

    Any exception raised by ``check`` aborts the wait and propagates.

    Args:
        name: Prefix for the timeout error message.
        timeout: Overall time limit in seconds.
        interval: Delay between two checks in seconds.
        check: Returns True once the awaited condition holds.
        clock: Monotonic time source.
        sleep: Blocking sleep function.

    Returns:
        The number of checks performed.

    Raises:
        PropagationTimeoutError: If the condition does not hold in time.
    """
    deadline = clock() + timeout
    attempts = 0
    while True:
        attempts += 1
        if check():
            return attempts
        remaining = deadline - clock()
        if remaining <= 0:
            raise PropagationTimeoutError(
                f"{name}: time limit exceeded after {attempts} attempt(s)"
            )
        logger.debug("%s: not ready after attempt %d, retrying", name, attempts)
        sleep(min(interval, remaining))


class NameserverChecker:
    """Check a DNS change against each authoritative name server of its zone."""

    DEFAULT_TIMEOUT = 5.0

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, resolver: Optional[dns.resolver.Resolver] = None):
        self.timeout = timeout
        self._resolver = resolver
        self._addresses: dict[str, list[str]] = {}

    @property
    def resolver(self) -> dns.resolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.resolver.Resolver()
        return self._resolver

    def is_synchronized(self, change: DnsChange) -> bool:
        """Return True when every name server serves the state of ``change``.

        An UPSERT is synchronized once each server returns all of the change's
        values; a DELETE once no server returns any of them.

        Raises:
            DnsProviderError: On a DNS transport failure.
        """
        expected = set(change.values)
        for server in self._name_servers(change):
            for address in self._addresses_for(server):
                found = self.query_txt(address, change.fqdn)
                if change.action == UPSERT:
                    if not expected <= found:
                        logger.debug("%s has not picked up %s yet", server, change.fqdn)
                        return False
                elif expected & found:
                    logger.debug("%s still serves %s", server, change.fqdn)
                    return False
        return True

    def query_txt(self, address: str, fqdn: str) -> set[str]:
        """Return the TXT values a single server holds for ``fqdn``."""
        query = dns.message.make_query(fqdn, dns.rdatatype.TXT)
        try:
            response, _ = dns.query.udp_with_fallback(query, address, timeout=self.timeout)
        except (dns.exception.DNSException, OSError) as exc:
            raise DnsProviderError(
                f"failed to query {address} for {fqdn}: {exc}"
            ) from exc

        rcode = response.rcode()
        if rcode == dns.rcode.NXDOMAIN:
            return set()
        if rcode != dns.rcode.NOERROR:
            raise DnsProviderError(
                f"{address} answered {dns.rcode.to_text(rcode)} for {fqdn}"
            )

        values = set()
        for rrset in response.answer:
            if rrset.rdtype != dns.rdatatype.TXT:
                continue
            for rdata in rrset:
                values.add(b"".join(rdata.strings).decode("utf-8"))
        return values

    def _name_servers(self, change: DnsChange) -> list[str]:
        if change.zone.name_servers:
            return change.zone.name_servers
        try:
            answer = self.resolver.resolve(change.zone.name, "NS", lifetime=self.timeout)
        except dns.exception.DNSException as exc:
            raise DnsProviderError(
                f"failed to look up name servers of {change.zone.name}: {exc}"
            ) from exc
        return [str(rdata.target) for rdata in answer]

    def _addresses_for(self, server: str) -> list[str]:
        host = un_fqdn(server).lower()
        if host not in self._addresses:
            try:
                answer = self.resolver.resolve(host, "A", lifetime=self.timeout)
            except dns.exception.DNSException as exc:
                raise DnsProviderError(
                    f"failed to resolve name server {host}: {exc}"
                ) from exc
            self._addresses[host] = [rdata.address for rdata in answer]
        return self._addresses[host]

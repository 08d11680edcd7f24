"""Exceptions raised by the DNS challenge provider."""


class DnsProviderError(Exception):
    """A DNS zone, record or propagation operation failed."""


class PropagationTimeoutError(DnsProviderError):
    """A DNS change did not reach every name server before the deadline."""

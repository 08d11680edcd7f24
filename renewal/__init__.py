"""
Certificate Renewal Module.

Checks the stored certificate for a set of domains and issues or renews it
through ACME DNS-01 when it is missing or close to expiry.
"""

from renewal.runner import (
    RenewalError,
    RenewalEvent,
    RenewalOutcome,
    check_status,
    run,
)

__all__ = ["RenewalError", "RenewalEvent", "RenewalOutcome", "check_status", "run"]

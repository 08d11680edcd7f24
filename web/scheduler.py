"""Background scheduler for periodic certificate renewal runs."""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def init_scheduler(app):
    """Initialize and start the background scheduler."""
    from config.settings import (
        ACME_EMAIL,
        RENEWAL_CHECK_INTERVAL_HOURS,
        RENEWAL_DOMAINS,
        SCHEDULER_ENABLED,
    )

    if scheduler.running:
        return

    if not SCHEDULER_ENABLED:
        logger.info("Scheduler disabled")
        return

    if not RENEWAL_DOMAINS or not ACME_EMAIL:
        logger.info("RENEWAL_DOMAINS or ACME_EMAIL not set, scheduled renewal disabled")
        return

    scheduler.add_job(
        func=run_scheduled_renewal,
        trigger="interval",
        hours=RENEWAL_CHECK_INTERVAL_HOURS,
        id="certificate_renewal",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: renewal check for %s every %d hour(s)",
        ", ".join(RENEWAL_DOMAINS), RENEWAL_CHECK_INTERVAL_HOURS,
    )


def run_scheduled_renewal():
    """Run one renewal for the configured domains.

    Failures are logged; the next run starts over from scratch.
    """
    logger.info("Running scheduled renewal check...")

    from config.settings import ACME_EMAIL, RENEW_THRESHOLD_DAYS, RENEWAL_DOMAINS
    from certstore.keyvault import CertificateStoreError
    from renewal.runner import RenewalError, RenewalEvent, run
    from renewal.services import get_certificate_store, get_dns_provider, get_issuer

    event = RenewalEvent(
        domain_names=list(RENEWAL_DOMAINS),
        email=ACME_EMAIL,
        renew_threshold=RENEW_THRESHOLD_DAYS,
    )
    try:
        outcome = run(event, get_certificate_store(), get_dns_provider(), get_issuer())
    except (RenewalError, CertificateStoreError):
        logger.exception("Scheduled renewal failed")
        return None

    logger.info("Scheduled renewal complete: %s %s", outcome.action, outcome.certificate_name)
    return outcome

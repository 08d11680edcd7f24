#!/usr/bin/env python3
"""
Certificate Renewal Tool - Main Entry Point.

Usage:
    python main.py renew <domain> [domains...] --email <email> [--threshold N] [--staging]
    python main.py status <domain> [domains...] [--threshold N]
    python main.py dns present <domain> --key-auth <key-authorization> [--token T]
    python main.py dns cleanup <domain> --key-auth <key-authorization> [--token T]
    python main.py serve [--host H] [--port P]
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv
load_dotenv()  # Load .env file if present, before settings are read

from config.settings import ACME_EMAIL, LOG_FORMAT, LOG_LEVEL, RENEW_THRESHOLD_DAYS
from certstore.keyvault import CertificateStoreError
from dnsprovider.errors import DnsProviderError
from renewal.runner import RenewalError, RenewalEvent, check_status, run
from renewal.services import get_certificate_store, get_dns_provider, get_issuer

logger = logging.getLogger(__name__)

EXIT_RENEWAL_DUE = 1
EXIT_NOT_FOUND = 2


# ============================================================
# Renewal Commands
# ============================================================

def cmd_renew(args):
    """Issue or renew the certificate for the given domains."""
    event = RenewalEvent(
        domain_names=args.domains,
        email=args.email,
        renew_threshold=args.threshold,
    )
    outcome = run(
        event,
        get_certificate_store(),
        get_dns_provider(),
        get_issuer(staging=args.staging),
    )
    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2))
        return 0

    print(f"{outcome.action.upper():8s} {outcome.certificate_name}")
    if outcome.status:
        print(f"  Expiry:  {outcome.status.not_after.isoformat()}")
        print(f"  Days remaining: {outcome.status.days_remaining}")
    return 0


def cmd_status(args):
    """Show the renewal status of the stored certificate."""
    event = RenewalEvent(domain_names=args.domains, email="", renew_threshold=args.threshold)
    name, status = check_status(event, get_certificate_store())
    if name is None:
        print(f"No certificate found for {', '.join(args.domains)}")
        return EXIT_NOT_FOUND

    if args.json:
        print(json.dumps({"certificate_name": name, **status.to_dict()}, indent=2))
    else:
        tag = "RENEW" if status.renewal_due else "OK"
        print(f"[{tag:5s}] {name}")
        print(f"  Expiry:  {status.not_after.isoformat()}")
        print(f"  Days remaining: {status.days_remaining}")
        print(f"  Days until renewal: {status.days_until_renewal}")
    return EXIT_RENEWAL_DUE if status.renewal_due else 0


# ============================================================
# DNS Challenge Commands
# ============================================================

def cmd_dns_present(args):
    """Publish a DNS-01 challenge record by hand."""
    get_dns_provider().present(args.domain, args.token, args.key_auth)
    print(f"Challenge record for {args.domain} is in sync")
    return 0


def cmd_dns_cleanup(args):
    """Remove a DNS-01 challenge record by hand."""
    get_dns_provider().cleanup(args.domain, args.token, args.key_auth)
    print(f"Challenge record for {args.domain} removed")
    return 0


# ============================================================
# Server
# ============================================================

def cmd_serve(args):
    """Run the HTTP trigger and the renewal scheduler."""
    from web import create_app
    app = create_app()
    app.run(host=args.host, port=args.port)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description="Certificate Renewal Tool",
    )
    sub = parser.add_subparsers(dest="module")

    # renew
    rn = sub.add_parser("renew", help="Issue or renew a certificate when due")
    rn.add_argument("domains", nargs="+", help="Domain names for the certificate")
    rn.add_argument("--email", default=ACME_EMAIL, help="ACME account contact email")
    rn.add_argument(
        "--threshold", type=int, default=RENEW_THRESHOLD_DAYS,
        help="Renew when this many days or fewer remain",
    )
    rn.add_argument("--staging", action="store_true", help="Use the Let's Encrypt staging CA")
    rn.add_argument("--json", action="store_true", help="Output as JSON")
    rn.set_defaults(func=cmd_renew)

    # status
    st = sub.add_parser("status", help="Show renewal status of the stored certificate")
    st.add_argument("domains", nargs="+", help="Domain names to look up")
    st.add_argument("--threshold", type=int, default=RENEW_THRESHOLD_DAYS)
    st.add_argument("--json", action="store_true", help="Output as JSON")
    st.set_defaults(func=cmd_status)

    # dns
    dns_p = sub.add_parser("dns", help="Run a DNS-01 challenge operation")
    dns_sub = dns_p.add_subparsers(dest="dns_command")

    for name, func, help_text in (
        ("present", cmd_dns_present, "Create the challenge TXT record"),
        ("cleanup", cmd_dns_cleanup, "Delete the challenge TXT record"),
    ):
        p = dns_sub.add_parser(name, help=help_text)
        p.add_argument("domain", help="Domain being validated")
        p.add_argument("--key-auth", required=True, help="ACME key authorization")
        p.add_argument("--token", default="", help="ACME challenge token")
        p.set_defaults(func=func)

    # serve
    sv = sub.add_parser("serve", help="Run the HTTP trigger and scheduler")
    sv.add_argument("--host", default="0.0.0.0")
    sv.add_argument("--port", type=int, default=5000)
    sv.set_defaults(func=cmd_serve)

    return parser


def main(argv=None):
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.module:
        parser.print_help()
        return 1

    if not hasattr(args, "func"):
        parser.parse_args([args.module, "--help"])
        return 1

    try:
        return args.func(args)
    except RenewalError as exc:
        print(f"Error {exc}", file=sys.stderr)
        return 1
    except DnsProviderError as exc:
        print(f"Error [dns] {exc}", file=sys.stderr)
        return 1
    except CertificateStoreError as exc:
        print(f"Error [config] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

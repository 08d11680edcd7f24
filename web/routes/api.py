"""REST API v1: JSON endpoints for triggering and inspecting renewals."""

import logging
import secrets

from flask import Blueprint, current_app, jsonify, request

from certstore.keyvault import CertificateStoreError
from config.settings import RENEW_THRESHOLD_DAYS, RENEWAL_API_KEY
from renewal.runner import RenewalError, RenewalEvent, check_status, run
from renewal.services import get_certificate_store, get_dns_provider, get_issuer

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)


@bp.before_request
def api_auth():
    """Require the configured API key, if any, in the X-API-Key header."""
    expected = current_app.config.get("RENEWAL_API_KEY", RENEWAL_API_KEY)
    if not expected:
        return None

    api_key = request.headers.get("X-API-Key", "")
    if api_key and secrets.compare_digest(api_key, expected):
        return None

    return jsonify({"error": "Authentication required. Provide X-API-Key header."}), 401


def _error(message, status=400, stage=None):
    body = {"error": message}
    if stage:
        body["stage"] = stage
    return jsonify(body), status


# ── Renewals ─────────────────────────────────────────────────────────

@bp.route("/renewals", methods=["POST"])
def trigger_renewal():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Request body must be a JSON object")

    try:
        event = RenewalEvent.from_dict(data)
        event.validate()
    except RenewalError as exc:
        return _error(exc.message, 400, exc.stage)

    try:
        store = get_certificate_store()
    except CertificateStoreError as exc:
        return _error(str(exc), 500, "config")

    try:
        outcome = run(event, store, get_dns_provider(), get_issuer())
    except RenewalError as exc:
        logger.error("Renewal run failed: %s", exc)
        return _error(exc.message, 500, exc.stage)

    return jsonify(outcome.to_dict())


# ── Certificates ─────────────────────────────────────────────────────

@bp.route("/certificates/status")
def certificate_status():
    domains = [d for d in request.args.getlist("domain") if d.strip()]
    if not domains:
        return _error("At least one domain query parameter is required")
    try:
        threshold = int(request.args.get("threshold", RENEW_THRESHOLD_DAYS))
    except ValueError:
        return _error("threshold must be an integer")

    event = RenewalEvent(domain_names=domains, email="", renew_threshold=threshold)
    try:
        store = get_certificate_store()
    except CertificateStoreError as exc:
        return _error(str(exc), 500, "config")

    try:
        name, status = check_status(event, store)
    except RenewalError as exc:
        return _error(exc.message, 500, exc.stage)

    if name is None:
        return _error("No certificate found", 404)
    return jsonify({"certificate_name": name, "domains": domains, **status.to_dict()})

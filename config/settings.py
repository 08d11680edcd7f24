"""Project-wide settings and defaults."""

import os

# Let's Encrypt / ACME
LE_DIRECTORY_URL = "https://acme-v02.api.letsencrypt.org/directory"
LE_STAGING_DIRECTORY_URL = "https://acme-staging-v02.api.letsencrypt.org/directory"
ACME_EMAIL = os.environ.get("ACME_EMAIL", "")
ACME_STAGING = os.environ.get("ACME_STAGING", "false").lower() == "true"
ACME_DIRECTORY_URL = os.environ.get(
    "ACME_DIRECTORY_URL",
    LE_STAGING_DIRECTORY_URL if ACME_STAGING else LE_DIRECTORY_URL,
)
ACME_KEY_SIZE = int(os.environ.get("ACME_KEY_SIZE", "2048"))

# Azure credentials
AZURE_SUBSCRIPTION_ID = os.environ.get("AZURE_SUBSCRIPTION_ID", "")
AZURE_RESOURCE_GROUP = os.environ.get("AZURE_RESOURCE_GROUP", "")
AZURE_TENANT_ID = os.environ.get("AZURE_TENANT_ID", "")
AZURE_CLIENT_ID = os.environ.get("AZURE_CLIENT_ID", "")
AZURE_CLIENT_SECRET = os.environ.get("AZURE_CLIENT_SECRET", "")

# Azure DNS challenge provider
AZURE_DNS_ZONE_ID = os.environ.get("AZURE_DNS_ZONE_ID", "")
AZURE_DNS_ZONE_NAME = os.environ.get("AZURE_DNS_ZONE_NAME", "")
DNS_TTL = int(os.environ.get("DNS_TTL", "10"))
DNS_PROPAGATION_TIMEOUT = float(os.environ.get("DNS_PROPAGATION_TIMEOUT", "120"))
DNS_POLLING_INTERVAL = float(os.environ.get("DNS_POLLING_INTERVAL", "4"))

# Azure Key Vault certificate store
KEY_VAULT_URL = os.environ.get("KEY_VAULT_URL", "")

# Renewal
RENEW_THRESHOLD_DAYS = int(os.environ.get("RENEW_THRESHOLD_DAYS", "30"))
RENEWAL_DOMAINS = [
    d.strip() for d in os.environ.get("RENEWAL_DOMAINS", "").split(",") if d.strip()
]

# Scheduler
SCHEDULER_ENABLED = os.environ.get("SCHEDULER_ENABLED", "true").lower() == "true"
RENEWAL_CHECK_INTERVAL_HOURS = int(os.environ.get("RENEWAL_CHECK_INTERVAL_HOURS", "12"))

# HTTP trigger
RENEWAL_API_KEY = os.environ.get("RENEWAL_API_KEY", "")

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

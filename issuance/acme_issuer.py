"""Let's Encrypt certificate issuance over ACME DNS-01."""

import logging
from datetime import datetime, timedelta
from typing import Protocol

import josepy as jose
from acme import challenges, client, crypto_util, messages
from acme import errors as acme_errors
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from certstore.keyvault import CertificateResource
from certstore.pem import split_full_chain

logger = logging.getLogger(__name__)

USER_AGENT = "certrenew/0.1.0"


class IssuanceError(Exception):
    """Obtaining a certificate from the ACME server failed."""


class ChallengeProvider(Protocol):
    """Anything able to publish and remove DNS-01 challenge records."""

    def present(self, domain: str, token: str, key_authorization: str) -> None: ...

    def cleanup(self, domain: str, token: str, key_authorization: str) -> None: ...


def generate_private_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    """Generate an RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)


class AcmeIssuer:
    """Request certificates from an ACME CA using a DNS-01 challenge provider."""

    def __init__(self, directory_url: str, key_size: int = 2048, finalize_timeout: int = 90):
        self.directory_url = directory_url
        self.key_size = key_size
        self.finalize_timeout = finalize_timeout

    def obtain(self, provider: ChallengeProvider, domains: list[str], email: str) -> CertificateResource:
        """Register a fresh account and obtain a certificate for ``domains``.

        Every DNS-01 challenge is presented through ``provider`` before any
        is answered, and cleaned up afterwards whatever the outcome.
        """
        try:
            account_key = jose.JWKRSA(key=generate_private_key(self.key_size))
        except ValueError as exc:
            raise IssuanceError(f"obtain: failed to generate private key: {exc}") from exc

        try:
            acme_client = self._new_client(account_key)
        except (acme_errors.Error, OSError) as exc:
            raise IssuanceError(f"obtain: failed to initialize client: {exc}") from exc

        try:
            registration = messages.NewRegistration.from_data(
                email=email or None, terms_of_service_agreed=True,
            )
            account = acme_client.new_account(registration)
        except (acme_errors.Error, OSError) as exc:
            raise IssuanceError(f"obtain: failed to register account: {exc}") from exc
        logger.info("Registered ACME account %s", account.uri)

        cert_key = generate_private_key(self.key_size)
        private_key_pem = cert_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        csr_pem = crypto_util.make_csr(private_key_pem, domains)

        try:
            order = acme_client.new_order(csr_pem)
        except (acme_errors.Error, OSError) as exc:
            raise IssuanceError(f"obtain: failed to create order: {exc}") from exc

        presented = []
        try:
            for challb, domain in self._dns_challenges(order):
                token = challb.chall.encode("token")
                key_authorization = challb.chall.key_authorization(account_key)
                logger.info("Presenting DNS-01 challenge for %s", domain)
                # a failed present may still have written the record
                presented.append((domain, token, key_authorization))
                provider.present(domain, token, key_authorization)

            for challb, _ in self._dns_challenges(order):
                acme_client.answer_challenge(challb, challb.chall.response(account_key))

            deadline = datetime.now() + timedelta(seconds=self.finalize_timeout)
            final_order = acme_client.poll_and_finalize(order, deadline=deadline)
        except (acme_errors.Error, OSError) as exc:
            raise IssuanceError(f"obtain: failed to obtain certificate: {exc}") from exc
        finally:
            self._cleanup(provider, presented)

        fullchain = final_order.fullchain_pem.encode("ascii")
        _, issuer_chain = split_full_chain(fullchain)
        logger.info("Obtained certificate for %s", ", ".join(domains))
        return CertificateResource(
            domain=domains[0],
            domains=list(domains),
            certificate=fullchain,
            private_key=private_key_pem,
            issuer_certificate=issuer_chain,
            csr=csr_pem,
        )

    def _new_client(self, account_key: jose.JWKRSA) -> client.ClientV2:
        net = client.ClientNetwork(account_key, user_agent=USER_AGENT)
        directory = client.ClientV2.get_directory(self.directory_url, net)
        return client.ClientV2(directory, net=net)

    @staticmethod
    def _dns_challenges(order: messages.OrderResource):
        """Yield (challenge body, domain) for each authorization's DNS-01 challenge."""
        for authz in order.authorizations:
            domain = authz.body.identifier.value
            for challb in authz.body.challenges:
                if isinstance(challb.chall, challenges.DNS01):
                    yield challb, domain
                    break
            else:
                raise IssuanceError(f"obtain: no DNS-01 challenge offered for {domain}")

    @staticmethod
    def _cleanup(provider: ChallengeProvider, presented: list[tuple[str, str, str]]) -> None:
        for domain, token, key_authorization in presented:
            try:
                provider.cleanup(domain, token, key_authorization)
            except Exception:
                logger.exception("Failed to clean up DNS-01 challenge for %s", domain)

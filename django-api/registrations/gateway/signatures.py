"""Webhook signature verification.

The algorithm is chosen by configuration:

- ``hmac-sha256``: hex HMAC-SHA256 of the raw body with a shared secret.
- ``ecdsa-sha256``: base64 ECDSA signature of the raw body, checked against the
  provider's base64-encoded PEM public key (Monobank ``X-Sign``).

Without any key, webhooks are accepted unsigned only when
``ALLOW_UNSIGNED_WEBHOOKS`` is enabled.
"""

import base64
import binascii
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key
from django.core.exceptions import ImproperlyConfigured

from registrations.gateway.port import PaymentGateway

logger = logging.getLogger(__name__)

HMAC_SHA256 = "hmac-sha256"
ECDSA_SHA256 = "ecdsa-sha256"


class SignatureVerifier(ABC):
    @abstractmethod
    def verify(self, body: bytes, signature: str | None) -> bool:
        ...


class HmacSignatureVerifier(SignatureVerifier):
    def __init__(self, secret: str) -> None:
        self._secret = secret.encode()

    def sign(self, body: bytes) -> str:
        return hmac.new(self._secret, body, hashlib.sha256).hexdigest()

    def verify(self, body: bytes, signature: str | None) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.sign(body), signature.strip())


class EcdsaSignatureVerifier(SignatureVerifier):
    def __init__(self, public_key: str) -> None:
        try:
            key = load_pem_public_key(base64.b64decode(public_key))
        except (ValueError, binascii.Error) as exc:
            raise ImproperlyConfigured("Webhook public key is not a valid PEM key") from exc
        if not isinstance(key, ec.EllipticCurvePublicKey):
            raise ImproperlyConfigured("Webhook public key must be an EC key")
        self._key = key

    def verify(self, body: bytes, signature: str | None) -> bool:
        if not signature:
            return False
        try:
            self._key.verify(base64.b64decode(signature), body, ec.ECDSA(hashes.SHA256()))
        except (InvalidSignature, ValueError, binascii.Error):
            return False
        return True


class UnsignedWebhookVerifier(SignatureVerifier):
    """Development bypass: every body counts as verified."""

    def verify(self, body: bytes, signature: str | None) -> bool:
        return True


def build_signature_verifier(
    config: dict,
    allow_unsigned: bool,
    gateway: PaymentGateway | None = None,
) -> SignatureVerifier:
    """Build the verifier described by the PAYMENT_GATEWAY settings.

    Raises:
        ImproperlyConfigured: If no key is available and unsigned webhooks are
            not allowed, or the algorithm is unknown.
    """
    algorithm = config.get("SIGNATURE_ALGORITHM", HMAC_SHA256)

    if algorithm == HMAC_SHA256:
        secret = config.get("WEBHOOK_SECRET")
        if secret:
            return HmacSignatureVerifier(secret)
    elif algorithm == ECDSA_SHA256:
        public_key = config.get("PUBLIC_KEY")
        if not public_key and gateway is not None and config.get("API_KEY"):
            public_key = gateway.get_public_key()
        if public_key:
            return EcdsaSignatureVerifier(public_key)
    else:
        raise ImproperlyConfigured(f"Unknown webhook signature algorithm: {algorithm}")

    if not allow_unsigned:
        raise ImproperlyConfigured(
            "No webhook signing key configured and ALLOW_UNSIGNED_WEBHOOKS is off"
        )
    logger.warning("Webhook signature verification is disabled")
    return UnsignedWebhookVerifier()

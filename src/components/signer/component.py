"""
Signer component.

Signs opaque payload strings with an ephemeral RSA keypair and verifies
signed strings against a DER-encoded public key.

Token format: "<payload>.<signature>" where <signature> is standard base64
of an RSASSA-PKCS1-v1_5 / SHA-256 signature over the UTF-8 bytes of
<payload>. PKCS#1 v1.5 is deterministic, so the same payload always yields
the same token; payloads carry an expiry timestamp for uniqueness.

Key behaviors:
- One keypair per Signer, generated on construction, never serialized
- A restart invalidates every link signed before it
- sign() and verify() never raise; failures are "" and False
"""

from __future__ import annotations

import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

logger = logging.getLogger(__name__)

DEFAULT_KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
TOKEN_SEPARATOR = "."


# --- Encoding Helpers ---


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without "=" padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(text: str) -> bytes:
    """
    Decode URL-safe base64, with or without padding.

    Raises:
        ValueError: If text is not valid base64url
    """
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64url data: {e}") from e


# --- Verification (no private key needed) ---


def verify(token: str, public_key: bytes) -> bool:
    """
    Verify a "<payload>.<signature>" token against a public key.

    Args:
        token: Signed token
        public_key: DER-encoded SubjectPublicKeyInfo

    Returns:
        True only if the token is well formed and the signature matches.
        Malformed tokens, undecodable signatures, unparseable keys and bad
        signatures all return False.
    """
    try:
        parts = token.split(TOKEN_SEPARATOR)
        if len(parts) != 2:
            return False

        payload, signature_b64 = parts
        signature = base64.b64decode(signature_b64, validate=True)

        key = serialization.load_der_public_key(public_key)
        if not isinstance(key, rsa.RSAPublicKey):
            return False

        key.verify(
            signature,
            payload.encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return True
    except InvalidSignature:
        return False
    except Exception:
        logger.debug("Token verification failed", exc_info=True)
        return False


# --- Signer ---


class Signer:
    """
    Holds the process-lifetime signing key.

    The private key exists only in this object's memory.
    """

    def __init__(self, key_size: int = DEFAULT_KEY_SIZE) -> None:
        self._private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=key_size,
        )
        self._public_key = self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        logger.info("Generated ephemeral %d-bit signing key", key_size)

    def sign(self, payload: str) -> str:
        """
        Sign a payload.

        Args:
            payload: Opaque string (normally base64url, so it has no ".")

        Returns:
            "<payload>.<base64 signature>", or "" if signing failed
        """
        try:
            signature = self._private_key.sign(
                payload.encode("utf-8"),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except Exception:
            logger.exception("Signing failed")
            return ""
        return f"{payload}{TOKEN_SEPARATOR}{base64.b64encode(signature).decode('ascii')}"

    def public_key(self) -> bytes:
        """DER-encoded SubjectPublicKeyInfo for this signer."""
        return self._public_key

    def verify_token(self, token: str) -> bool:
        """Verify a token against this signer's own public key."""
        return verify(token, self._public_key)

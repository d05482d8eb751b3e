"""
Signer component.

Ephemeral RSA signing for stateless verification links.
"""

from src.components.signer.component import (
    DEFAULT_KEY_SIZE,
    TOKEN_SEPARATOR,
    Signer,
    b64url_decode,
    b64url_encode,
    verify,
)

__all__ = [
    "Signer",
    "verify",
    "b64url_encode",
    "b64url_decode",
    "DEFAULT_KEY_SIZE",
    "TOKEN_SEPARATOR",
]

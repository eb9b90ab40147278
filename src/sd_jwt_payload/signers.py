"""Signers for SD-JWT credentials and presentations.

This module provides signer classes that accept JWK dictionaries:
- CredentialSigner: Signs SD-JWT credentials using issuer's private key
- PresentationSigner: Signs KB-JWTs using holder's private key

Both implement the JwsSigner protocol expected by ``SdJwtBuilder.finish``
and ``KeyBindingJwtBuilder.finish``.
"""

import logging
from typing import Any

from .jwk import jwk_private_bytes
from .jws import ES256Signer, jws_sign
from .thumbprint import JwkThumbprint

logger = logging.getLogger(__name__)


class _JwkSigner:
    def __init__(self, private_jwk: dict[str, Any]):
        """Initialize the signer with a private JWK.

        Args:
            private_jwk: ES256 JWK containing the private key component (d)

        Raises:
            KeyError: If private key component is missing
            ValueError: If key type is not supported
        """
        self._signer = ES256Signer(jwk_private_bytes(private_jwk))
        self.key_id = JwkThumbprint.encoded(private_jwk)

    def sign(self, header: dict[str, Any], payload: dict[str, Any]) -> str:
        """Sign a JOSE header and payload.

        The key's thumbprint is added as "kid" unless the header has one.

        Returns:
            Compact JWS text
        """
        if "kid" not in header:
            header = {**header, "kid": self.key_id}
        logger.debug("Signing %s JWS with key %s", header.get("typ"), header["kid"])
        return jws_sign(header, payload, self._signer)

    @property
    def algorithm(self) -> str:
        """Get the JWS algorithm identifier ("ES256")."""
        return self._signer.algorithm


class CredentialSigner(_JwkSigner):
    """Signs SD-JWT credentials using issuer's private JWK."""

    def __init__(self, issuer_jwk: dict[str, Any]):
        super().__init__(issuer_jwk)
        self.issuer_key = issuer_jwk


class PresentationSigner(_JwkSigner):
    """Signs KB-JWTs using holder's private JWK."""

    def __init__(self, holder_jwk: dict[str, Any]):
        super().__init__(holder_jwk)
        self.holder_key = holder_jwk


def create_credential_signer(issuer_jwk: dict[str, Any]) -> CredentialSigner:
    """Create a credential signer from an issuer's private JWK."""
    return CredentialSigner(issuer_jwk)


def create_presentation_signer(holder_jwk: dict[str, Any]) -> PresentationSigner:
    """Create a presentation signer from a holder's private JWK."""
    return PresentationSigner(holder_jwk)

"""Verifiers for SD-JWT credentials and presentations.

This module provides verifier classes for SD-JWT signature checks:
- CredentialVerifier: Verifies the issuer-signed JWT using issuer's key
- PresentationVerifier: Verifies the KB-JWT using holder's key, and that
  its `sd_hash` commits to the presented token

Claim validation (expiry, audience, issuer trust) is left to the caller.
"""

import logging
from typing import Any, Optional

from .errors import DataTypeMismatch, SdJwtError
from .hasher import Hasher
from .jwk import jwk_public_coordinates
from .jws import ES256, ES256Verifier, jws_verify
from .key_binding import Jwk, Kid, KeyBindingJwtClaims, RequiredKeyBinding, sd_hash
from .resolvers import KeyResolver, jwk_kid_resolver
from .sd_jwt import TokenInput, as_sd_jwt
from .thumbprint import JwkThumbprint

logger = logging.getLogger(__name__)


def _verify_jws(
    compact: str, header: dict[str, Any], resolver: KeyResolver
) -> tuple[bool, Optional[dict[str, Any]]]:
    if header.get("alg") != ES256:
        logger.warning("Rejected JWS with unsupported alg %r", header.get("alg"))
        return False, None

    kid = header.get("kid")
    if not isinstance(kid, str) or not kid:
        logger.warning("Rejected JWS without a kid header")
        return False, None

    try:
        public_key = resolver(kid)
        x, y = jwk_public_coordinates(public_key)
        verifier = ES256Verifier(x, y)
    except (KeyError, ValueError) as err:
        logger.warning("Could not resolve key %s: %s", kid, err)
        return False, None

    return jws_verify(compact, verifier)


class CredentialVerifier:
    """Verifies SD-JWT credentials using a public key resolver."""

    def __init__(self, public_key_resolver: KeyResolver):
        """Initialize credential verifier with a public key resolver.

        Args:
            public_key_resolver: Function that takes a key identifier and returns
                               the corresponding public JWK
        """
        self.public_key_resolver = public_key_resolver

    def verify(self, sd_jwt: TokenInput) -> tuple[bool, Optional[dict[str, Any]]]:
        """Verify the issuer signature of an SD-JWT.

        Args:
            sd_jwt: SD-JWT as compact text or parsed token

        Returns:
            Tuple of (is_valid, payload) where payload holds the signed
            claims, digests still in place
        """
        try:
            token = as_sd_jwt(sd_jwt)
        except SdJwtError as err:
            logger.warning("Rejected malformed SD-JWT: %s", err)
            return False, None

        is_valid, payload = _verify_jws(str(token.jwt), token.header, self.public_key_resolver)
        if not is_valid:
            logger.warning("Rejected SD-JWT with an invalid issuer signature")
        return is_valid, payload


class PresentationVerifier:
    """Verifies KB-JWTs using a public key resolver."""

    def __init__(self, public_key_resolver: KeyResolver):
        """Initialize presentation verifier with a public key resolver.

        Args:
            public_key_resolver: Function that takes a key identifier and returns
                               the corresponding public JWK
        """
        self.public_key_resolver = public_key_resolver

    def verify(
        self, sd_jwt: TokenInput, hasher: Optional[Hasher] = None
    ) -> tuple[bool, Optional[KeyBindingJwtClaims]]:
        """Verify the KB-JWT attached to a presented SD-JWT.

        Args:
            sd_jwt: Presented SD-JWT with a KB-JWT
            hasher: Hash function for `sd_hash` (selected from `_sd_alg` if None)

        Returns:
            Tuple of (is_valid, kb_claims)
        """
        try:
            token = as_sd_jwt(sd_jwt)
            if hasher is None:
                hasher = token.default_hasher()
        except SdJwtError as err:
            logger.warning("Rejected malformed presentation: %s", err)
            return False, None

        kb_jwt = token.key_binding_jwt
        if kb_jwt is None:
            logger.warning("Rejected presentation without a KB-JWT")
            return False, None

        is_valid, _ = _verify_jws(str(kb_jwt), kb_jwt.header, self.public_key_resolver)
        if not is_valid:
            logger.warning("Rejected presentation with an invalid KB-JWT signature")
            return False, None

        if kb_jwt.claims.sd_hash != sd_hash(token.presentation_without_key_binding(), hasher):
            logger.warning("Rejected presentation whose sd_hash does not match")
            return False, None

        return True, kb_jwt.claims


def get_presentation_verifier(
    credential: TokenInput,
    credential_verifier: CredentialVerifier,
    holder_key_resolver: Optional[KeyResolver] = None,
) -> Optional[PresentationVerifier]:
    """Build a presentation verifier from the `cnf` claim of a verified credential.

    Args:
        credential: SD-JWT credential
        credential_verifier: Verifier for the credential
        holder_key_resolver: Optional function to resolve holder keys by kid.
                           Required only for kid-based cnf claims.

    Returns:
        PresentationVerifier if credential is valid and requires key binding,
        None otherwise
    """
    is_valid, payload = credential_verifier.verify(credential)
    if not is_valid or not payload:
        return None

    cnf = payload.get("cnf")
    if cnf is None:
        return None
    try:
        binding: RequiredKeyBinding = RequiredKeyBinding.from_cnf(cnf)
    except DataTypeMismatch as err:
        logger.warning("Unsupported cnf claim: %s", err)
        return None

    if isinstance(binding, Kid):
        if holder_key_resolver is None:
            raise ValueError("holder_key_resolver is required for kid-based cnf claims")
        try:
            holder_key = holder_key_resolver(binding.kid)
        except ValueError:
            return None
        return PresentationVerifier(jwk_kid_resolver([(binding.kid, holder_key)]))

    if isinstance(binding, Jwk):
        # KB-JWTs carry the embedded key's thumbprint as kid
        holder_thumbprint = JwkThumbprint.encoded(binding.jwk)
        return PresentationVerifier(jwk_kid_resolver([(holder_thumbprint, binding.jwk)]))

    return None

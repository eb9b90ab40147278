"""Resolvers for JWKs by key identifier or thumbprint.

A resolver maps the "kid" of a JWS header to the public JWK that
verifies it.
"""

from typing import Any, Callable

from .jwk import jwk_get_public
from .thumbprint import JwkThumbprint

KeyResolver = Callable[[str], dict[str, Any]]


def jwk_thumbprint_resolver(jwks: list[dict[str, Any]]) -> KeyResolver:
    """Create a resolver for JWKs keyed by their SHA-256 thumbprints.

    Args:
        jwks: JWKs; private members are stripped

    Returns:
        Resolver function that takes a base64url thumbprint and returns the
        corresponding public JWK
    """
    kid_key_pairs = [(JwkThumbprint.encoded(jwk), jwk) for jwk in jwks]
    return jwk_kid_resolver(kid_key_pairs)


def jwk_kid_resolver(kid_key_pairs: list[tuple[str, dict[str, Any]]]) -> KeyResolver:
    """Create a resolver for JWKs keyed by explicit key identifiers.

    Args:
        kid_key_pairs: List of (kid, jwk) tuples

    Returns:
        Resolver function that takes a kid and returns the corresponding
        public JWK

    Raises:
        ValueError: If resolver is called with a kid that doesn't match any key
    """
    kid_to_key = {kid: jwk_get_public(jwk) for kid, jwk in kid_key_pairs}

    def resolve_public_key(requested_kid: str) -> dict[str, Any]:
        if requested_kid not in kid_to_key:
            raise ValueError(
                f"Kid not found: {requested_kid}. Available kids: {', '.join(kid_to_key)}"
            )
        return kid_to_key[requested_kid]

    return resolve_public_key

"""JWK Thumbprint computation according to RFC 7638."""

from typing import Any

from . import json_utils
from .hasher import SHA_ALG_NAME, hasher_for


class JwkThumbprint:
    """Compute JWK Thumbprints according to RFC 7638."""

    # Required members for each key type, in lexicographic order
    REQUIRED_MEMBERS = {
        "EC": ["crv", "kty", "x", "y"],
        "OKP": ["crv", "kty", "x"],
        "RSA": ["e", "kty", "n"],
        "oct": ["k", "kty"],
    }

    @staticmethod
    def canonical_json(jwk: dict[str, Any]) -> str:
        """Create the canonical JSON representation of a JWK for thumbprinting.

        Args:
            jwk: JWK as a dictionary

        Returns:
            JSON text with only the required members, sorted, no whitespace

        Raises:
            ValueError: If key type is unsupported or required fields are missing
        """
        kty = jwk.get("kty")
        if kty not in JwkThumbprint.REQUIRED_MEMBERS:
            raise ValueError(f"Unsupported key type: {kty}")

        filtered_key = {}
        for member in JwkThumbprint.REQUIRED_MEMBERS[kty]:
            if member not in jwk:
                raise ValueError(f"Required field {member} missing from JWK")
            filtered_key[member] = jwk[member]

        return json_utils.encode(filtered_key)

    @staticmethod
    def compute(jwk: dict[str, Any], hash_alg: str = SHA_ALG_NAME) -> bytes:
        """Compute a JWK Thumbprint.

        Args:
            jwk: JWK as a dictionary
            hash_alg: Hash algorithm name (sha-256, sha-384, sha-512)

        Returns:
            Thumbprint as bytes

        Raises:
            ValueError: If hash algorithm is unsupported
        """
        canonical = JwkThumbprint.canonical_json(jwk)
        return hasher_for(hash_alg).digest(canonical.encode("utf-8"))

    @staticmethod
    def encoded(jwk: dict[str, Any], hash_alg: str = SHA_ALG_NAME) -> str:
        """Compute a JWK Thumbprint as base64url text, as used for "kid" values."""
        return json_utils.b64url_encode(JwkThumbprint.compute(jwk, hash_alg))

    @staticmethod
    def uri(jwk: dict[str, Any], hash_alg: str = SHA_ALG_NAME) -> str:
        """Compute a JWK Thumbprint URI.

        Returns:
            Thumbprint URI as defined in RFC 9278
        """
        encoded = JwkThumbprint.encoded(jwk, hash_alg)
        return f"urn:ietf:params:oauth:jwk-thumbprint:{hash_alg}:{encoded}"

    @staticmethod
    def from_pem(pem_data: bytes) -> dict[str, Any]:
        """Convert a PEM key to a public JWK.

        Args:
            pem_data: PEM encoded public or private key

        Returns:
            Public JWK dictionary
        """
        from cryptography.hazmat.primitives import serialization
        from cryptography.hazmat.primitives.asymmetric import ec, rsa

        try:
            key = serialization.load_pem_public_key(pem_data)
        except ValueError:
            private_key = serialization.load_pem_private_key(pem_data, password=None)
            key = private_key.public_key()

        if isinstance(key, ec.EllipticCurvePublicKey):
            public_numbers = key.public_numbers()
            curve = public_numbers.curve

            if isinstance(curve, ec.SECP256R1):
                crv, size = "P-256", 32
            elif isinstance(curve, ec.SECP384R1):
                crv, size = "P-384", 48
            elif isinstance(curve, ec.SECP521R1):
                crv, size = "P-521", 66
            else:
                raise ValueError(f"Unsupported curve: {curve.name}")

            return {
                "kty": "EC",
                "crv": crv,
                "x": json_utils.b64url_encode(public_numbers.x.to_bytes(size, "big")),
                "y": json_utils.b64url_encode(public_numbers.y.to_bytes(size, "big")),
            }

        if isinstance(key, rsa.RSAPublicKey):
            rsa_public_numbers = key.public_numbers()
            n_bytes = rsa_public_numbers.n.to_bytes(
                (rsa_public_numbers.n.bit_length() + 7) // 8, "big"
            )
            e_bytes = rsa_public_numbers.e.to_bytes(
                (rsa_public_numbers.e.bit_length() + 7) // 8, "big"
            )
            return {
                "kty": "RSA",
                "n": json_utils.b64url_encode(n_bytes),
                "e": json_utils.b64url_encode(e_bytes),
            }

        raise ValueError(f"Unsupported key type: {type(key)}")

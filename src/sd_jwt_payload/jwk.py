"""JWK generation and management for ES256 / P-256 keys."""

from typing import Any, Optional

from cryptography.hazmat.primitives.asymmetric import ec

from . import json_utils
from .jws import ES256

# Constants for ES256/P-256 only
JWK_KTY_EC = "EC"
JWK_CRV_P256 = "P-256"


def jwk_generate(kid: Optional[str] = None) -> dict[str, Any]:
    """Generate an ES256/P-256 key pair as a JWK.

    Args:
        kid: Optional key identifier

    Returns:
        JWK containing both private and public key material
    """
    private_key = ec.generate_private_key(ec.SECP256R1())

    d = private_key.private_numbers().private_value.to_bytes(32, byteorder="big")
    public_numbers = private_key.public_key().public_numbers()
    x = public_numbers.x.to_bytes(32, byteorder="big")
    y = public_numbers.y.to_bytes(32, byteorder="big")

    jwk = {
        "kty": JWK_KTY_EC,
        "crv": JWK_CRV_P256,
        "x": json_utils.b64url_encode(x),
        "y": json_utils.b64url_encode(y),
        "d": json_utils.b64url_encode(d),
        "alg": ES256,
    }
    if kid is not None:
        jwk["kid"] = kid

    return jwk


def jwk_get_public(jwk: dict[str, Any]) -> dict[str, Any]:
    """Extract the public part of a JWK.

    Returns:
        A copy of the JWK without the private "d" member
    """
    return {name: value for name, value in jwk.items() if name != "d"}


def _check_p256(jwk: dict[str, Any]) -> None:
    if jwk.get("kty") != JWK_KTY_EC:
        raise ValueError(f"Only EC keys are supported, got kty: {jwk.get('kty')}")
    if jwk.get("crv") != JWK_CRV_P256:
        raise ValueError(f"Only P-256 keys are supported, got crv: {jwk.get('crv')}")
    alg = jwk.get("alg", ES256)
    if alg != ES256:
        raise ValueError(f"Only ES256 algorithm is supported, got alg: {alg}")


def jwk_private_bytes(jwk: dict[str, Any]) -> bytes:
    """Get the 32-byte private scalar of a P-256 JWK.

    Raises:
        KeyError: If the private key component is missing
        ValueError: If the key is not an ES256/P-256 key
    """
    if "d" not in jwk:
        raise KeyError("Private key component (d) missing from JWK")
    _check_p256(jwk)
    return json_utils.b64url_decode(jwk["d"])


def jwk_public_coordinates(jwk: dict[str, Any]) -> tuple[bytes, bytes]:
    """Get the (x, y) coordinates of a P-256 JWK.

    Raises:
        KeyError: If a coordinate is missing
        ValueError: If the key is not an ES256/P-256 key
    """
    _check_p256(jwk)
    return json_utils.b64url_decode(jwk["x"]), json_utils.b64url_decode(jwk["y"])


def jwk_to_public_key(jwk: dict[str, Any]) -> ec.EllipticCurvePublicKey:
    """Convert a P-256 JWK to a `cryptography` public key."""
    x, y = jwk_public_coordinates(jwk)
    numbers = ec.EllipticCurvePublicNumbers(
        int.from_bytes(x, byteorder="big"), int.from_bytes(y, byteorder="big"), ec.SECP256R1()
    )
    return numbers.public_key()


def jwk_to_private_key(jwk: dict[str, Any]) -> ec.EllipticCurvePrivateKey:
    """Convert a P-256 JWK to a `cryptography` private key."""
    d = jwk_private_bytes(jwk)
    return ec.derive_private_key(int.from_bytes(d, byteorder="big"), ec.SECP256R1())

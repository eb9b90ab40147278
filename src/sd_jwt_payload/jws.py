"""JWS compact signing with pluggable signers and verifiers.

This module provides generic JWS signing and verification functions that
accept signer and verifier objects, allowing keys to be managed externally.
Signatures use the JWS ES256 format: the raw 64-byte ``r || s`` pair.
"""

from typing import Any, Optional, Protocol

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, utils

from . import json_utils
from .errors import MalformedCompactSerialization, SigningFailure
from .jwt import Jwt

ES256 = "ES256"


class Signer(Protocol):
    """Protocol for raw JWS signature producers."""

    def sign(self, message: bytes) -> bytes:
        """Sign a message and return the signature.

        Args:
            message: The JWS signing input

        Returns:
            The signature bytes
        """

    @property
    def algorithm(self) -> str:
        """Get the JWS algorithm identifier.

        Returns:
            JWS "alg" value (e.g., "ES256")
        """


class Verifier(Protocol):
    """Protocol for raw JWS signature verifiers."""

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature on a message.

        Args:
            message: The JWS signing input
            signature: The signature to verify

        Returns:
            True if signature is valid, False otherwise
        """


class JwsSigner(Protocol):
    """Protocol for the signing capability used to issue tokens.

    Implementations receive the JOSE header (which carries "alg") and the
    claims, and return the compact JWS text.
    """

    def sign(self, header: dict[str, Any], payload: dict[str, Any]) -> str:
        """Sign a header and payload.

        Args:
            header: JOSE header
            payload: JWT claims

        Returns:
            Compact JWS `<header>.<payload>.<signature>`
        """


def jws_sign(header: dict[str, Any], payload: dict[str, Any], signer: Signer) -> str:
    """Create a compact JWS.

    Args:
        header: JOSE header; "alg" is taken from the signer if absent
        payload: The claims to sign
        signer: A signer object that implements the sign method

    Returns:
        Compact JWS text
    """
    if "alg" not in header:
        header = {**header, "alg": signer.algorithm}

    signing_input = (
        json_utils.encode_b64url_json(header) + "." + json_utils.encode_b64url_json(payload)
    )
    signature = signer.sign(signing_input.encode("ascii"))
    return signing_input + "." + json_utils.b64url_encode(signature)


def jws_verify(token: str, verifier: Verifier) -> tuple[bool, Optional[dict[str, Any]]]:
    """Verify a compact JWS.

    Args:
        token: Compact JWS text
        verifier: A verifier object that implements the verify method

    Returns:
        Tuple of (verification_result, claims if verified successfully)
    """
    try:
        jwt = Jwt.parse(token)
        signature = json_utils.b64url_decode(jwt.signature)
    except (MalformedCompactSerialization, ValueError):
        return False, None

    if verifier.verify(jwt.signing_input.encode("ascii"), signature):
        return True, jwt.claims
    return False, None


def sign_to_jwt(signer: JwsSigner, header: dict[str, Any], payload: dict[str, Any]) -> Jwt:
    """Run a signing capability and parse its output.

    Raises:
        SigningFailure: If the signer raises, or returns something that is
            not a compact JWS
    """
    try:
        compact = signer.sign(header, payload)
    except Exception as err:
        raise SigningFailure(f"jws failed: {err}") from err

    if isinstance(compact, bytes):
        try:
            compact = compact.decode("ascii")
        except UnicodeDecodeError as err:
            raise SigningFailure("invalid JWS: not ASCII text") from err
    if not isinstance(compact, str):
        raise SigningFailure(f"invalid JWS: expected text, got {type(compact).__name__}")

    try:
        return Jwt.parse(compact)
    except MalformedCompactSerialization as err:
        raise SigningFailure(f"invalid JWS: {err}") from err


class ES256Signer:
    """ECDSA P-256 SHA-256 signer implementation."""

    def __init__(self, private_key_bytes: bytes):
        """Initialize ES256 signer with private key.

        Args:
            private_key_bytes: The private key bytes (32 bytes for P-256)
        """
        private_value = int.from_bytes(private_key_bytes, byteorder="big")
        self.private_key = ec.derive_private_key(private_value, ec.SECP256R1())

    def sign(self, message: bytes) -> bytes:
        """Sign a message with ES256."""
        signature_der = self.private_key.sign(message, ec.ECDSA(hashes.SHA256()))

        # Convert DER to raw (r||s) format for JWS
        r, s = utils.decode_dss_signature(signature_der)
        return r.to_bytes(32, byteorder="big") + s.to_bytes(32, byteorder="big")

    @property
    def algorithm(self) -> str:
        return ES256


class ES256Verifier:
    """ECDSA P-256 SHA-256 verifier implementation."""

    def __init__(self, public_key_x: bytes, public_key_y: bytes):
        """Initialize ES256 verifier with public key coordinates.

        Args:
            public_key_x: X coordinate of public key (32 bytes)
            public_key_y: Y coordinate of public key (32 bytes)
        """
        x = int.from_bytes(public_key_x, byteorder="big")
        y = int.from_bytes(public_key_y, byteorder="big")

        public_numbers = ec.EllipticCurvePublicNumbers(x, y, ec.SECP256R1())
        self.public_key = public_numbers.public_key()

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature with ES256."""
        if len(signature) != 64:
            return False

        r = int.from_bytes(signature[:32], byteorder="big")
        s = int.from_bytes(signature[32:], byteorder="big")
        signature_der = utils.encode_dss_signature(r, s)

        try:
            self.public_key.verify(signature_der, message, ec.ECDSA(hashes.SHA256()))
        except InvalidSignature:
            return False
        return True


def generate_es256_key_pair() -> tuple[bytes, bytes, bytes]:
    """Generate an ES256 (ECDSA P-256) key pair.

    Returns:
        Tuple of (private_key_bytes, public_key_x, public_key_y)
    """
    private_key = ec.generate_private_key(ec.SECP256R1())

    private_value = private_key.private_numbers().private_value
    private_key_bytes = private_value.to_bytes(32, byteorder="big")

    public_numbers = private_key.public_key().public_numbers()
    public_key_x = public_numbers.x.to_bytes(32, byteorder="big")
    public_key_y = public_numbers.y.to_bytes(32, byteorder="big")

    return private_key_bytes, public_key_x, public_key_y

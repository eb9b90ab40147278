"""Pytest configuration and shared fixtures for SD-JWT tests."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest

from sd_jwt_payload import json_utils
from sd_jwt_payload.encoder import SeededSaltGenerator
from sd_jwt_payload.jwk import jwk_generate
from sd_jwt_payload.signers import CredentialSigner, PresentationSigner


@pytest.fixture
def sample_claims() -> Dict[str, Any]:
    """Provide sample SD-JWT claims for testing."""
    now = datetime.now(timezone.utc)
    return {
        "iss": "https://issuer.example.com",
        "sub": "user123",
        "iat": int(now.timestamp()),
        "given_name": "John",
        "family_name": "Doe",
        "email": "john.doe@example.com",
        "phone_number": "+1234567890",
        "address": {
            "street_address": "123 Main St",
            "locality": "Anytown",
            "region": "CA",
            "country": "US",
        },
        "birthdate": "1990-01-01",
        "is_verified": True,
        "nationalities": ["US", "DE"],
    }


@pytest.fixture
def minimal_claims() -> Dict[str, Any]:
    """Provide minimal JWT claims for testing."""
    now = datetime.now(timezone.utc)
    return {
        "iss": "https://issuer.example.com",
        "sub": "user123",
        "iat": int(now.timestamp()),
    }


@pytest.fixture
def seeded_salts() -> SeededSaltGenerator:
    """Deterministic salt generator for reproducible disclosures."""
    return SeededSaltGenerator(seed=42)


@pytest.fixture(scope="session")
def issuer_jwk() -> Dict[str, Any]:
    """ES256 private JWK for the issuer."""
    return jwk_generate()


@pytest.fixture(scope="session")
def holder_jwk() -> Dict[str, Any]:
    """ES256 private JWK for the holder."""
    return jwk_generate()


@pytest.fixture
def issuer_signer(issuer_jwk: Dict[str, Any]) -> CredentialSigner:
    return CredentialSigner(issuer_jwk)


@pytest.fixture
def holder_signer(holder_jwk: Dict[str, Any]) -> PresentationSigner:
    return PresentationSigner(holder_jwk)


class FakeSigner:
    """JwsSigner that produces an unsigned token, or fails on demand.

    The signature segment is a fixed string so that issued tokens can be
    compared in tests.
    """

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = 0

    def sign(self, header: Dict[str, Any], payload: Dict[str, Any]) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return (
            json_utils.encode_b64url_json(header)
            + "."
            + json_utils.encode_b64url_json(payload)
            + ".c2lnbmF0dXJl"
        )


@pytest.fixture
def fake_signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def failing_signer() -> FakeSigner:
    return FakeSigner(RuntimeError("HSM unavailable"))


class ConstantHasher:
    """Hasher named like SHA-256 that maps every input to the same digest."""

    alg_name = "sha-256"

    def __init__(self):
        self.calls = 0

    def digest(self, data: bytes) -> bytes:
        self.calls += 1
        return bytes(32)

    def encoded_digest(self, text: str) -> str:
        return json_utils.b64url_encode(self.digest(text.encode("ascii")))


@pytest.fixture
def constant_hasher() -> ConstantHasher:
    return ConstantHasher()


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "unit: mark test as a single-module unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an issuer to verifier integration test"
    )

"""Tests for key binding requirements and KB-JWTs."""

import pytest

from sd_jwt_payload import json_utils
from sd_jwt_payload.builder import SdJwtBuilder
from sd_jwt_payload.errors import (
    BuilderStateError,
    DataTypeMismatch,
    MalformedCompactSerialization,
    SigningFailure,
    UnsupportedHashAlgorithm,
)
from sd_jwt_payload.hasher import Sha256Hasher, Sha384Hasher
from sd_jwt_payload.key_binding import (
    KB_JWT_HEADER_TYP,
    Jwk,
    KeyBindingJwt,
    KeyBindingJwtBuilder,
    KeyBindingJwtClaims,
    Kid,
    RequiredKeyBinding,
    required_key_binding,
    sd_hash,
)
from sd_jwt_payload.sd_jwt import SdJwt


@pytest.fixture
def issued(sample_claims, fake_signer) -> SdJwt:
    builder = SdJwtBuilder(sample_claims)
    builder.conceal("/given_name")
    builder.conceal("/email")
    builder.set_hash_algorithm_claim()
    builder.require_key_binding(Kid("holder-key"))
    return builder.finish(fake_signer, "ES256")


class TestRequiredKeyBinding:
    """Test `cnf` claim values."""

    @pytest.mark.unit
    def test_to_cnf(self):
        """Requirements serialize to their confirmation method."""
        assert Kid("abc").to_cnf() == {"kid": "abc"}
        assert Jwk({"kty": "EC"}).to_cnf() == {"jwk": {"kty": "EC"}}

    @pytest.mark.unit
    def test_base_class_is_abstract(self):
        """Only concrete confirmation methods can be created."""
        with pytest.raises(TypeError):
            RequiredKeyBinding()

    @pytest.mark.unit
    def test_from_cnf(self):
        """Confirmation methods are read back."""
        assert RequiredKeyBinding.from_cnf({"kid": "abc"}) == Kid("abc")
        assert RequiredKeyBinding.from_cnf({"jwk": {"kty": "EC"}}) == Jwk({"kty": "EC"})

    @pytest.mark.unit
    @pytest.mark.parametrize("cnf", ["abc", {"jku": "https://x"}, {"kid": 1}, {"jwk": "k"}])
    def test_from_cnf_rejects_unsupported(self, cnf):
        """Unsupported confirmation methods are a type mismatch."""
        with pytest.raises(DataTypeMismatch):
            RequiredKeyBinding.from_cnf(cnf)

    @pytest.mark.unit
    def test_required_key_binding(self):
        """Claims without `cnf` require no key binding."""
        assert required_key_binding({"iss": "x"}) is None
        assert required_key_binding({"cnf": {"kid": "k"}}) == Kid("k")


class TestKeyBindingJwtClaims:
    """Test KB-JWT claim handling."""

    @pytest.mark.unit
    def test_new_hashes_the_presentation(self):
        """sd_hash covers the JWT and disclosures, each followed by "~"."""
        claims = KeyBindingJwtClaims.new(
            Sha256Hasher(), "a.b.c", ["d1", "d2"], nonce="n", aud="v", iat=10
        )
        assert claims.sd_hash == Sha256Hasher().encoded_digest("a.b.c~d1~d2~")
        assert claims.to_dict() == {"iat": 10, "aud": "v", "nonce": "n", "sd_hash": claims.sd_hash}

    @pytest.mark.unit
    def test_from_dict_keeps_extra_claims(self):
        """Extra claims are kept as properties."""
        claims = KeyBindingJwtClaims.from_dict(
            {"iat": 1, "aud": "v", "nonce": "n", "sd_hash": "h", "extra": True}
        )
        assert claims.properties == {"extra": True}
        assert claims.to_dict()["extra"] is True

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "claims",
        [
            {"aud": "v", "nonce": "n", "sd_hash": "h"},
            {"iat": "1", "aud": "v", "nonce": "n", "sd_hash": "h"},
            {"iat": True, "aud": "v", "nonce": "n", "sd_hash": "h"},
            {"iat": 1, "aud": ["v"], "nonce": "n", "sd_hash": "h"},
            {"iat": 1, "aud": "v", "sd_hash": "h"},
        ],
    )
    def test_from_dict_rejects_bad_claims(self, claims):
        """Required claims must be present with the right types."""
        with pytest.raises(DataTypeMismatch):
            KeyBindingJwtClaims.from_dict(claims)


class TestKeyBindingJwtBuilder:
    """Test building KB-JWTs."""

    @pytest.mark.unit
    def test_finish_with_sd_jwt(self, issued, fake_signer):
        """The KB-JWT commits to the presented token."""
        kb_jwt = (
            KeyBindingJwtBuilder()
            .nonce("abc123")
            .aud("https://verifier.example")
            .iat(1700000000)
            .finish(issued, Sha256Hasher(), "ES256", fake_signer)
        )
        assert kb_jwt.header == {"typ": KB_JWT_HEADER_TYP, "alg": "ES256"}
        assert kb_jwt.claims.nonce == "abc123"
        assert kb_jwt.claims.aud == "https://verifier.example"
        assert kb_jwt.claims.iat == 1700000000
        assert kb_jwt.claims.sd_hash == sd_hash(
            issued.presentation_without_key_binding(), Sha256Hasher()
        )

    @pytest.mark.unit
    def test_finish_with_text(self, issued, fake_signer):
        """Compact text without a KB-JWT is hashed as given."""
        text = issued.presentation_without_key_binding()
        kb_jwt = KeyBindingJwtBuilder().nonce("n").aud("v").finish(
            text, Sha256Hasher(), "ES256", fake_signer
        )
        assert kb_jwt.claims.sd_hash == Sha256Hasher().encoded_digest(text)
        assert isinstance(kb_jwt.claims.iat, int)

    @pytest.mark.unit
    def test_attached_kb_jwt_is_excluded_from_sd_hash(self, issued, fake_signer):
        """An attached KB-JWT does not change the hashed text."""
        first = KeyBindingJwtBuilder().nonce("n").aud("v").iat(1).finish(
            issued, Sha256Hasher(), "ES256", fake_signer
        )
        issued.attach_key_binding_jwt(first)
        second = KeyBindingJwtBuilder().nonce("n").aud("v").iat(1).finish(
            issued, Sha256Hasher(), "ES256", fake_signer
        )
        assert first.claims.sd_hash == second.claims.sd_hash

    @pytest.mark.unit
    def test_header_and_properties(self, issued, fake_signer):
        """Extra header fields and claims are included; typ and alg are fixed."""
        kb_jwt = (
            KeyBindingJwtBuilder()
            .nonce("n")
            .aud("v")
            .header({"kid": "holder-key", "typ": "jwt"})
            .insert_property("purpose", "login")
            .finish(issued, Sha256Hasher(), "ES256", fake_signer)
        )
        assert kb_jwt.header == {"typ": "kb+jwt", "alg": "ES256", "kid": "holder-key"}
        assert kb_jwt.claims.properties == {"purpose": "login"}

    @pytest.mark.unit
    def test_missing_nonce_or_aud(self, issued, fake_signer):
        """nonce and aud are required."""
        calls_before = fake_signer.calls
        with pytest.raises(BuilderStateError, match="nonce"):
            KeyBindingJwtBuilder().aud("v").finish(issued, Sha256Hasher(), "ES256", fake_signer)
        with pytest.raises(BuilderStateError, match="audience"):
            KeyBindingJwtBuilder().nonce("n").finish(
                issued, Sha256Hasher(), "ES256", fake_signer
            )
        assert fake_signer.calls == calls_before

    @pytest.mark.unit
    def test_hasher_must_match_sd_alg(self, issued, fake_signer):
        """The sd_hash algorithm follows `_sd_alg`."""
        with pytest.raises(UnsupportedHashAlgorithm):
            KeyBindingJwtBuilder().nonce("n").aud("v").finish(
                issued, Sha384Hasher(), "ES256", fake_signer
            )

    @pytest.mark.unit
    def test_signing_failure(self, issued, failing_signer):
        """Signer errors surface as SigningFailure."""
        with pytest.raises(SigningFailure):
            KeyBindingJwtBuilder().nonce("n").aud("v").finish(
                issued, Sha256Hasher(), "ES256", failing_signer
            )


class TestKeyBindingJwtParse:
    """Test parsing KB-JWTs inside presentations."""

    @pytest.mark.unit
    def test_presentation_round_trip(self, issued, fake_signer):
        """A presentation with a KB-JWT parses back to the same token."""
        kb_jwt = KeyBindingJwtBuilder().nonce("n").aud("v").iat(5).finish(
            issued, Sha256Hasher(), "ES256", fake_signer
        )
        issued.attach_key_binding_jwt(kb_jwt)
        text = issued.presentation()

        assert text.endswith("~" + str(kb_jwt))
        parsed = SdJwt.parse(text)
        assert parsed == issued
        assert parsed.key_binding_jwt == kb_jwt
        assert parsed.key_binding_jwt.claims.iat == 5

    @pytest.mark.unit
    def test_parse_requires_kb_typ(self):
        """The header typ must be kb+jwt."""
        claims = {"iat": 1, "aud": "v", "nonce": "n", "sd_hash": "h"}
        text = (
            json_utils.encode_b64url_json({"typ": "jwt", "alg": "ES256"})
            + "."
            + json_utils.encode_b64url_json(claims)
            + ".c2ln"
        )
        with pytest.raises(MalformedCompactSerialization):
            KeyBindingJwt.parse(text)

    @pytest.mark.unit
    def test_parse_requires_claims(self):
        """Missing KB-JWT claims make the token malformed."""
        text = (
            json_utils.encode_b64url_json({"typ": "kb+jwt", "alg": "ES256"})
            + "."
            + json_utils.encode_b64url_json({"iat": 1})
            + ".c2ln"
        )
        with pytest.raises(MalformedCompactSerialization):
            KeyBindingJwt.parse(text)

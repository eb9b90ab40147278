"""Unit tests for payload decoding."""

import pytest

from sd_jwt_payload.decoder import SdObjectDecoder, decode, payload_hash_alg
from sd_jwt_payload.disclosure import Disclosure
from sd_jwt_payload.encoder import SdObjectEncoder
from sd_jwt_payload.errors import (
    ClaimNameCollision,
    DataTypeMismatch,
    DuplicateDigest,
    IntegrityError,
    InvalidArrayDisclosureObject,
    MalformedDisclosure,
    MismatchedDisclosureKind,
    UnsupportedHashAlgorithm,
    UnusedDisclosure,
)
from sd_jwt_payload.hasher import Sha256Hasher, Sha384Hasher, Sha512Hasher

HASHER = Sha256Hasher()


def _digest(disclosure: Disclosure) -> str:
    return disclosure.digest(HASHER)


@pytest.fixture
def verified_claims():
    return {
        "verified_claims": {
            "verification": {
                "trust_framework": "de_aml",
                "time": "2012-04-23T18:25Z",
                "verification_process": "f24c6f-6d3f-4ec5-973e-b0d8506f3bc7",
                "evidence": [
                    {
                        "type": "document",
                        "method": "pipp",
                        "time": "2012-04-22T11:30Z",
                        "document": {
                            "type": "idcard",
                            "issuer": {"name": "Stadt Augsburg", "country": "DE"},
                            "number": "53554554",
                        },
                    },
                    "evidence2",
                ],
            },
            "claims": {
                "given_name": "Max",
                "family_name": "Müller",
                "nationalities": ["DE"],
                "place_of_birth": {"country": "IS", "locality": "Þykkvabæjarklaustur"},
            },
        },
        "birth_middle_name": "Timotheus",
        "salutation": "Dr.",
    }


class TestDecode:
    """Test reconstructing claims."""

    @pytest.mark.unit
    def test_complex_structure_round_trip(self, verified_claims):
        """Nested object and array concealments decode to the original claims."""
        encoder = SdObjectEncoder(verified_claims)
        disclosures = [
            encoder.conceal("/verified_claims/verification/time"),
            encoder.conceal("/verified_claims/verification/evidence/0"),
            encoder.conceal("/verified_claims/verification/evidence/1"),
            encoder.conceal("/verified_claims/verification/evidence"),
            encoder.conceal("/verified_claims/claims/place_of_birth/locality"),
            encoder.conceal("/verified_claims/claims"),
        ]
        encoder.add_sd_alg_property()

        assert decode(encoder.object, disclosures) == verified_claims

    @pytest.mark.unit
    def test_disclosure_order_does_not_matter(self, verified_claims):
        """Disclosures are matched by digest, not by position."""
        encoder = SdObjectEncoder(verified_claims)
        disclosures = [
            encoder.conceal("/salutation"),
            encoder.conceal("/verified_claims/claims/nationalities/0"),
            encoder.conceal("/verified_claims/claims"),
        ]
        assert decode(encoder.object, reversed(disclosures)) == verified_claims

    @pytest.mark.unit
    def test_concealed_object_in_array(self):
        """A concealed element holding digests is decoded recursively."""
        inner = SdObjectEncoder({"test1": 123})
        first = inner.conceal("/test1")

        outer = SdObjectEncoder({"test2": ["value1", inner.object]})
        second = outer.conceal("/test2/0")
        third = outer.conceal("/test2")

        assert decode(outer.object, [first, second, third]) == {
            "test2": ["value1", {"test1": 123}]
        }

    @pytest.mark.unit
    def test_string_disclosures(self):
        """Disclosures may be given in text form."""
        encoder = SdObjectEncoder({"a": 1, "b": 2})
        disclosure = encoder.conceal("/a")
        assert decode(encoder.object, [disclosure.encoded]) == {"a": 1, "b": 2}

    @pytest.mark.unit
    def test_withheld_claims_vanish(self):
        """Digests without a disclosure are removed with their scaffolding."""
        encoder = SdObjectEncoder({"a": 1, "list": ["x", "y"], "keep": True})
        encoder.conceal("/a")
        encoder.conceal("/list/0")
        encoder.add_sd_alg_property()
        assert decode(encoder.object, []) == {"list": ["y"], "keep": True}

    @pytest.mark.unit
    def test_empty_containers_are_kept(self):
        """Objects and arrays that end up empty stay in the output."""
        encoder = SdObjectEncoder({"obj": {"a": 1}, "arr": [1]})
        encoder.conceal("/obj/a")
        encoder.conceal("/arr/0")
        assert decode(encoder.object, []) == {"obj": {}, "arr": []}

    @pytest.mark.unit
    def test_disclosed_claim_takes_sd_position(self):
        """Disclosed claims are inserted where `_sd` appeared."""
        disclosure = Disclosure("salt-value-abcdef", "b", 2)
        payload = {"a": 1, "_sd": [_digest(disclosure)], "c": 3}
        assert list(decode(payload, [disclosure])) == ["a", "b", "c"]

    @pytest.mark.unit
    def test_sd_alg_is_removed_only_at_top_level(self):
        """`_sd_alg` is stripped from the result root."""
        payload = {"_sd_alg": "sha-256", "nested": {"_sd_alg": "kept"}}
        assert decode(payload, []) == {"nested": {"_sd_alg": "kept"}}

    @pytest.mark.unit
    def test_decode_is_pure(self):
        """The payload is not modified by decoding."""
        encoder = SdObjectEncoder({"a": {"b": 1}})
        disclosure = encoder.conceal("/a/b")
        before = repr(encoder.object)
        decode(encoder.object, [disclosure])
        assert repr(encoder.object) == before


class TestDecodeIntegrity:
    """Test rejection of inconsistent inputs."""

    @pytest.mark.unit
    def test_unused_disclosure(self):
        """A disclosure not referenced by the payload fails the decode."""
        stray = Disclosure("salt-value-abcdef", "x", 1)
        with pytest.raises(UnusedDisclosure) as exc_info:
            decode({"a": 1}, [stray])
        assert exc_info.value.count == 1

    @pytest.mark.unit
    def test_nested_disclosure_without_parent_is_unused(self):
        """A child disclosure is unusable without its parent's disclosure."""
        encoder = SdObjectEncoder({"a": {"b": 1}})
        child = encoder.conceal("/a/b")
        encoder.conceal("/a")
        with pytest.raises(UnusedDisclosure):
            decode(encoder.object, [child])

    @pytest.mark.unit
    def test_duplicate_digest_in_payload(self):
        """The same digest twice in the payload is rejected."""
        disclosure = Disclosure("salt-value-abcdef", "a", 1)
        digest = _digest(disclosure)
        with pytest.raises(DuplicateDigest) as exc_info:
            decode({"_sd": [digest], "obj": {"_sd": [digest]}}, [disclosure])
        assert exc_info.value.digest == digest

    @pytest.mark.unit
    def test_duplicate_decoy_digest_in_payload(self):
        """Repeated digests are rejected even without a matching disclosure."""
        with pytest.raises(DuplicateDigest):
            decode({"_sd": ["decoy", "decoy"]}, [])

    @pytest.mark.unit
    def test_duplicate_disclosure(self):
        """Supplying a disclosure twice is rejected."""
        disclosure = Disclosure("salt-value-abcdef", "a", 1)
        with pytest.raises(DuplicateDigest):
            decode({"_sd": [_digest(disclosure)]}, [disclosure, disclosure.encoded])

    @pytest.mark.unit
    def test_colliding_disclosures(self, constant_hasher):
        """Distinct disclosures that hash alike are rejected."""
        encoder = SdObjectEncoder({"a": 1, "b": 2})
        first = encoder.conceal("/a")
        second = encoder.conceal("/b")
        encoder.add_sd_alg_property()
        assert first != second

        with pytest.raises(DuplicateDigest) as exc_info:
            decode(encoder.object, [first, second], constant_hasher)
        assert exc_info.value.digest == constant_hasher.encoded_digest(first.encoded)

    @pytest.mark.unit
    def test_claim_name_collision_with_plain_claim(self):
        """A disclosed name must not already exist in its object."""
        disclosure = Disclosure("salt-value-abcdef", "a", 2)
        with pytest.raises(ClaimNameCollision) as exc_info:
            decode({"_sd": [_digest(disclosure)], "a": 1}, [disclosure])
        assert exc_info.value.claim_name == "a"

    @pytest.mark.unit
    def test_claim_name_collision_between_disclosures(self):
        """Two disclosures for the same name in one object collide."""
        first = Disclosure("salt-value-aaaaaa", "a", 1)
        second = Disclosure("salt-value-bbbbbb", "a", 2)
        with pytest.raises(ClaimNameCollision):
            decode({"_sd": [_digest(first), _digest(second)]}, [first, second])

    @pytest.mark.unit
    def test_array_disclosure_in_object(self):
        """An element disclosure referenced from `_sd` is the wrong kind."""
        disclosure = Disclosure("salt-value-abcdef", None, 1)
        with pytest.raises(MismatchedDisclosureKind):
            decode({"_sd": [_digest(disclosure)]}, [disclosure])

    @pytest.mark.unit
    def test_object_disclosure_in_array(self):
        """A property disclosure referenced from an array is the wrong kind."""
        disclosure = Disclosure("salt-value-abcdef", "a", 1)
        with pytest.raises(MismatchedDisclosureKind):
            decode({"arr": [{"...": _digest(disclosure)}]}, [disclosure])

    @pytest.mark.unit
    def test_array_wrapper_with_extra_keys(self):
        """A `...` wrapper must have no other members."""
        with pytest.raises(InvalidArrayDisclosureObject):
            decode({"arr": [{"...": "digest", "extra": 1}]}, [])

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "payload",
        [{"_sd": "digest"}, {"_sd": [1]}, {"arr": [{"...": 7}]}, {"_sd_alg": 256}],
    )
    def test_scaffolding_type_mismatch(self, payload):
        """Scaffolding values of the wrong JSON type are rejected."""
        with pytest.raises(DataTypeMismatch):
            decode(payload, [])

    @pytest.mark.unit
    def test_malformed_disclosure_text(self):
        """Unparseable disclosure text is reported."""
        with pytest.raises(MalformedDisclosure):
            decode({"a": 1}, ["!!!"])

    @pytest.mark.unit
    def test_hash_algorithm_mismatch(self):
        """The hasher must match `_sd_alg`."""
        with pytest.raises(UnsupportedHashAlgorithm) as exc_info:
            decode({"_sd_alg": "sha-512"}, [], Sha256Hasher())
        assert exc_info.value.alg == "sha-512"

    @pytest.mark.unit
    def test_integrity_errors_share_a_base(self):
        """Integrity failures can be caught together."""
        with pytest.raises(IntegrityError):
            decode({"_sd": ["d", "d"]}, [])


class TestSdObjectDecoder:
    """Test the hasher registry of the decoder."""

    @pytest.mark.unit
    def test_selects_hasher_from_sd_alg(self):
        """The payload's `_sd_alg` picks the registered hasher."""
        encoder = SdObjectEncoder({"a": 1}, hasher=Sha384Hasher())
        disclosure = encoder.conceal("/a")
        encoder.add_sd_alg_property()

        decoder = SdObjectDecoder([Sha256Hasher(), Sha384Hasher()])
        assert decoder.decode(encoder.object, [disclosure]) == {"a": 1}

    @pytest.mark.unit
    def test_defaults_to_sha256(self):
        """Without `_sd_alg`, SHA-256 is used."""
        assert payload_hash_alg({"a": 1}) == "sha-256"
        assert isinstance(SdObjectDecoder().determine_hasher({}), Sha256Hasher)

    @pytest.mark.unit
    def test_unregistered_algorithm(self):
        """An algorithm with no registered hasher is unsupported."""
        with pytest.raises(UnsupportedHashAlgorithm):
            SdObjectDecoder().determine_hasher({"_sd_alg": "sha-512"})

    @pytest.mark.unit
    def test_add_and_remove_hasher(self):
        """Hashers can be registered and unregistered by name."""
        decoder = SdObjectDecoder()
        assert decoder.add_hasher(Sha512Hasher()) is None
        assert isinstance(decoder.add_hasher(Sha512Hasher()), Sha512Hasher)
        assert isinstance(decoder.remove_hasher("sha-512"), Sha512Hasher)
        assert decoder.remove_hasher("sha-512") is None
        with pytest.raises(UnsupportedHashAlgorithm):
            decoder.determine_hasher({"_sd_alg": "sha-512"})

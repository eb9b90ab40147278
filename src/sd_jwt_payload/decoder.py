"""Reconstruction of disclosed claims from an SD-JWT payload.

Decoding replaces every digest that has a matching disclosure by the
disclosed value, drops every digest that has none (decoys and withheld
claims), and strips the `_sd`, `_sd_alg` and `...` scaffolding. It is a
pure function of its inputs.
"""

import logging
from typing import Any, Iterable, Optional, Union

from . import json_utils
from .disclosure import Disclosure
from .errors import (
    ClaimNameCollision,
    DataTypeMismatch,
    DuplicateDigest,
    InvalidArrayDisclosureObject,
    MismatchedDisclosureKind,
    UnsupportedHashAlgorithm,
    UnusedDisclosure,
)
from .hasher import SHA_ALG_NAME, Hasher, Sha256Hasher

logger = logging.getLogger(__name__)

DisclosureInput = Union[str, Disclosure]


def payload_hash_alg(payload: Any) -> str:
    """Get the hash algorithm named by a payload's `_sd_alg` claim.

    If the claim is absent, sha-256 is used.

    Raises:
        DataTypeMismatch: If `_sd_alg` is not a string
    """
    if not isinstance(payload, dict) or json_utils.SD_ALG_KEY not in payload:
        return SHA_ALG_NAME
    alg = payload[json_utils.SD_ALG_KEY]
    if not isinstance(alg, str):
        raise DataTypeMismatch("the value of `_sd_alg` is not a string")
    return alg


def _as_disclosure(item: DisclosureInput) -> Disclosure:
    if isinstance(item, Disclosure):
        return item
    return Disclosure.parse(item)


class _DecodeRun:
    """State of a single decode call."""

    def __init__(self, index: dict[str, Disclosure]):
        self.index = index
        self.seen: set[str] = set()
        self.consumed = 0

    def _lookup(self, digest: Any) -> Optional[Disclosure]:
        if not isinstance(digest, str):
            raise DataTypeMismatch(f"{digest!r} is not a string")
        if digest in self.seen:
            raise DuplicateDigest(digest)
        self.seen.add(digest)
        disclosure = self.index.get(digest)
        if disclosure is not None:
            self.consumed += 1
        return disclosure

    def value(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.object(value)
        if isinstance(value, list):
            return self.array(value)
        return value

    def object(self, obj: dict[str, Any]) -> dict[str, Any]:
        output: dict[str, Any] = {}
        for key, value in obj.items():
            if key != json_utils.DIGESTS_KEY:
                output[key] = self.value(value)
                continue

            if not isinstance(value, list):
                raise DataTypeMismatch(f"{json_utils.DIGESTS_KEY} is not an array")
            for digest in value:
                disclosure = self._lookup(digest)
                if disclosure is None:
                    continue
                if disclosure.claim_name is None:
                    raise MismatchedDisclosureKind(
                        f"array element disclosure referenced from `_sd`: {disclosure.encoded}"
                    )
                name = disclosure.claim_name
                if name in output or (name in obj and name != json_utils.DIGESTS_KEY):
                    raise ClaimNameCollision(name)
                output[name] = self.value(disclosure.claim_value)
        return output

    def array(self, array: list[Any]) -> list[Any]:
        output: list[Any] = []
        for element in array:
            if not (isinstance(element, dict) and json_utils.ARRAY_DIGEST_KEY in element):
                output.append(self.value(element))
                continue

            if len(element) != 1:
                raise InvalidArrayDisclosureObject()
            disclosure = self._lookup(element[json_utils.ARRAY_DIGEST_KEY])
            if disclosure is None:
                continue
            if disclosure.claim_name is not None:
                raise MismatchedDisclosureKind(
                    f"object property disclosure referenced from an array: {disclosure.encoded}"
                )
            output.append(self.value(disclosure.claim_value))
        return output


def decode(
    payload: Union[dict[str, Any], list[Any]],
    disclosures: Iterable[DisclosureInput],
    hasher: Optional[Hasher] = None,
) -> Union[dict[str, Any], list[Any]]:
    """Decode an SD-JWT payload with a set of disclosures.

    Args:
        payload: Claim tree with `_sd` / `...` digests
        disclosures: Disclosures as objects or base64url strings
        hasher: Hash function matching the payload's `_sd_alg` (SHA-256 if None)

    Returns:
        The disclosed claim tree with all scaffolding removed

    Raises:
        UnsupportedHashAlgorithm: If `_sd_alg` does not match the hasher
        MalformedDisclosure: If a disclosure string cannot be parsed
        DuplicateDigest: If a digest appears more than once
        ClaimNameCollision: If a disclosed claim name already exists
        MismatchedDisclosureKind: If a disclosure is used in the wrong position
        UnusedDisclosure: If any disclosure is not referenced by the payload
    """
    if hasher is None:
        hasher = Sha256Hasher()
    alg = payload_hash_alg(payload)
    if alg != hasher.alg_name:
        raise UnsupportedHashAlgorithm(
            f'the payload requires "{alg}", but the provided hasher uses "{hasher.alg_name}"',
            alg,
        )

    index: dict[str, Disclosure] = {}
    for item in disclosures:
        disclosure = _as_disclosure(item)
        digest = disclosure.digest(hasher)
        if digest in index:
            raise DuplicateDigest(digest)
        index[digest] = disclosure

    run = _DecodeRun(index)
    decoded = run.value(payload)

    if run.consumed != len(index):
        raise UnusedDisclosure(len(index) - run.consumed)

    if isinstance(decoded, dict):
        decoded.pop(json_utils.SD_ALG_KEY, None)
    logger.debug("Decoded payload using %d disclosure(s)", run.consumed)
    return decoded


class SdObjectDecoder:
    """Substitutes digests in an SD-JWT payload by the values of their disclosures.

    The hasher is selected by the payload's `_sd_alg` claim from the
    hashers registered on the decoder.
    """

    def __init__(self, hashers: Optional[Iterable[Hasher]] = None):
        """Initialize the decoder.

        Args:
            hashers: Hashers to register (only SHA-256 if None)
        """
        self._hashers: dict[str, Hasher] = {}
        for hasher in hashers if hashers is not None else [Sha256Hasher()]:
            self.add_hasher(hasher)

    def add_hasher(self, hasher: Hasher) -> Optional[Hasher]:
        """Register a hasher, replacing and returning any hasher for the same algorithm."""
        previous = self._hashers.get(hasher.alg_name)
        self._hashers[hasher.alg_name] = hasher
        return previous

    def remove_hasher(self, alg_name: str) -> Optional[Hasher]:
        """Unregister and return the hasher for an algorithm, if any."""
        return self._hashers.pop(alg_name, None)

    def determine_hasher(self, payload: Any) -> Hasher:
        """Select the registered hasher named by the payload's `_sd_alg`.

        Raises:
            UnsupportedHashAlgorithm: If no hasher is registered for it
        """
        alg = payload_hash_alg(payload)
        hasher = self._hashers.get(alg)
        if hasher is None:
            raise UnsupportedHashAlgorithm(f"no hasher is registered for {alg}", alg)
        return hasher

    def decode(
        self,
        payload: Union[dict[str, Any], list[Any]],
        disclosures: Iterable[DisclosureInput],
    ) -> Union[dict[str, Any], list[Any]]:
        """Decode a payload with the hasher its `_sd_alg` names.

        See :func:`decode` for the errors raised.
        """
        return decode(payload, disclosures, self.determine_hasher(payload))

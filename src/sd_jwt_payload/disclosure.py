"""Disclosure encoding, decoding and digesting.

A disclosure is the opening material for one concealed value:

    object property:  ["<salt>", "<claim name>", <claim value>]
    array element:    ["<salt>", <claim value>]

serialized as JSON and then as padding-free base64url. The digest placed
in the payload is computed over the base64url text exactly as it is
transported, so a parsed disclosure keeps its received text.
"""

from typing import Any, Optional

from . import json_utils
from .errors import MalformedDisclosure
from .hasher import Hasher

_RESERVED_CLAIM_NAMES = (json_utils.DIGESTS_KEY, json_utils.ARRAY_DIGEST_KEY)


class Disclosure:
    """A disclosable value, either an object property or an array element.

    Instances are immutable. ``encoded`` and per-algorithm digests are
    computed once and memoized.
    """

    __slots__ = ("_salt", "_claim_name", "_claim_value", "_encoded", "_digested_by", "_digest")

    def __init__(
        self,
        salt: str,
        claim_name: Optional[str],
        claim_value: Any,
        encoded: Optional[str] = None,
    ):
        """Create a disclosure.

        Args:
            salt: base64url salt string
            claim_name: Claim name for object properties, None for array elements
            claim_value: Any JSON value
            encoded: Received text form, kept verbatim when parsing
        """
        self._salt = salt
        self._claim_name = claim_name
        self._claim_value = claim_value
        self._encoded = encoded
        self._digested_by: Optional[Hasher] = None
        self._digest: Optional[str] = None

    @property
    def salt(self) -> str:
        return self._salt

    @property
    def claim_name(self) -> Optional[str]:
        return self._claim_name

    @property
    def claim_value(self) -> Any:
        return self._claim_value

    @property
    def is_array_element(self) -> bool:
        """True for array-element disclosures (no claim name)."""
        return self._claim_name is None

    @property
    def encoded(self) -> str:
        """The base64url text form of this disclosure."""
        if self._encoded is None:
            self._encoded = _encode_fields(self._salt, self._claim_name, self._claim_value)
        return self._encoded

    def digest(self, hasher: Hasher) -> str:
        """Compute the base64url digest of this disclosure.

        Args:
            hasher: Hash function to use

        Returns:
            base64url-encoded digest of ``encoded``
        """
        # Reused only for the same hasher object, never by algorithm name
        if self._digested_by is not hasher:
            self._digest = hasher.encoded_digest(self.encoded)
            self._digested_by = hasher
        return self._digest

    @classmethod
    def parse(cls, text: str) -> "Disclosure":
        """Parse a base64url encoded disclosure.

        Args:
            text: base64url disclosure text

        Returns:
            Parsed disclosure that remembers ``text`` as its encoded form

        Raises:
            MalformedDisclosure: If the input is not a valid disclosure
        """
        try:
            decoded = json_utils.decode_b64url_json(text)
        except ValueError as err:
            raise MalformedDisclosure(f"disclosure could not be decoded: {text}") from err

        if not isinstance(decoded, list):
            raise MalformedDisclosure(f"decoded disclosure is not an array: {text}")

        if len(decoded) == 2:
            salt, claim_value = decoded
            claim_name = None
        elif len(decoded) == 3:
            salt, claim_name, claim_value = decoded
            if not isinstance(claim_name, str):
                raise MalformedDisclosure("claim name could not be parsed as a string")
            if claim_name in _RESERVED_CLAIM_NAMES:
                raise MalformedDisclosure(f"claim name {claim_name} is reserved")
        else:
            raise MalformedDisclosure(
                f"deserialized array has an invalid length of {len(decoded)}"
            )

        if not isinstance(salt, str):
            raise MalformedDisclosure("salt could not be parsed as a string")

        return cls(salt, claim_name, claim_value, encoded=text)

    def __str__(self) -> str:
        return self.encoded

    def __repr__(self) -> str:
        if self._claim_name is None:
            return f"Disclosure(salt={self._salt!r}, claim_value={self._claim_value!r})"
        return (
            f"Disclosure(salt={self._salt!r}, claim_name={self._claim_name!r}, "
            f"claim_value={self._claim_value!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Disclosure):
            return NotImplemented
        return (
            self._salt == other._salt
            and self._claim_name == other._claim_name
            and self._claim_value == other._claim_value
        )

    def __hash__(self) -> int:
        return hash((self._salt, self._claim_name, json_utils.encode(self._claim_value)))


def _encode_fields(salt: str, claim_name: Optional[str], claim_value: Any) -> str:
    parts = [json_utils.encode(salt)]
    if claim_name is not None:
        parts.append(json_utils.encode(claim_name))
    parts.append(json_utils.encode(claim_value))
    return json_utils.b64url_encode("[" + ", ".join(parts) + "]")


def encode(disclosure: Disclosure) -> str:
    """Encode a disclosure to its base64url text form."""
    return disclosure.encoded


def decode(text: str) -> Disclosure:
    """Decode a base64url disclosure text.

    Raises:
        MalformedDisclosure: If the input is not a valid disclosure
    """
    return Disclosure.parse(text)


def digest(disclosure: Disclosure, hasher: Hasher) -> str:
    """Compute the base64url digest of a disclosure with the given hasher."""
    return disclosure.digest(hasher)

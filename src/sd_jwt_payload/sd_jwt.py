"""Issued and presented SD-JWTs.

Compact form::

    <issuer-signed JWT>~<disclosure 1>~...~<disclosure n>~[<KB-JWT>]

A trailing "~" with nothing after it means no KB-JWT is attached.
"""

import logging
from typing import Any, Optional, Union

from . import json_utils
from .decoder import SdObjectDecoder, decode, payload_hash_alg
from .disclosure import Disclosure
from .errors import (
    BuilderStateError,
    InvalidPath,
    MalformedCompactSerialization,
    MalformedDisclosure,
    NotFound,
    UnsupportedHashAlgorithm,
)
from .hasher import Hasher, Sha256Hasher, Sha384Hasher, Sha512Hasher
from .jwt import Jwt
from .key_binding import KeyBindingJwt, RequiredKeyBinding, required_key_binding
from .pointer import array_index, format_pointer, is_digest_wrapper, parse_pointer

logger = logging.getLogger(__name__)

HEADER_TYP = "sd-jwt"

_default_decoder = SdObjectDecoder([Sha256Hasher(), Sha384Hasher(), Sha512Hasher()])


def _check_hasher(claims: dict[str, Any], hasher: Hasher) -> None:
    required = payload_hash_alg(claims)
    if required != hasher.alg_name:
        raise UnsupportedHashAlgorithm(
            f'the provided hasher uses algorithm "{hasher.alg_name}", '
            f'but algorithm "{required}" is required',
            required,
        )


class SdJwt:
    """An SD-JWT: issuer-signed JWT, disclosures and an optional KB-JWT.

    The signed JWT is never modified. Narrower presentations are made with
    :meth:`into_presentation`.
    """

    def __init__(
        self,
        jwt: Jwt,
        disclosures: list[Disclosure],
        key_binding_jwt: Optional[KeyBindingJwt] = None,
    ):
        self._jwt = jwt
        self._disclosures = list(disclosures)
        self._key_binding_jwt = key_binding_jwt

    @classmethod
    def parse(cls, text: str) -> "SdJwt":
        """Parse the compact form of an SD-JWT.

        Raises:
            MalformedCompactSerialization: If the JWT, any disclosure or the
                KB-JWT cannot be parsed
        """
        segments = text.split("~")
        if len(segments) < 2:
            raise MalformedCompactSerialization("SD-JWT format is invalid, less than 2 segments")

        jwt = Jwt.parse(segments[0])
        try:
            disclosures = [Disclosure.parse(segment) for segment in segments[1:-1]]
        except MalformedDisclosure as err:
            raise MalformedCompactSerialization(f"invalid disclosure: {err}") from err

        key_binding_jwt = KeyBindingJwt.parse(segments[-1]) if segments[-1] else None
        return cls(jwt, disclosures, key_binding_jwt)

    @property
    def jwt(self) -> Jwt:
        return self._jwt

    @property
    def header(self) -> dict[str, Any]:
        return self._jwt.header

    @property
    def claims(self) -> dict[str, Any]:
        """The signed payload, with digests in place of concealed claims."""
        return self._jwt.claims

    @property
    def disclosures(self) -> list[Disclosure]:
        return list(self._disclosures)

    @property
    def key_binding_jwt(self) -> Optional[KeyBindingJwt]:
        return self._key_binding_jwt

    @property
    def required_key_bind(self) -> Optional[RequiredKeyBinding]:
        return required_key_binding(self.claims)

    @property
    def hash_alg(self) -> str:
        """The hash algorithm named by `_sd_alg` (sha-256 if absent)."""
        return payload_hash_alg(self.claims)

    def default_hasher(self) -> Hasher:
        """A hasher for the algorithm named by `_sd_alg`.

        Raises:
            UnsupportedHashAlgorithm: If the algorithm is not one of the SHA-2 hashers
        """
        return _default_decoder.determine_hasher(self.claims)

    def attach_key_binding_jwt(self, kb_jwt: KeyBindingJwt) -> None:
        self._key_binding_jwt = kb_jwt

    def presentation_without_key_binding(self) -> str:
        """The compact form up to and including the last "~", as covered by `sd_hash`."""
        return str(self._jwt) + "~" + "".join(d.encoded + "~" for d in self._disclosures)

    def presentation(self) -> str:
        """Serialize to the compact form."""
        kb = str(self._key_binding_jwt) if self._key_binding_jwt is not None else ""
        return self.presentation_without_key_binding() + kb

    def into_disclosed_object(self, hasher: Optional[Hasher] = None) -> dict[str, Any]:
        """Decode the payload with the held disclosures.

        Args:
            hasher: Hash function; selected from `_sd_alg` if None

        Raises:
            UnsupportedHashAlgorithm: If hasher does not match `_sd_alg`
            IntegrityError: On duplicate digests, claim collisions or
                unused disclosures
        """
        if hasher is None:
            return _default_decoder.decode(self.claims, self._disclosures)
        return decode(self.claims, self._disclosures, hasher)

    def into_presentation(self, hasher: Optional[Hasher] = None) -> "SdJwtPresentationBuilder":
        """Start a presentation from this token's disclosures."""
        return SdJwtPresentationBuilder(self, hasher)

    def __str__(self) -> str:
        return self.presentation()

    def __repr__(self) -> str:
        return (
            f"SdJwt(jwt={self._jwt!r}, disclosures={len(self._disclosures)}, "
            f"key_binding_jwt={self._key_binding_jwt is not None})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SdJwt):
            return NotImplemented
        return self.presentation() == other.presentation()

    def __hash__(self) -> int:
        return hash(self.presentation())


def _find_digest(obj: dict[str, Any], key: str, held: dict[str, Disclosure]) -> Optional[str]:
    sd = obj.get(json_utils.DIGESTS_KEY)
    if not isinstance(sd, list):
        return None
    for digest in sd:
        disclosure = held.get(digest) if isinstance(digest, str) else None
        if disclosure is not None and disclosure.claim_name == key:
            return digest
    return None


def _nested_digests(value: Any, held: dict[str, Disclosure]) -> list[str]:
    """Digests of held disclosures reachable from ``value``, innermost first."""
    digests: list[str] = []

    def visit(node: Any) -> None:
        if isinstance(node, dict):
            sd = node.get(json_utils.DIGESTS_KEY)
            if isinstance(sd, list):
                for digest in sd:
                    take(digest)
            for key, member in node.items():
                if key != json_utils.DIGESTS_KEY:
                    visit(member)
        elif isinstance(node, list):
            for element in node:
                if is_digest_wrapper(element):
                    take(element[json_utils.ARRAY_DIGEST_KEY])
                else:
                    visit(element)

    def take(digest: Any) -> None:
        if isinstance(digest, str) and digest in held and digest not in digests:
            visit(held[digest].claim_value)
            digests.append(digest)

    visit(value)
    return digests


class SdJwtPresentationBuilder:
    """Narrows the disclosures of an issued SD-JWT for presentation.

    Removing disclosures never touches the signed JWT. The remaining
    disclosures keep their issuance order.
    """

    def __init__(self, sd_jwt: SdJwt, hasher: Optional[Hasher] = None):
        """Initialize the builder.

        Args:
            sd_jwt: The issued token
            hasher: Hash function matching the token's `_sd_alg` (selected from
                `_sd_alg` if None)

        Raises:
            UnsupportedHashAlgorithm: If hasher does not match `_sd_alg`
        """
        if hasher is None:
            hasher = sd_jwt.default_hasher()
        _check_hasher(sd_jwt.claims, hasher)
        self._hasher = hasher
        self._sd_jwt = sd_jwt
        self._all = {d.digest(self._hasher): d for d in sd_jwt.disclosures}
        self._held = dict(self._all)
        self._key_binding_jwt = sd_jwt.key_binding_jwt
        self._finished = False

    def _check_not_finished(self) -> None:
        if self._finished:
            raise BuilderStateError("the presentation has already been finished")

    @property
    def disclosures(self) -> list[Disclosure]:
        """Currently held disclosures."""
        return list(self._held.values())

    def _locate(self, pointer: str) -> str:
        tokens = parse_pointer(pointer)
        if not tokens:
            raise InvalidPath("the root of the object cannot be concealed", pointer)

        current: Any = self._sd_jwt.claims
        for depth, token in enumerate(tokens):
            last = depth == len(tokens) - 1
            if isinstance(current, dict):
                digest = _find_digest(current, token, self._held)
                if digest is None:
                    if last or token not in current:
                        raise NotFound(
                            f"no disclosure is held for {format_pointer(tokens[: depth + 1])}"
                        )
                    current = current[token]
                    continue
            elif isinstance(current, list):
                element = current[array_index(token, current, pointer)]
                if not is_digest_wrapper(element):
                    if last:
                        raise NotFound(f"{pointer} is not a concealable array element")
                    current = element
                    continue
                digest = element[json_utils.ARRAY_DIGEST_KEY]
                if digest not in self._held:
                    raise NotFound(
                        f"no disclosure is held for {format_pointer(tokens[: depth + 1])}"
                    )
            else:
                raise InvalidPath(
                    f"{format_pointer(tokens[:depth])} is neither an object nor an array", pointer
                )

            if last:
                return digest
            current = self._held[digest].claim_value

        raise NotFound(f"no disclosure is held for {pointer}")

    def conceal(self, pointer: str) -> list[Disclosure]:
        """Drop the disclosure for the value at ``pointer``.

        Disclosures nested inside the concealed value are dropped too.

        Returns:
            The removed disclosures, the one for ``pointer`` last

        Raises:
            InvalidPath: If the pointer traverses through a scalar or past an array end
            NotFound: If no held disclosure matches the pointer
        """
        self._check_not_finished()
        digest = self._locate(pointer)
        digests = _nested_digests(self._held[digest].claim_value, self._held)
        digests.append(digest)
        removed = [self._held.pop(d) for d in digests]
        logger.debug("Concealed %d disclosure(s) from presentation", len(removed))
        return removed

    def conceal_digest(self, digest: str) -> Disclosure:
        """Drop the one disclosure with the given digest.

        Raises:
            NotFound: If no held disclosure has that digest
        """
        self._check_not_finished()
        try:
            return self._held.pop(digest)
        except KeyError:
            raise NotFound(f"no disclosure is held for digest {digest}") from None

    def disclose_all(self) -> None:
        """Restore every disclosure of the issued token."""
        self._check_not_finished()
        self._held = dict(self._all)

    def conceal_all(self) -> None:
        """Drop every disclosure."""
        self._check_not_finished()
        self._held.clear()

    def attach_key_binding_jwt(self, kb_jwt: KeyBindingJwt) -> None:
        self._check_not_finished()
        self._key_binding_jwt = kb_jwt

    def presentation_without_key_binding(self) -> str:
        """The compact form of the current disclosure subset, for `sd_hash`."""
        return SdJwt(self._sd_jwt.jwt, self.disclosures).presentation_without_key_binding()

    def finish(self) -> SdJwt:
        """Assemble the presented token from the held disclosures."""
        self._finished = True
        logger.debug(
            "Presenting %d of %d disclosure(s)", len(self._held), len(self._all)
        )
        return SdJwt(self._sd_jwt.jwt, self.disclosures, self._key_binding_jwt)


TokenInput = Union[str, SdJwt]


def as_sd_jwt(token: TokenInput) -> SdJwt:
    """Parse compact text, or pass an SdJwt through."""
    if isinstance(token, SdJwt):
        return token
    return SdJwt.parse(token)

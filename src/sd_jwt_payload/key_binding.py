"""SD-JWT key binding.

An issuer can require key binding by placing a `cnf` claim in the
credential. The holder then proves possession of that key with a
KB-JWT whose `sd_hash` claim commits to the exact presented token:

    sd_hash = base64url(hash("<issuer-jwt>~<disclosure 1>~...~<disclosure n>~"))
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from . import json_utils
from .decoder import payload_hash_alg
from .errors import (
    BuilderStateError,
    DataTypeMismatch,
    MalformedCompactSerialization,
    UnsupportedHashAlgorithm,
)
from .hasher import Hasher
from .jws import JwsSigner, sign_to_jwt
from .jwt import Jwt

logger = logging.getLogger(__name__)

KB_JWT_HEADER_TYP = "kb+jwt"

_KB_CLAIM_NAMES = ("iat", "aud", "nonce", "sd_hash")


class RequiredKeyBinding(ABC):
    """Key the issuer requires the holder to prove possession of.

    Use :class:`Kid` or :class:`Jwk`; passing ``None`` where a
    requirement is expected means no key binding.
    """

    @abstractmethod
    def to_cnf(self) -> dict[str, Any]:
        """The `cnf` claim value for this requirement."""

    @staticmethod
    def from_cnf(cnf: Any) -> "RequiredKeyBinding":
        """Read a requirement back from a `cnf` claim value.

        Raises:
            DataTypeMismatch: If the claim is not a supported confirmation method
        """
        if isinstance(cnf, dict):
            if isinstance(cnf.get("kid"), str):
                return Kid(cnf["kid"])
            if isinstance(cnf.get("jwk"), dict):
                return Jwk(cnf["jwk"])
        raise DataTypeMismatch(f"unsupported cnf claim: {cnf!r}")


@dataclass(frozen=True)
class Kid(RequiredKeyBinding):
    """Key binding to a key referenced by its identifier."""

    kid: str

    def to_cnf(self) -> dict[str, Any]:
        return {"kid": self.kid}


@dataclass(frozen=True)
class Jwk(RequiredKeyBinding):
    """Key binding to an embedded public JWK."""

    jwk: dict[str, Any]

    def to_cnf(self) -> dict[str, Any]:
        return {"jwk": dict(self.jwk)}


def sd_hash(presentation: str, hasher: Hasher) -> str:
    """Digest a presented SD-JWT (without its KB-JWT) for the `sd_hash` claim."""
    return hasher.encoded_digest(presentation)


@dataclass
class KeyBindingJwtClaims:
    """Claims of a KB-JWT."""

    iat: int
    aud: str
    nonce: str
    sd_hash: str
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        hasher: Hasher,
        jwt: str,
        disclosures: list[str],
        nonce: str,
        aud: str,
        iat: int,
    ) -> "KeyBindingJwtClaims":
        """Create claims bound to an issuer JWT and the presented disclosures."""
        presentation = jwt + "~" + "".join(d + "~" for d in disclosures)
        return cls(iat=iat, aud=aud, nonce=nonce, sd_hash=sd_hash(presentation, hasher))

    def to_dict(self) -> dict[str, Any]:
        claims: dict[str, Any] = {
            "iat": self.iat,
            "aud": self.aud,
            "nonce": self.nonce,
            "sd_hash": self.sd_hash,
        }
        for name, value in self.properties.items():
            if name not in claims:
                claims[name] = value
        return claims

    @classmethod
    def from_dict(cls, claims: dict[str, Any]) -> "KeyBindingJwtClaims":
        """Read KB-JWT claims.

        Raises:
            DataTypeMismatch: If a required claim is missing or mistyped
        """
        if not isinstance(claims.get("iat"), int) or isinstance(claims.get("iat"), bool):
            raise DataTypeMismatch("KB-JWT claim iat must be an integer")
        for name in ("aud", "nonce", "sd_hash"):
            if not isinstance(claims.get(name), str):
                raise DataTypeMismatch(f"KB-JWT claim {name} must be a string")
        properties = {k: v for k, v in claims.items() if k not in _KB_CLAIM_NAMES}
        return cls(
            iat=claims["iat"],
            aud=claims["aud"],
            nonce=claims["nonce"],
            sd_hash=claims["sd_hash"],
            properties=properties,
        )


class KeyBindingJwt:
    """A signed KB-JWT."""

    def __init__(self, jwt: Jwt):
        self._jwt = jwt
        self._claims = KeyBindingJwtClaims.from_dict(jwt.claims)

    @classmethod
    def parse(cls, text: str) -> "KeyBindingJwt":
        """Parse a compact KB-JWT.

        Raises:
            MalformedCompactSerialization: If the text is not a KB-JWT
        """
        jwt = Jwt.parse(text)
        if jwt.header.get("typ") != KB_JWT_HEADER_TYP:
            raise MalformedCompactSerialization(
                f'invalid KB-JWT: header typ must be "{KB_JWT_HEADER_TYP}"'
            )
        try:
            return cls(jwt)
        except DataTypeMismatch as err:
            raise MalformedCompactSerialization(f"invalid KB-JWT: {err}") from err

    @property
    def jwt(self) -> Jwt:
        return self._jwt

    @property
    def header(self) -> dict[str, Any]:
        return self._jwt.header

    @property
    def claims(self) -> KeyBindingJwtClaims:
        return self._claims

    def __str__(self) -> str:
        return str(self._jwt)

    def __repr__(self) -> str:
        return f"KeyBindingJwt({self._jwt!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyBindingJwt):
            return NotImplemented
        return self._jwt == other._jwt

    def __hash__(self) -> int:
        return hash(self._jwt)


class KeyBindingJwtBuilder:
    """Builds a KB-JWT for a presented SD-JWT.

    Setters return the builder, so calls can be chained::

        kb_jwt = (
            KeyBindingJwtBuilder()
            .nonce("abc")
            .aud("https://verifier.example")
            .finish(presented, Sha256Hasher(), "ES256", signer)
        )
    """

    def __init__(self):
        self._nonce: Optional[str] = None
        self._aud: Optional[str] = None
        self._iat: Optional[int] = None
        self._header: dict[str, Any] = {}
        self._properties: dict[str, Any] = {}

    def nonce(self, nonce: str) -> "KeyBindingJwtBuilder":
        self._nonce = nonce
        return self

    def aud(self, aud: str) -> "KeyBindingJwtBuilder":
        self._aud = aud
        return self

    def iat(self, iat: int) -> "KeyBindingJwtBuilder":
        """Set the issuance time. Defaults to the current time at ``finish``."""
        self._iat = iat
        return self

    def header(self, header: dict[str, Any]) -> "KeyBindingJwtBuilder":
        """Add extra JOSE header fields. "typ" and "alg" cannot be overridden."""
        self._header.update(header)
        return self

    def insert_property(self, name: str, value: Any) -> "KeyBindingJwtBuilder":
        """Add an extra claim to the KB-JWT payload."""
        self._properties[name] = value
        return self

    def finish(
        self,
        sd_jwt: Union[str, Any],
        hasher: Hasher,
        alg: str,
        signer: JwsSigner,
    ) -> KeyBindingJwt:
        """Sign a KB-JWT bound to ``sd_jwt``.

        Args:
            sd_jwt: The presented SD-JWT, either an SdJwt (any attached KB-JWT
                is ignored) or compact text without a KB-JWT, ending with "~"
            hasher: Hash function for `sd_hash`, matching the token's `_sd_alg`
            alg: JWS algorithm identifier for the header
            signer: Signing capability

        Raises:
            BuilderStateError: If nonce or aud has not been set
            UnsupportedHashAlgorithm: If hasher does not match `_sd_alg`
            SigningFailure: If the signer fails
        """
        if self._nonce is None:
            raise BuilderStateError("a nonce is required to build a KB-JWT")
        if self._aud is None:
            raise BuilderStateError("an audience is required to build a KB-JWT")

        if isinstance(sd_jwt, str):
            presentation = sd_jwt
        else:
            required = payload_hash_alg(sd_jwt.claims)
            if required != hasher.alg_name:
                raise UnsupportedHashAlgorithm(
                    f'the provided hasher uses algorithm "{hasher.alg_name}", '
                    f'but algorithm "{required}" is required',
                    required,
                )
            presentation = sd_jwt.presentation_without_key_binding()

        claims = KeyBindingJwtClaims(
            iat=self._iat if self._iat is not None else int(time.time()),
            aud=self._aud,
            nonce=self._nonce,
            sd_hash=sd_hash(presentation, hasher),
            properties=dict(self._properties),
        )
        header = {"typ": KB_JWT_HEADER_TYP, "alg": alg}
        for name, value in self._header.items():
            header.setdefault(name, value)

        jwt = sign_to_jwt(signer, header, claims.to_dict())
        logger.debug("Signed KB-JWT with %s", alg)
        return KeyBindingJwt(jwt)


def required_key_binding(claims: dict[str, Any]) -> Optional[RequiredKeyBinding]:
    """Get the key binding required by a claim set, if any."""
    cnf = claims.get(json_utils.CNF_KEY)
    if cnf is None:
        return None
    return RequiredKeyBinding.from_cnf(cnf)

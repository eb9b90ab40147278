"""SD-JWT issuance."""

import logging
from typing import Any, Optional

from . import json_utils
from .disclosure import Disclosure
from .encoder import DEFAULT_SALT_SIZE, SaltGenerator, SdObjectEncoder
from .errors import BuilderStateError, DataTypeMismatch, MissingSdAlg
from .hasher import Hasher
from .jws import JwsSigner, sign_to_jwt
from .key_binding import RequiredKeyBinding
from .sd_jwt import HEADER_TYP, SdJwt

logger = logging.getLogger(__name__)

_UNSET = object()


class SdJwtBuilder:
    """Builds an SD-JWT from a claim set.

    Conceal nested values before their ancestors::

        builder = SdJwtBuilder(claims)
        builder.conceal("/address/street_address")
        builder.conceal("/address")
        builder.add_decoys("", 2)
        builder.set_hash_algorithm_claim()
        sd_jwt = builder.finish(signer, "ES256")

    A builder can be finished once. A failed signing attempt leaves it usable.
    """

    def __init__(
        self,
        claims: dict[str, Any],
        hasher: Optional[Hasher] = None,
        salt_size: int = DEFAULT_SALT_SIZE,
        salt_generator: Optional[SaltGenerator] = None,
    ):
        """Initialize the builder.

        Args:
            claims: Claim set; a deep copy is taken
            hasher: Hash function for digests (SHA-256 if None)
            salt_size: Salt length in bytes, at least 16
            salt_generator: Optional custom salt generator

        Raises:
            DataTypeMismatch: If claims is not a JSON object
            InvalidSaltSize: If salt_size is below 16
        """
        if not isinstance(claims, dict):
            raise DataTypeMismatch("SD-JWT claims must be a JSON object")
        self._encoder = SdObjectEncoder(claims, hasher, salt_size, salt_generator)
        self._disclosures: list[Disclosure] = []
        self._key_bind: Any = _UNSET
        self._header: dict[str, Any] = {}
        self._finished = False

    def _check_not_finished(self) -> None:
        if self._finished:
            raise BuilderStateError("the SD-JWT has already been issued by this builder")

    @property
    def disclosures(self) -> list[Disclosure]:
        """Disclosures created so far, in concealment order."""
        return list(self._disclosures)

    @property
    def hasher(self) -> Hasher:
        return self._encoder.hasher

    def conceal(self, pointer: str, salt: Optional[str] = None) -> Disclosure:
        """Make the value at ``pointer`` selectively disclosable.

        Returns:
            The disclosure for the concealed value

        Raises:
            InvalidPath: If the pointer does not resolve, or addresses the root
            AlreadyConcealed: If the value (or an ancestor) is already concealed
        """
        self._check_not_finished()
        disclosure = self._encoder.conceal(pointer, salt)
        self._disclosures.append(disclosure)
        return disclosure

    def add_decoys(self, pointer: str, number_of_decoys: int) -> None:
        """Add decoy digests to the object or array at ``pointer``."""
        self._check_not_finished()
        self._encoder.add_decoys(pointer, number_of_decoys)
        logger.debug("Added %d decoy digest(s)", number_of_decoys)

    def set_hash_algorithm_claim(self) -> None:
        """Write the top-level `_sd_alg` claim for the configured hasher."""
        self._check_not_finished()
        self._encoder.add_sd_alg_property()

    def require_key_binding(self, requirement: Optional[RequiredKeyBinding]) -> None:
        """Set the `cnf` claim, or remove it when ``requirement`` is None."""
        self._check_not_finished()
        self._key_bind = requirement

    def header(self, header: dict[str, Any]) -> None:
        """Add extra JOSE header fields. "typ" and "alg" cannot be overridden."""
        self._check_not_finished()
        self._header.update(header)

    def finish(self, signer: JwsSigner, alg: str) -> SdJwt:
        """Sign the payload and return the issued SD-JWT.

        Args:
            signer: Signing capability
            alg: JWS algorithm identifier written into the header

        Raises:
            BuilderStateError: If the builder has already been finished
            MissingSdAlg: If digests are present but `_sd_alg` is not
            SigningFailure: If the signer fails
        """
        self._check_not_finished()

        payload = dict(self._encoder.object)
        if self._encoder.has_digests() and json_utils.SD_ALG_KEY not in payload:
            raise MissingSdAlg(
                "the payload contains digests but no `_sd_alg` claim; "
                "call set_hash_algorithm_claim() first"
            )
        if self._key_bind is None:
            payload.pop(json_utils.CNF_KEY, None)
        elif self._key_bind is not _UNSET:
            payload[json_utils.CNF_KEY] = self._key_bind.to_cnf()

        header = {"typ": HEADER_TYP, "alg": alg}
        for name, value in self._header.items():
            header.setdefault(name, value)

        jwt = sign_to_jwt(signer, header, payload)
        self._finished = True
        logger.debug(
            "Issued SD-JWT with %d disclosure(s) using %s", len(self._disclosures), alg
        )
        return SdJwt(jwt, self._disclosures)

"""Concealment of claim values and decoy insertion for SD-JWT.

The encoder owns a mutable copy of a claim tree. Each concealment replaces
one value by the digest of a freshly salted disclosure:

- an object property is removed and its digest appended to the parent's
  ``_sd`` array
- an array element is replaced in place by ``{"...": digest}``

Nested values must be concealed before their ancestors so that the
ancestor's disclosure captures the already-substituted subtree.
"""

import copy
import secrets
from typing import Any, Optional, Protocol, Union

from . import json_utils
from .disclosure import Disclosure
from .errors import DataTypeMismatch, InvalidPath, InvalidSaltSize
from .hasher import Hasher, Sha256Hasher
from .pointer import ObjectSlot, RootSlot, is_digest_wrapper, resolve, resolve_container

# Salt length in bytes (128 bits)
DEFAULT_SALT_SIZE = 16
MIN_SALT_SIZE = 16


class SaltGenerator(Protocol):
    """Protocol for generating cryptographic salts for disclosures."""

    def generate_salt(self, length: int = DEFAULT_SALT_SIZE) -> bytes:
        """Generate a cryptographic salt.

        Args:
            length: Salt length in bytes (default 16 for 128 bits)

        Returns:
            Random salt bytes
        """


class SecureSaltGenerator:
    """Cryptographically secure salt generator using secrets module."""

    def generate_salt(self, length: int = DEFAULT_SALT_SIZE) -> bytes:
        """Generate a cryptographically secure salt.

        Args:
            length: Salt length in bytes (default 16 for 128 bits)

        Returns:
            Cryptographically secure random salt bytes
        """
        return secrets.token_bytes(length)


class SeededSaltGenerator:
    """Deterministic salt generator for testing purposes.

    WARNING: This generator is NOT cryptographically secure and should
    only be used for testing and reproducible examples.
    """

    def __init__(self, seed: int = 42):
        """Initialize with a seed value.

        Args:
            seed: Integer seed for deterministic salt generation
        """
        import random

        self._random = random.Random(seed)

    def generate_salt(self, length: int = DEFAULT_SALT_SIZE) -> bytes:
        """Generate a deterministic salt based on the seed.

        Args:
            length: Salt length in bytes (default 16 for 128 bits)

        Returns:
            Deterministic salt bytes (NOT cryptographically secure)
        """
        return bytes(self._random.getrandbits(8) for _ in range(length))


# Default secure salt generator instance
_default_salt_generator = SecureSaltGenerator()


def _append_digest(obj: dict[str, Any], digest: str) -> None:
    sd = obj.setdefault(json_utils.DIGESTS_KEY, [])
    sd.append(digest)


def _check_digest_array(obj: dict[str, Any]) -> None:
    sd = obj.get(json_utils.DIGESTS_KEY)
    if sd is not None and not isinstance(sd, list):
        raise DataTypeMismatch("invalid object: existing `_sd` type is not an array")


def contains_digests(value: Any) -> bool:
    """Check if a tree holds any `_sd` array or array digest wrapper."""
    if isinstance(value, dict):
        if json_utils.DIGESTS_KEY in value or is_digest_wrapper(value):
            return True
        return any(contains_digests(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_digests(v) for v in value)
    return False


class SdObjectEncoder:
    """Transforms a claim tree into an SD-JWT payload by substituting
    selected values with the digests of their disclosures."""

    def __init__(
        self,
        obj: Union[dict[str, Any], list[Any]],
        hasher: Optional[Hasher] = None,
        salt_size: int = DEFAULT_SALT_SIZE,
        salt_generator: Optional[SaltGenerator] = None,
    ):
        """Initialize the encoder with a claim tree.

        Args:
            obj: Claim tree; a deep copy is taken and mutated
            hasher: Hash function for digests (SHA-256 if None)
            salt_size: Salt length in bytes, at least 16
            salt_generator: Optional custom salt generator (uses secure default if None)

        Raises:
            DataTypeMismatch: If obj is not a JSON object or array
            InvalidSaltSize: If salt_size is below 16
        """
        if not isinstance(obj, (dict, list)):
            raise DataTypeMismatch("expected a JSON object or array")
        self._object = copy.deepcopy(obj)
        self._hasher = hasher if hasher is not None else Sha256Hasher()
        self.salt_size = salt_size
        self._salt_generator = salt_generator or _default_salt_generator
        # digest -> disclosure for every concealment made so far
        self._concealed: dict[str, Disclosure] = {}
        self._used_salts: set[str] = set()

    @property
    def object(self) -> Union[dict[str, Any], list[Any]]:
        """The tree in its current, partially concealed, state."""
        return self._object

    @property
    def hasher(self) -> Hasher:
        return self._hasher

    @property
    def salt_size(self) -> int:
        return self._salt_size

    @salt_size.setter
    def salt_size(self, salt_size: int) -> None:
        if salt_size < MIN_SALT_SIZE:
            raise InvalidSaltSize(salt_size)
        self._salt_size = salt_size

    def _random_string(self, length: int) -> str:
        return json_utils.b64url_encode(self._salt_generator.generate_salt(length))

    def _new_salt(self) -> str:
        salt = self._random_string(self._salt_size)
        while salt in self._used_salts:
            salt = self._random_string(self._salt_size)
        self._used_salts.add(salt)
        return salt

    def conceal(self, pointer: str, salt: Optional[str] = None) -> Disclosure:
        """Substitute the value at ``pointer`` with the digest of its disclosure.

        Args:
            pointer: JSON Pointer to the value to conceal
            salt: Optional explicit salt (random if None)

        Returns:
            The disclosure for the concealed value

        Raises:
            InvalidPath: If the pointer does not resolve, or addresses the root
            AlreadyConcealed: If the value (or an ancestor) is already concealed
            DataTypeMismatch: If an existing `_sd` claim is not an array
        """
        slot = resolve(self._object, pointer, self._concealed)
        if isinstance(slot, RootSlot):
            raise InvalidPath("the root of the object cannot be concealed", pointer)
        if isinstance(slot, ObjectSlot):
            _check_digest_array(slot.parent)

        if salt is None:
            salt = self._new_salt()
        else:
            self._used_salts.add(salt)

        if isinstance(slot, ObjectSlot):
            disclosure = Disclosure(salt, slot.key, slot.value)
            digest = disclosure.digest(self._hasher)
            del slot.parent[slot.key]
            _append_digest(slot.parent, digest)
        else:
            disclosure = Disclosure(salt, None, slot.value)
            digest = disclosure.digest(self._hasher)
            slot.parent[slot.index] = {json_utils.ARRAY_DIGEST_KEY: digest}

        self._concealed[digest] = disclosure
        return disclosure

    def add_decoys(self, pointer: str, number_of_decoys: int) -> None:
        """Add decoy digests to the object or array at ``pointer``.

        Use ``pointer`` = "" to add decoys to the top level.

        Raises:
            InvalidPath: If the target is not an object or array
            AlreadyConcealed: If the target has already been concealed
            DataTypeMismatch: If an existing `_sd` claim is not an array
        """
        container = resolve_container(self._object, pointer, self._concealed)
        if isinstance(container, dict):
            _check_digest_array(container)
        is_object = isinstance(container, dict)
        digests = [self._decoy_digest(is_object) for _ in range(number_of_decoys)]
        for digest in digests:
            if is_object:
                _append_digest(container, digest)
            else:
                container.append({json_utils.ARRAY_DIGEST_KEY: digest})

    def _decoy_digest(self, object_property: bool) -> str:
        # The backing disclosure is dropped immediately; only the digest survives
        claim_name = self._random_string(4 + secrets.randbelow(7)) if object_property else None
        filler = self._random_string(20 + secrets.randbelow(81))
        return Disclosure(self._new_salt(), claim_name, filler).digest(self._hasher)

    def add_sd_alg_property(self) -> Optional[str]:
        """Write the top-level `_sd_alg` claim from the configured hasher.

        Returns:
            The previous `_sd_alg` value, if any

        Raises:
            DataTypeMismatch: If the tree root is not an object
        """
        if not isinstance(self._object, dict):
            raise DataTypeMismatch("`_sd_alg` can only be added to an object")
        previous = self._object.get(json_utils.SD_ALG_KEY)
        self._object[json_utils.SD_ALG_KEY] = self._hasher.alg_name
        return previous

    def has_digests(self) -> bool:
        """True if any concealment or decoy has been applied."""
        return contains_digests(self._object)

    def try_to_string(self) -> str:
        """Return the tree as compact JSON text."""
        return json_utils.encode(self._object)

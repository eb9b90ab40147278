"""Hash functions for disclosure digests.

Hash algorithm names are taken from the "Hash Name String" column of the
IANA "Named Information Hash Algorithm" registry, e.g. ``sha-256``.
"""

import hashlib
from typing import Protocol

from . import json_utils

SHA_ALG_NAME = "sha-256"


class Hasher(Protocol):
    """Protocol for hash functions used to digest disclosures."""

    @property
    def alg_name(self) -> str:
        """Get the IANA hash name written into `_sd_alg`.

        Returns:
            Hash algorithm identifier (e.g., "sha-256")
        """

    def digest(self, data: bytes) -> bytes:
        """Hash input bytes.

        Args:
            data: The bytes to hash

        Returns:
            Digest bytes
        """

    def encoded_digest(self, text: str) -> str:
        """Hash the ASCII bytes of a text and base64url-encode the digest.

        Args:
            text: The text to hash, normally an encoded disclosure

        Returns:
            base64url digest without padding
        """


class _HashlibHasher:
    """Hasher backed by a hashlib constructor."""

    ALG_NAME = ""
    _HASHLIB_NAME = ""

    @property
    def alg_name(self) -> str:
        return self.ALG_NAME

    def digest(self, data: bytes) -> bytes:
        return hashlib.new(self._HASHLIB_NAME, data).digest()

    def encoded_digest(self, text: str) -> str:
        # Digests are taken over the US-ASCII bytes of the base64url text
        return json_utils.b64url_encode(self.digest(text.encode("ascii")))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Sha256Hasher(_HashlibHasher):
    """Hasher using SHA-256, the default for SD-JWT."""

    ALG_NAME = SHA_ALG_NAME
    _HASHLIB_NAME = "sha256"


class Sha384Hasher(_HashlibHasher):
    """Hasher using SHA-384."""

    ALG_NAME = "sha-384"
    _HASHLIB_NAME = "sha384"


class Sha512Hasher(_HashlibHasher):
    """Hasher using SHA-512."""

    ALG_NAME = "sha-512"
    _HASHLIB_NAME = "sha512"


_HASHERS = {
    Sha256Hasher.ALG_NAME: Sha256Hasher,
    Sha384Hasher.ALG_NAME: Sha384Hasher,
    Sha512Hasher.ALG_NAME: Sha512Hasher,
}


def hasher_for(alg_name: str) -> Hasher:
    """Get a hasher for an IANA hash name.

    Args:
        alg_name: Hash algorithm name (sha-256, sha-384, sha-512)

    Returns:
        A new hasher instance

    Raises:
        ValueError: If the algorithm is not supported
    """
    try:
        return _HASHERS[alg_name]()
    except KeyError:
        raise ValueError(f"Unsupported hash algorithm: {alg_name}") from None

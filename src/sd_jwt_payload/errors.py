"""SD-JWT error classes."""

from typing import Optional


class SdJwtError(Exception):
    """Base exception for all SD-JWT errors"""


class StructuralError(SdJwtError, ValueError):
    """
    Raised for malformed caller input: bad paths, bad encodings, wrong
    disclosure shapes. Never retried internally.
    """


class IntegrityError(SdJwtError, ValueError):
    """
    Raised when a token is malformed or tampered with. A decode that
    raises one of these returns no partial result.
    """


class SigningFailure(SdJwtError):
    """
    Raised when the injected signing capability fails.
    The original exception is kept as ``__cause__``.
    """


class InvalidPath(StructuralError):
    """A path segment does not exist, or traverses through a scalar."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class IndexOutOfBounds(InvalidPath):
    """An array index in a path is past the end of the array."""

    def __init__(self, index: int, path: Optional[str] = None):
        super().__init__(f"index {index} is out of bounds for the provided array", path)
        self.index = index


class AlreadyConcealed(StructuralError):
    """The addressed value has already been replaced by a digest."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class MalformedDisclosure(StructuralError):
    """A disclosure is not base64url, not a JSON array, or has the wrong arity."""


class MalformedCompactSerialization(StructuralError):
    """The `~`-separated compact form of an SD-JWT could not be parsed."""


class MismatchedDisclosureKind(StructuralError):
    """
    An array-element disclosure was referenced from `_sd`, or an
    object-property disclosure from an array wrapper.
    """


class DataTypeMismatch(StructuralError):
    """Selective disclosure scaffolding has an unexpected JSON type."""


class InvalidArrayDisclosureObject(StructuralError):
    """An array wrapper object contains keys other than `...`."""

    def __init__(self):
        super().__init__("array disclosure object contains keys other than `...`")


class InvalidSaltSize(StructuralError):
    """Salt size is smaller than 16 bytes."""

    def __init__(self, size: int):
        super().__init__(f"salt size must be greater or equal 16, got {size}")
        self.size = size


class NotFound(StructuralError):
    """No held disclosure matches the requested pointer or digest."""


class BuilderStateError(SdJwtError):
    """A builder was used after it finished, or finished without required inputs."""


class DuplicateDigest(IntegrityError):
    """The same digest appears more than once in the payload or disclosure set."""

    def __init__(self, digest: str):
        super().__init__(f"digest {digest} appears multiple times")
        self.digest = digest


class UnusedDisclosure(IntegrityError):
    """One or more disclosures do not correspond to any digest in the payload."""

    def __init__(self, count: int):
        super().__init__(f"{count} disclosure(s) were not referenced by the payload")
        self.count = count


class ClaimNameCollision(IntegrityError):
    """A disclosed claim name already exists in its object."""

    def __init__(self, claim_name: str):
        super().__init__(f"claim {claim_name} of disclosure already exists")
        self.claim_name = claim_name


class UnsupportedHashAlgorithm(IntegrityError):
    """The `_sd_alg` of a payload does not match any configured hasher."""

    def __init__(self, message: str, alg: Optional[str] = None):
        super().__init__(message)
        self.alg = alg


class MissingSdAlg(IntegrityError):
    """Digests are present in the payload but `_sd_alg` is not."""

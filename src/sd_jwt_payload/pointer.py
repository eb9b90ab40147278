"""JSON Pointer resolution into claim trees.

Pointers use RFC 6901 syntax (``/address/street``, ``/nationalities/0``,
``~1`` for ``/`` and ``~0`` for ``~`` inside a segment). A leading ``/``
may be omitted. The empty pointer denotes the whole tree.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from . import json_utils
from .disclosure import Disclosure
from .errors import AlreadyConcealed, IndexOutOfBounds, InvalidPath

_RESERVED_KEYS = (json_utils.DIGESTS_KEY, json_utils.SD_ALG_KEY, json_utils.ARRAY_DIGEST_KEY)


@dataclass(frozen=True)
class RootSlot:
    """The tree itself."""

    tree: Any

    @property
    def value(self) -> Any:
        return self.tree


@dataclass(frozen=True)
class ObjectSlot:
    """A property ``key`` of the object ``parent``."""

    parent: dict[str, Any]
    key: str

    @property
    def value(self) -> Any:
        return self.parent[self.key]


@dataclass(frozen=True)
class ArraySlot:
    """The element at ``index`` of the array ``parent``."""

    parent: list[Any]
    index: int

    @property
    def value(self) -> Any:
        return self.parent[self.index]


Target = Union[RootSlot, ObjectSlot, ArraySlot]


def parse_pointer(pointer: str) -> list[str]:
    """Split a JSON Pointer into unescaped reference tokens.

    Args:
        pointer: JSON Pointer, leading "/" optional

    Returns:
        List of reference tokens, empty for the root pointer
    """
    if pointer == "":
        return []
    if pointer.startswith("/"):
        pointer = pointer[1:]
    return [token.replace("~1", "/").replace("~0", "~") for token in pointer.split("/")]


def format_pointer(tokens: list[Any]) -> str:
    """Join reference tokens into a JSON Pointer."""
    return "".join("/" + str(token).replace("~", "~0").replace("/", "~1") for token in tokens)


def array_index(token: str, array: list[Any], pointer: Optional[str] = None) -> int:
    """Parse a reference token as an index into ``array``.

    Raises:
        InvalidPath: If the token is not a non-negative decimal integer
        IndexOutOfBounds: If the index is past the end of the array
    """
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise InvalidPath(f"{token} is not a valid array index", pointer)
    index = int(token)
    if index >= len(array):
        raise IndexOutOfBounds(index, pointer)
    return index


def is_digest_wrapper(value: Any) -> bool:
    """Check if a value is an array digest wrapper ``{"...": digest}``."""
    return (
        isinstance(value, dict)
        and len(value) == 1
        and isinstance(value.get(json_utils.ARRAY_DIGEST_KEY), str)
    )


def _concealed_in(
    obj: dict[str, Any], key: str, disclosures: Optional[Mapping[str, Disclosure]]
) -> bool:
    # A missing key is "concealed" only when a known digest in `_sd` opens to it
    if not disclosures:
        return False
    sd = obj.get(json_utils.DIGESTS_KEY)
    if not isinstance(sd, list):
        return False
    for digest in sd:
        disclosure = disclosures.get(digest) if isinstance(digest, str) else None
        if disclosure is not None and disclosure.claim_name == key:
            return True
    return False


def resolve(
    tree: Any,
    pointer: str,
    disclosures: Optional[Mapping[str, Disclosure]] = None,
) -> Target:
    """Resolve a pointer to the slot holding its target value.

    Args:
        tree: Claim tree (object or array)
        pointer: JSON Pointer to resolve
        disclosures: Optional digest -> disclosure map of concealments made
            so far, used to tell concealed properties apart from missing ones

    Returns:
        RootSlot, ObjectSlot or ArraySlot

    Raises:
        InvalidPath: If a segment does not exist or traverses through a scalar
        AlreadyConcealed: If the target, or one of its ancestors, has
            already been replaced by a digest
    """
    tokens = parse_pointer(pointer)
    if not tokens:
        return RootSlot(tree)

    current = tree
    slot: Target = RootSlot(tree)
    for depth, token in enumerate(tokens):
        if is_digest_wrapper(current):
            raise AlreadyConcealed(
                f"{format_pointer(tokens[:depth])} has already been concealed", pointer
            )
        if isinstance(current, dict):
            if token not in current:
                if _concealed_in(current, token, disclosures):
                    raise AlreadyConcealed(
                        f"{format_pointer(tokens[: depth + 1])} has already been concealed",
                        pointer,
                    )
                raise InvalidPath(f"{token} does not exist", pointer)
            if token in _RESERVED_KEYS:
                raise InvalidPath(f"{token} is a reserved claim name", pointer)
            slot = ObjectSlot(current, token)
        elif isinstance(current, list):
            slot = ArraySlot(current, array_index(token, current, pointer))
        else:
            raise InvalidPath(
                f"{format_pointer(tokens[:depth])} is neither an object nor an array", pointer
            )
        current = slot.value

    if isinstance(slot, ArraySlot) and is_digest_wrapper(current):
        raise AlreadyConcealed(f"{pointer} has already been concealed", pointer)
    return slot


def resolve_container(
    tree: Any,
    pointer: str,
    disclosures: Optional[Mapping[str, Disclosure]] = None,
) -> Union[dict[str, Any], list[Any]]:
    """Resolve a pointer that must address an object or an array.

    Raises:
        InvalidPath: If the target is a scalar or does not exist
        AlreadyConcealed: If the target has already been concealed
    """
    value = resolve(tree, pointer, disclosures).value
    if is_digest_wrapper(value):
        raise AlreadyConcealed(f"{pointer} has already been concealed", pointer)
    if not isinstance(value, (dict, list)):
        raise InvalidPath(f"{pointer} is neither an object nor an array", pointer)
    return value

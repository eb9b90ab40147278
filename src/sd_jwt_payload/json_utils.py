"""JSON and base64url utilities module.

This module provides a unified interface for the text encodings used by
SD-JWT: compact JSON and padding-free URL-safe base64. Every other module
goes through these helpers so that the serialisation rules live in one
place.
"""

import base64
import binascii
import json
from typing import Any, Union

# Type alias for decode failures raised by the helpers below
JSONDecodeError = json.JSONDecodeError


def encode(obj: Any) -> str:
    """Encode an object as compact JSON text.

    Args:
        obj: The object to encode

    Returns:
        JSON text without insignificant whitespace, non-ASCII kept as UTF-8
    """
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def decode(data: Union[str, bytes]) -> Any:
    """Decode JSON text to an object.

    Args:
        data: JSON text or UTF-8 bytes

    Returns:
        The decoded object

    Raises:
        JSONDecodeError: If the data is not valid JSON
    """
    return json.loads(data)


def b64url_encode(data: Union[bytes, str]) -> str:
    """Encode bytes as padding-free URL-safe base64.

    Args:
        data: Raw bytes, or text which is encoded as UTF-8 first

    Returns:
        base64url string without trailing "="
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """Decode padding-free URL-safe base64.

    Args:
        data: base64url string, with or without padding

    Returns:
        Decoded bytes

    Raises:
        ValueError: If the input is not valid base64url
    """
    if not isinstance(data, str):
        raise ValueError("base64url input must be a string")
    if len(data) % 4 == 1:
        raise ValueError("invalid base64url length")
    if "+" in data or "/" in data:
        raise ValueError("invalid base64url: standard base64 characters present")
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except binascii.Error as err:
        raise ValueError(f"invalid base64url: {err}") from err


def encode_b64url_json(obj: Any) -> str:
    """Serialize an object as base64url-encoded compact JSON.

    Args:
        obj: The object to encode

    Returns:
        base64url string of the UTF-8 JSON text
    """
    return b64url_encode(encode(obj))


def decode_b64url_json(data: str) -> Any:
    """Decode a base64url-encoded JSON document.

    Args:
        data: base64url string

    Returns:
        The decoded object

    Raises:
        ValueError: If the input is not base64url or not valid JSON
    """
    raw = b64url_decode(data)
    try:
        return decode(raw)
    except (JSONDecodeError, UnicodeDecodeError) as err:
        raise ValueError(f"invalid JSON: {err}") from err


def is_object(value: Any) -> bool:
    """Check if a value is a JSON object."""
    return isinstance(value, dict)


def is_array(value: Any) -> bool:
    """Check if a value is a JSON array."""
    return isinstance(value, list)


# Reserved claim names used as selective disclosure scaffolding
DIGESTS_KEY = "_sd"
SD_ALG_KEY = "_sd_alg"
ARRAY_DIGEST_KEY = "..."
CNF_KEY = "cnf"

"""Compact JWT value type."""

from typing import Any, Optional

from . import json_utils
from .errors import MalformedCompactSerialization


class Jwt:
    """A compact JWS split into its header, claims and signature.

    A parsed JWT keeps its received text, so serialising it again yields
    the same bytes the signature was computed over.
    """

    def __init__(
        self,
        header: dict[str, Any],
        claims: dict[str, Any],
        signature: str,
        raw: Optional[str] = None,
    ):
        self.header = header
        self.claims = claims
        self.signature = signature
        self._raw = raw

    @classmethod
    def parse(cls, text: str) -> "Jwt":
        """Parse a compact JWS.

        Raises:
            MalformedCompactSerialization: If the text is not three
                `.`-separated segments with base64url JSON objects as
                header and payload
        """
        segments = text.split(".")
        if len(segments) != 3:
            raise MalformedCompactSerialization(
                f"invalid JWT: expected 3 segments, got {len(segments)}"
            )

        header_b64, claims_b64, signature = segments
        try:
            header = json_utils.decode_b64url_json(header_b64)
            claims = json_utils.decode_b64url_json(claims_b64)
        except ValueError as err:
            raise MalformedCompactSerialization(f"invalid JWT: {err}") from err

        if not isinstance(header, dict):
            raise MalformedCompactSerialization("invalid JWT: header is not a JSON object")
        if not isinstance(claims, dict):
            raise MalformedCompactSerialization("invalid JWT: claims are not a JSON object")

        return cls(header, claims, signature, raw=text)

    @property
    def signing_input(self) -> str:
        """The `<header>.<payload>` text the signature covers."""
        return str(self).rsplit(".", 1)[0]

    def __str__(self) -> str:
        if self._raw is not None:
            return self._raw
        header = json_utils.encode_b64url_json(self.header)
        claims = json_utils.encode_b64url_json(self.claims)
        return f"{header}.{claims}.{self.signature}"

    def __repr__(self) -> str:
        return f"Jwt(header={self.header!r}, claims={self.claims!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Jwt):
            return NotImplemented
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(str(self))

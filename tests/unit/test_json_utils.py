"""Unit tests for JSON and base64url helpers."""

import pytest

from sd_jwt_payload import json_utils


class TestBase64Url:
    """Test padding-free URL-safe base64."""

    @pytest.mark.unit
    def test_encode_strips_padding(self):
        """Encoded text has no trailing "="."""
        assert json_utils.b64url_encode(b"a") == "YQ"
        assert json_utils.b64url_encode("ab") == "YWI"

    @pytest.mark.unit
    def test_encode_uses_url_alphabet(self):
        """"-" and "_" replace "+" and "/"."""
        assert json_utils.b64url_encode(b"\xfb\xff") == "-_8"

    @pytest.mark.unit
    def test_decode_accepts_missing_and_present_padding(self):
        """Padding is optional on input."""
        assert json_utils.b64url_decode("YQ") == b"a"
        assert json_utils.b64url_decode("YQ==") == b"a"

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["Y", "a+b/", "Y$Q", "YQ=x"])
    def test_decode_rejects_invalid_input(self, text):
        """Invalid lengths and foreign characters raise ValueError."""
        with pytest.raises(ValueError):
            json_utils.b64url_decode(text)

    @pytest.mark.unit
    def test_decode_rejects_non_string(self):
        """Only text is decoded."""
        with pytest.raises(ValueError):
            json_utils.b64url_decode(b"YQ")


class TestJson:
    """Test the JSON helpers."""

    @pytest.mark.unit
    def test_encode_is_compact_and_keeps_unicode(self):
        """No whitespace, no ASCII escapes."""
        assert json_utils.encode({"a": [1, "ü"]}) == '{"a":[1,"ü"]}'

    @pytest.mark.unit
    def test_b64url_json_round_trip(self):
        """base64url JSON decodes back to the same object."""
        obj = {"iss": "https://issuer.example.com", "n": [1, None, True]}
        assert json_utils.decode_b64url_json(json_utils.encode_b64url_json(obj)) == obj

    @pytest.mark.unit
    def test_decode_b64url_json_rejects_invalid_json(self):
        """Valid base64url that is not JSON raises ValueError."""
        with pytest.raises(ValueError, match="invalid JSON"):
            json_utils.decode_b64url_json(json_utils.b64url_encode("{not json"))

    @pytest.mark.unit
    def test_type_predicates(self):
        """is_object and is_array follow the JSON types."""
        assert json_utils.is_object({})
        assert not json_utils.is_object([])
        assert json_utils.is_array([])
        assert not json_utils.is_array("[]")

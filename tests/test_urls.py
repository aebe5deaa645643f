"""Tests for docgate.urls (URL validation and /external/ path decoding)."""

from __future__ import annotations

import pytest

from docgate.errors import (
    CredentialedURLError,
    FragmentNotSupportedError,
    InvalidURLError,
    UnsupportedSchemeError,
)
from docgate.urls import (
    TargetURL,
    build_external_path,
    decode_external_target_path,
    has_control_or_whitespace,
    validate_external_url,
)


class TestValidateExternalUrl:
    def test_basic(self):
        target = validate_external_url("https://example.com/documentation/kit")
        assert target == TargetURL(
            scheme="https", host="example.com", path="/documentation/kit"
        )
        assert str(target) == "https://example.com/documentation/kit"
        assert target.origin == "https://example.com"

    def test_normalizes_host_port_and_dot_segments(self):
        target = validate_external_url("https://Example.COM:443/a/./b/../c?x=1")
        assert target.host == "example.com"
        assert target.port is None
        assert target.path == "/a/c"
        assert target.path_with_query == "/a/c?x=1"
        assert str(target) == "https://example.com/a/c?x=1"

    def test_keeps_non_default_port(self):
        target = validate_external_url("https://example.com:8443/documentation")
        assert target.origin == "https://example.com:8443"

    def test_empty_path_becomes_root(self):
        assert validate_external_url("https://example.com").path == "/"

    def test_ipv6_literal(self):
        target = validate_external_url("https://[::1]/documentation")
        assert target.host == "::1"
        assert target.netloc == "[::1]"

    @pytest.mark.parametrize(
        "host, expected",
        [
            ("2130706433", "127.0.0.1"),
            ("127.1", "127.0.0.1"),
            ("0x7f.0.0.1", "127.0.0.1"),
            ("0177.0.0.1", "127.0.0.1"),
            ("0X7F.1", "127.0.0.1"),
            ("10.0x10.1", "10.16.0.1"),
            ("127.0.0.1.", "127.0.0.1"),
            ("8.8.8.8", "8.8.8.8"),
            ("docs.example.com.", "docs.example.com"),
            ("1.2.3.example", "1.2.3.example"),
            ("[0:0:0:0:0:0:0:1]", "::1"),
            ("[FD00:0000::0001]", "fd00::1"),
        ],
    )
    def test_canonical_host(self, host, expected):
        target = validate_external_url(f"https://{host}/documentation/kit")
        assert target.host == expected

    @pytest.mark.parametrize(
        "host",
        [
            "256.0.0.1",
            "1.2.3.4.5",
            "4294967296",
            "127.0.0.08",
            "example.123",
            "0x7g.0.0.1",
            "a..example.com",
            "[fe80::1%25eth0]",
            "[1::2::3]",
        ],
    )
    def test_invalid_host(self, host):
        with pytest.raises(InvalidURLError):
            validate_external_url(f"https://{host}/documentation/kit")

    def test_empty_fragment_is_accepted(self):
        assert str(validate_external_url("https://example.com/a#")) == "https://example.com/a"

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            " https://example.com/",
            "https://example.com/ ",
            "https://exa mple.com/",
            "https://example.com/\n",
            "https://example.com/\x7f",
            "example.com/documentation",
            "https:///documentation",
            "https://exa$mple.com/",
            "https://example.com:notaport/",
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidURLError):
            validate_external_url(raw)

    @pytest.mark.parametrize(
        "raw", ["http://example.com/", "ftp://example.com/", "javascript:alert(1)"]
    )
    def test_unsupported_scheme(self, raw):
        with pytest.raises(UnsupportedSchemeError) as exc_info:
            validate_external_url(raw)
        assert exc_info.value.status == 400

    @pytest.mark.parametrize(
        "raw", ["https://user@example.com/", "https://user:pw@example.com/"]
    )
    def test_credentials_rejected(self, raw):
        with pytest.raises(CredentialedURLError):
            validate_external_url(raw)

    def test_fragment_rejected(self):
        with pytest.raises(FragmentNotSupportedError) as exc_info:
            validate_external_url("https://example.com/documentation#topics")
        assert exc_info.value.message == "URL fragments are not supported."
        assert exc_info.value.kind == "fragment_not_supported"


class TestHasControlOrWhitespace:
    def test_clean(self):
        assert not has_control_or_whitespace("https://example.com/a")

    @pytest.mark.parametrize("value", ["a b", "a\tb", "a\x00b", "\r"])
    def test_dirty(self, value):
        assert has_control_or_whitespace(value)


class TestDecodeExternalTargetPath:
    def test_decodes_query(self):
        decoded = decode_external_target_path(
            "/external/https%3A%2F%2Fhost%2Fdocumentation%2Fa%3Fid%3D1"
        )
        assert decoded == "https://host/documentation/a?id=1"

    def test_unencoded_target_passes_through(self):
        decoded = decode_external_target_path("/external/https://host/documentation/a")
        assert decoded == "https://host/documentation/a"

    @pytest.mark.parametrize(
        "path",
        [
            "/external/https%3A%2F%2Fhost%2Fdoc%0Aumentation",
            "/external/https%3A%2F%2Fhost%2F%00",
            "/external/%20https%3A%2F%2Fhost",
        ],
    )
    def test_encoded_control_characters_rejected(self, path):
        with pytest.raises(InvalidURLError):
            decode_external_target_path(path)

    @pytest.mark.parametrize(
        "path", ["/external/%E0%A4%A", "/external/https%3A%2F%2Fhost%ZZ", "/external/%FF"]
    )
    def test_malformed_encoding_rejected(self, path):
        with pytest.raises(InvalidURLError):
            decode_external_target_path(path)

    @pytest.mark.parametrize("path", ["", "/external/", "/documentation/kit"])
    def test_missing_target_rejected(self, path):
        with pytest.raises(InvalidURLError):
            decode_external_target_path(path)


class TestBuildExternalPath:
    def test_encodes_whole_url(self):
        target = validate_external_url("https://host/documentation/a?id=1")
        path = build_external_path(target)
        assert path == "/external/https%3A%2F%2Fhost%2Fdocumentation%2Fa%3Fid%3D1"
        assert decode_external_target_path(path) == str(target)

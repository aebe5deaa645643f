"""Validation of external documentation URLs.

A :class:`TargetURL` is the only URL type the rest of the package accepts
for outbound requests. It is produced by :func:`validate_external_url`,
which rejects anything that is not a plain ``https://`` URL without
credentials or fragment.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, unquote_to_bytes, urlsplit

from .errors import (
    CredentialedURLError,
    FragmentNotSupportedError,
    InvalidURLError,
    UnsupportedSchemeError,
)

EXTERNAL_PATH_PREFIX = "/external/"
SECURE_SCHEME = "https"
DEFAULT_HTTPS_PORT = 443

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_HOSTNAME_CHARS = re.compile(r"^[a-z0-9._-]+$")
_IPV6_CHARS = re.compile(r"^[0-9a-f:.]+$")
_HEX_LABEL = re.compile(r"^0x[0-9a-f]*$")
_DOT_SEGMENTS = {".", "%2e"}
_DOUBLE_DOT_SEGMENTS = {"..", ".%2e", "%2e.", "%2e%2e"}


@dataclass(frozen=True)
class TargetURL:
    """A validated, normalized absolute ``https`` URL."""

    scheme: str
    host: str
    port: Optional[int] = None
    path: str = "/"
    query: str = ""

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is not None:
            return f"{host}:{self.port}"
        return host

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.netloc}"

    @property
    def path_with_query(self) -> str:
        if self.query:
            return f"{self.path}?{self.query}"
        return self.path

    def __str__(self) -> str:
        return f"{self.origin}{self.path_with_query}"


def has_control_or_whitespace(value: str) -> bool:
    """Return True if *value* contains ASCII control characters or whitespace."""
    return any(ord(char) <= 0x20 or ord(char) == 0x7F for char in value)


def validate_external_url(raw_url: str) -> TargetURL:
    """Validate *raw_url* and return its normalized :class:`TargetURL`.

    Raises:
        InvalidURLError: Empty, malformed, or containing whitespace/control
            characters.
        UnsupportedSchemeError: Scheme is not ``https``.
        CredentialedURLError: URL carries a username or password.
        FragmentNotSupportedError: URL carries a non-empty fragment.
    """
    if not raw_url or has_control_or_whitespace(raw_url):
        raise InvalidURLError()

    try:
        parsed = urlsplit(raw_url)
        hostname = parsed.hostname
        port = parsed.port
    except ValueError as exc:
        raise InvalidURLError() from exc

    if not parsed.scheme:
        raise InvalidURLError()

    if parsed.scheme.lower() != SECURE_SCHEME:
        raise UnsupportedSchemeError()

    if parsed.username or parsed.password:
        raise CredentialedURLError()

    if parsed.fragment:
        raise FragmentNotSupportedError()

    if not parsed.netloc or not hostname:
        raise InvalidURLError()

    host = _normalize_hostname(hostname)
    if port == DEFAULT_HTTPS_PORT:
        port = None

    return TargetURL(
        scheme=SECURE_SCHEME,
        host=host,
        port=port,
        path=_remove_dot_segments(parsed.path or "/"),
        query=parsed.query,
    )


def decode_external_target_path(path: str) -> str:
    """Extract and percent-decode the target of an ``/external/<url>`` path.

    The decoded string still needs :func:`validate_external_url`.
    """
    if not path or not path.startswith(EXTERNAL_PATH_PREFIX):
        raise InvalidURLError()

    encoded_target = path[len(EXTERNAL_PATH_PREFIX) :]
    if not encoded_target:
        raise InvalidURLError()

    if _MALFORMED_ESCAPE.search(encoded_target):
        raise InvalidURLError()

    try:
        decoded_target = unquote_to_bytes(encoded_target).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidURLError() from exc

    if not decoded_target or has_control_or_whitespace(decoded_target):
        raise InvalidURLError()
    return decoded_target


def build_external_path(url: TargetURL | str) -> str:
    """Return the ``/external/`` proxy path for *url*."""
    return EXTERNAL_PATH_PREFIX + quote(str(url), safe="")


def _normalize_hostname(hostname: str) -> str:
    """Return *hostname* in the form the host policy compares against.

    IPv6 literals are compressed and numeric IPv4 spellings such as
    ``127.1``, ``0x7f.0.0.1`` or ``2130706433`` become dotted quads, so
    every address is classified under the one name a resolver would use.
    """
    host = hostname.lower()
    if ":" in host:
        return _canonical_ipv6(host)

    if not host.isascii():
        try:
            host = host.encode("idna").decode("ascii")
        except UnicodeError as exc:
            raise InvalidURLError() from exc

    if host.endswith("."):
        host = host[:-1]
    if not _HOSTNAME_CHARS.match(host) or "" in host.split("."):
        raise InvalidURLError()

    if _ends_in_number(host):
        return _canonical_ipv4(host)
    return host


def _canonical_ipv6(host: str) -> str:
    if not _IPV6_CHARS.match(host):
        raise InvalidURLError()
    try:
        return ipaddress.IPv6Address(host).compressed
    except ValueError as exc:
        raise InvalidURLError() from exc


def _ends_in_number(host: str) -> bool:
    last_label = host.rsplit(".", 1)[-1]
    return last_label.isdigit() or _HEX_LABEL.match(last_label) is not None


def _canonical_ipv4(host: str) -> str:
    """Convert any numeric IPv4 spelling to a dotted quad.

    Up to four labels, each decimal, ``0x`` hex or ``0``-prefixed octal; the
    last label fills all remaining bytes.
    """
    labels = host.split(".")
    if len(labels) > 4:
        raise InvalidURLError()
    try:
        numbers = [_ipv4_number(label) for label in labels]
    except ValueError as exc:
        raise InvalidURLError() from exc

    *leading, last = numbers
    if any(number > 255 for number in leading) or last >= 256 ** (5 - len(numbers)):
        raise InvalidURLError()

    value = last
    for index, number in enumerate(leading):
        value += number << (8 * (3 - index))
    return str(ipaddress.IPv4Address(value))


def _ipv4_number(label: str) -> int:
    if _HEX_LABEL.match(label):
        return int(label[2:] or "0", 16)
    if not label.isdigit():
        raise ValueError(f"not an IPv4 number: {label!r}")
    if len(label) > 1 and label.startswith("0"):
        return int(label[1:], 8)
    return int(label)


def _remove_dot_segments(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path

    output: List[str] = []
    segments = path.split("/")[1:]
    for index, segment in enumerate(segments):
        is_last = index == len(segments) - 1
        lowered = segment.lower()
        if lowered in _DOT_SEGMENTS:
            if is_last:
                output.append("")
            continue
        if lowered in _DOUBLE_DOT_SEGMENTS:
            if output:
                output.pop()
            if is_last:
                output.append("")
            continue
        output.append(segment)

    return "/" + "/".join(output)

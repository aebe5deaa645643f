"""Host policy: operator allow/block lists and local/private host detection.

Hosts are classified lexically. No DNS lookups are made, so a public name
that resolves to a private address is only stopped by an explicit
allowlist.
"""

from __future__ import annotations

import ipaddress
import os
import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Mapping, Optional

from .errors import HostBlockedError, HostNotAllowlistedError, PrivateHostBlockedError
from .urls import TargetURL

ENV_HOST_ALLOWLIST = "EXTERNAL_DOC_HOST_ALLOWLIST"
ENV_HOST_BLOCKLIST = "EXTERNAL_DOC_HOST_BLOCKLIST"

LOCAL_HOSTNAMES = frozenset({"localhost", "127.0.0.1", "::1"})
# fc00::/7 unique-local, fe80::/10 link-local
PRIVATE_IPV6_NETWORKS = (
    ipaddress.IPv6Network("fc00::/7"),
    ipaddress.IPv6Network("fe80::/10"),
)

_LIST_SEPARATOR = re.compile(r"\r?\n|,")
_OCTET = re.compile(r"^\d{1,3}$")


def parse_host_list(raw_list: Optional[str]) -> FrozenSet[str]:
    """Split a newline- or comma-delimited host list into normalized patterns."""
    if not raw_list:
        return frozenset()
    return frozenset(
        _normalize_pattern(value)
        for value in _LIST_SEPARATOR.split(raw_list)
        if value.strip()
    )


def _normalize_pattern(value: str) -> str:
    pattern = value.strip().lower()
    if pattern.startswith("[") and pattern.endswith("]"):
        pattern = pattern[1:-1]
    if ":" in pattern:
        try:
            return ipaddress.IPv6Address(pattern).compressed
        except ValueError:
            return pattern
    return pattern.rstrip(".")


@dataclass(frozen=True)
class HostPolicyConfig:
    """Operator-supplied host patterns.

    Each pattern is either an exact hostname (``docs.example.com``), a bare
    domain that also covers its subdomains (``example.com``), or a
    dot-prefixed suffix (``.example.com``).
    """

    allowlist: FrozenSet[str] = field(default_factory=frozenset)
    blocklist: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_strings(
        cls, allowlist: Optional[str] = None, blocklist: Optional[str] = None
    ) -> "HostPolicyConfig":
        return cls(
            allowlist=parse_host_list(allowlist),
            blocklist=parse_host_list(blocklist),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HostPolicyConfig":
        """Build the config from ``EXTERNAL_DOC_HOST_*`` variables.

        The environment is read at call time so late ``.env`` loading and
        test monkeypatching both take effect.
        """
        env = os.environ if environ is None else environ
        return cls.from_strings(env.get(ENV_HOST_ALLOWLIST), env.get(ENV_HOST_BLOCKLIST))

    @property
    def is_empty(self) -> bool:
        return not self.allowlist and not self.blocklist


def is_host_listed(hostname: str, patterns: Iterable[str]) -> bool:
    """Return True if *hostname* matches any of *patterns*."""
    for candidate in patterns:
        if not candidate:
            continue
        if candidate.startswith("."):
            if hostname.endswith(candidate):
                return True
            continue
        if hostname == candidate or hostname.endswith(f".{candidate}"):
            return True
    return False


def is_local_or_private_host(hostname: str) -> bool:
    host = hostname.lower()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    if host in LOCAL_HOSTNAMES:
        return True
    if host.endswith(".local") or host.endswith(".localhost"):
        return True
    if ":" in host:
        return is_private_ipv6(host)
    return is_private_ipv4(host)


def is_private_ipv4(hostname: str) -> bool:
    """Check dotted-quad loopback, unspecified, link-local and RFC 1918 ranges."""
    octets = hostname.split(".")
    if len(octets) != 4 or not all(_OCTET.match(octet) for octet in octets):
        return False

    values = [int(octet) for octet in octets]
    if any(value > 255 for value in values):
        return False
    a, b = values[0], values[1]

    return (
        a == 10
        or a == 127
        or a == 0
        or (a == 169 and b == 254)
        or (a == 172 and 16 <= b <= 31)
        or (a == 192 and b == 168)
    )


def is_private_ipv6(hostname: str) -> bool:
    """Check loopback, unspecified, unique-local and link-local IPv6 literals.

    IPv4-mapped addresses are classified by their embedded IPv4 address.
    """
    try:
        address = ipaddress.IPv6Address(hostname.lower().strip("[]"))
    except ValueError:
        return False
    if address.ipv4_mapped is not None:
        return is_private_ipv4(str(address.ipv4_mapped))
    if address.is_loopback or address.is_unspecified:
        return True
    return any(address in network for network in PRIVATE_IPV6_NETWORKS)


def assert_host_policy(target: TargetURL, config: HostPolicyConfig) -> None:
    """Raise a :class:`~docgate.errors.HostPolicyError` if *target* is not allowed.

    The blocklist is checked first and always wins, then the allowlist,
    then the local/private classification.
    """
    hostname = target.host.lower()
    explicitly_allowlisted = is_host_listed(hostname, config.allowlist)

    if is_host_listed(hostname, config.blocklist):
        raise HostBlockedError()

    if config.allowlist and not explicitly_allowlisted:
        raise HostNotAllowlistedError()

    if is_local_or_private_host(hostname) and not explicitly_allowlisted:
        raise PrivateHostBlockedError()

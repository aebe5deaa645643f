"""Error taxonomy for external documentation access.

Every error carries a stable ``kind`` string and an HTTP-style ``status`` so
that the CLI, the MCP server, or an HTTP front end can report it without
inspecting the class hierarchy.
"""

from __future__ import annotations

from typing import Optional


class DocGateError(Exception):
    """Base class for all errors raised by docgate."""

    kind = "error"
    status = 500

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class ExternalAccessError(DocGateError):
    """Raised when a URL or host is rejected by the external access policy."""

    kind = "external_access"
    status = 403


class InvalidURLError(ExternalAccessError):
    kind = "invalid_url"
    status = 400

    def __init__(self, message: str = "Invalid external URL.", **kwargs):
        super().__init__(message, **kwargs)


class CredentialedURLError(InvalidURLError):
    kind = "credentialed_url"

    def __init__(self, message: str = "Credentialed URLs are not supported.", **kwargs):
        super().__init__(message, **kwargs)


class FragmentNotSupportedError(InvalidURLError):
    kind = "fragment_not_supported"

    def __init__(self, message: str = "URL fragments are not supported.", **kwargs):
        super().__init__(message, **kwargs)


class UnsupportedSchemeError(ExternalAccessError):
    kind = "unsupported_scheme"
    status = 400

    def __init__(
        self, message: str = "Only https:// external URLs are supported.", **kwargs
    ):
        super().__init__(message, **kwargs)


class HostPolicyError(ExternalAccessError):
    """Host rejected by static rules or operator configuration."""

    kind = "host_policy"


class HostBlockedError(HostPolicyError):
    kind = "host_blocked"

    def __init__(
        self, message: str = "External host is blocked by configuration.", **kwargs
    ):
        super().__init__(message, **kwargs)


class HostNotAllowlistedError(HostPolicyError):
    kind = "host_not_allowlisted"

    def __init__(self, message: str = "External host is not allowlisted.", **kwargs):
        super().__init__(message, **kwargs)


class PrivateHostBlockedError(HostPolicyError):
    kind = "private_host_blocked"

    def __init__(
        self,
        message: str = (
            "External URL points to a local or private host and is not allowlisted."
        ),
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class RobotsDeniedError(ExternalAccessError):
    kind = "robots_denied"

    def __init__(
        self,
        message: str = "External host denied access for this path via robots.txt.",
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class AccessDeniedError(ExternalAccessError):
    """Raised when the upstream response opts out via ``X-Robots-Tag``."""

    kind = "access_denied"

    def __init__(
        self,
        message: str = (
            "External host denied AI/doc access via X-Robots-Tag response header."
        ),
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class NotFoundError(ExternalAccessError):
    kind = "not_found"
    status = 404


class FetchFailureError(DocGateError):
    """Raised for any other upstream failure while fetching documentation."""

    kind = "fetch_failure"
    status = 502

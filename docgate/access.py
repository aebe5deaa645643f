"""Access gate combining host policy and robots.txt checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ExternalAccessError, RobotsDeniedError
from .hosts import HostPolicyConfig, assert_host_policy
from .resolver import RobotsPolicyResolver
from .urls import TargetURL

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    kind: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "kind": self.kind, "message": self.message}


async def assert_external_access(
    target: TargetURL,
    policy: HostPolicyConfig,
    resolver: RobotsPolicyResolver,
) -> None:
    """Raise unless *target* passes the host policy and robots.txt.

    The host policy runs first; a rejected host never triggers a robots.txt
    request.
    """
    assert_host_policy(target, policy)
    if not await resolver.is_allowed(target):
        LOGGER.info("robots.txt denies %s", target)
        raise RobotsDeniedError()


async def check_external_access(
    target: TargetURL,
    policy: HostPolicyConfig,
    resolver: RobotsPolicyResolver,
) -> AccessDecision:
    """Non-raising variant of :func:`assert_external_access`."""
    try:
        await assert_external_access(target, policy, resolver)
    except ExternalAccessError as exc:
        return AccessDecision(allowed=False, kind=exc.kind, message=exc.message)
    return AccessDecision(allowed=True)

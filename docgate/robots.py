"""robots.txt policies and their evaluation.

Only the raw robots.txt text is cached; it is parsed again with Protego for
every evaluation. Protego applies the longest-match rule (``Allow`` wins
ties), ``*``/``$`` patterns and percent-encoding normalization.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from protego import Protego

LOGGER = logging.getLogger(__name__)


class RobotsPolicyKind(enum.Enum):
    ALLOW_ALL = "allow-all"
    DENY_ALL = "deny-all"
    NOT_FOUND = "not-found"
    RULES = "rules"


@dataclass(frozen=True)
class RobotsPolicy:
    """Resolved robots policy for one origin."""

    kind: RobotsPolicyKind
    text: str = ""

    @classmethod
    def allow_all(cls) -> "RobotsPolicy":
        return cls(RobotsPolicyKind.ALLOW_ALL)

    @classmethod
    def deny_all(cls) -> "RobotsPolicy":
        return cls(RobotsPolicyKind.DENY_ALL)

    @classmethod
    def not_found(cls) -> "RobotsPolicy":
        return cls(RobotsPolicyKind.NOT_FOUND)

    @classmethod
    def rules(cls, text: str) -> "RobotsPolicy":
        return cls(RobotsPolicyKind.RULES, text)


def agent_token(user_agent: str) -> str:
    """Return the product token of a user agent (``name`` in ``name/1.0 (...)``)."""
    return user_agent.split("/", 1)[0].strip().lower()


def is_url_allowed(robots_text: str, url: str, user_agent: str) -> bool:
    """Return True if *robots_text* lets *user_agent* fetch *url*.

    *url* may be absolute or a path with an optional query. Groups are
    matched against the product token only, so a group for ``*`` applies
    unless one names that token.
    """
    parser = Protego.parse(robots_text)
    allowed = parser.can_fetch(url, agent_token(user_agent))
    if not allowed:
        LOGGER.debug("robots.txt disallows %s for %s", url, user_agent)
    return allowed


def evaluate_policy(policy: RobotsPolicy, url: str, user_agent: str) -> bool:
    """Return True if *policy* lets *user_agent* fetch *url*."""
    if policy.kind is RobotsPolicyKind.ALLOW_ALL:
        return True
    if policy.kind is RobotsPolicyKind.NOT_FOUND:
        return True
    if policy.kind is RobotsPolicyKind.DENY_ALL:
        return False
    if policy.kind is RobotsPolicyKind.RULES:
        return is_url_allowed(policy.text, url, user_agent)
    raise ValueError(f"Unknown robots policy kind: {policy.kind!r}")

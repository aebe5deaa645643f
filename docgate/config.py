"""Runtime settings for outbound documentation requests."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .hosts import HostPolicyConfig

LOGGER = logging.getLogger(__name__)

__version__ = "1.0.0"

PRODUCT_NAME = "docgate"
CONTACT_URL = "https://github.com/docgate/docgate#bot"
USER_AGENT = f"{PRODUCT_NAME}/{__version__} (+{CONTACT_URL})"

ROBOTS_ACCEPT = "text/plain, text/*;q=0.9, */*;q=0.1"
JSON_ACCEPT = "application/json"

ENV_HTTP_TIMEOUT = "DOCGATE_HTTP_TIMEOUT"
DEFAULT_HTTP_TIMEOUT = 30.0


def _parse_timeout(value: Optional[str], default: float) -> float:
    if not value:
        return default
    try:
        timeout = float(value)
    except ValueError:
        LOGGER.warning(
            "Invalid %s '%s'; falling back to %.1f.", ENV_HTTP_TIMEOUT, value, default
        )
        return default
    if timeout <= 0:
        LOGGER.warning(
            "Non-positive %s '%s'; falling back to %.1f.", ENV_HTTP_TIMEOUT, value, default
        )
        return default
    return timeout


@dataclass(frozen=True)
class Settings:
    """Settings for one request context."""

    host_policy: HostPolicyConfig = field(default_factory=HostPolicyConfig)
    user_agent: str = USER_AGENT
    timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            host_policy=HostPolicyConfig.from_env(env),
            timeout=_parse_timeout(env.get(ENV_HTTP_TIMEOUT), DEFAULT_HTTP_TIMEOUT),
        )

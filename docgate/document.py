"""Data structures representing rendered documentation pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(slots=True)
class DocumentationPage:
    """Rendered Markdown for one external documentation page."""

    request_url: str
    source_url: str
    status: str  # success, failed
    markdown: str
    json_url: Optional[str] = None
    title: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

"""JSON reporter for scripts and editor integrations."""

from __future__ import annotations

import json
from typing import Any, Dict, Protocol


class Reportable(Protocol):
    def to_dict(self) -> Dict[str, Any]: ...


def render(result: Reportable) -> str:
    """Return formatted JSON string."""
    return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

"""YAML reporter — same documents as the JSON reporter, easier to read by eye."""

from __future__ import annotations

import yaml

from vibesnap.output.json_report import Reportable


def render(result: Reportable) -> str:
    return yaml.safe_dump(result.to_dict(), sort_keys=False, allow_unicode=True).rstrip("\n")

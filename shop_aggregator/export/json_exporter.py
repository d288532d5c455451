from __future__ import annotations

import json
from pathlib import Path

from ..engines.base import AggregationResult


class JSONExporter:
    """Writes the same payload the API returns, plus per-source errors."""

    def export(self, result: AggregationResult, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        payload = result.to_dict()
        payload["errors"] = result.errors
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

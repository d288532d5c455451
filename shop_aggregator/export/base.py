from __future__ import annotations

from pathlib import Path
from typing import Protocol

from ..engines.base import AggregationResult


class Exporter(Protocol):
    def export(self, result: AggregationResult, path: str) -> None:
        ...


def exporter_for(path: str) -> Exporter:
    """Pick an exporter from the output file suffix; JSON unless it ends in .csv."""
    from .csv_exporter import CSVExporter
    from .json_exporter import JSONExporter

    if Path(path).suffix.lower() == ".csv":
        return CSVExporter()
    return JSONExporter()

from __future__ import annotations

import csv
from pathlib import Path

from ..engines.base import AggregationResult


class CSVExporter:
    """
    Writes one row per ranked product.
    """

    _headers = [
        "rank",
        "source",
        "title",
        "price",
        "list_price",
        "rating",
        "relevance_score",
        "discount",
        "deal_badge",
        "image_url",
        "deep_link",
    ]

    def export(self, result: AggregationResult, path: str) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            w = csv.writer(f)
            w.writerow(self._headers)
            for rank, product in enumerate(result.products, start=1):
                w.writerow(
                    [
                        rank,
                        product.source,
                        product.title,
                        f"{product.price:.2f}",
                        f"{product.list_price:.2f}",
                        product.rating,
                        f"{product.relevance_score:.2f}",
                        product.discount or "",
                        product.deal_badge or "",
                        product.image_url,
                        product.deep_link,
                    ]
                )

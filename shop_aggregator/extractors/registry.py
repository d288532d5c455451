from __future__ import annotations

import importlib
import logging
from typing import Dict, Iterable, List, Type
from importlib import metadata

from .base import StorefrontExtractor
from .amazon import AmazonExtractor
from .myntra import MyntraExtractor
from ..config import AggregatorConfig
from ..utils.scoring import RelevanceScorer

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "shop_aggregator.extractors"


class ExtractorRegistry:
    """
    Registry of available storefront extractors, keyed by name.
    Supports built-ins, config-defined dotted classes, and entry-point plugins.
    """
    def __init__(self) -> None:
        self._extractors: Dict[str, Type[StorefrontExtractor]] = {}
        for cls in (AmazonExtractor, MyntraExtractor):
            self.register(cls)

    # ---- Introspection / Management ----

    def register(self, extractor_cls: Type[StorefrontExtractor]) -> None:
        name = getattr(extractor_cls, "name", "")
        if not name:
            raise ValueError(f"{extractor_cls!r} has no name")
        if name in self._extractors:
            logger.info("Replacing extractor %r with %s", name, extractor_cls.__qualname__)
        self._extractors[name] = extractor_cls

    def register_dotted(self, dotted: str) -> None:
        """
        Register a class given as "package.module:ClassName" or "package.module.ClassName".
        """
        if ":" in dotted:
            module_name, symbol_name = dotted.split(":", 1)
        else:
            module_name, symbol_name = dotted.rsplit(".", 1)
        module = importlib.import_module(module_name)
        self.register(getattr(module, symbol_name))

    @property
    def names(self) -> List[str]:
        return list(self._extractors)

    def get(self, name: str) -> Type[StorefrontExtractor]:
        try:
            return self._extractors[name]
        except KeyError:
            raise KeyError(f"unknown source {name!r}; known: {', '.join(self._extractors)}") from None

    def build(
        self,
        names: Iterable[str],
        *,
        config: AggregatorConfig,
        scorer: RelevanceScorer | None = None,
    ) -> List[StorefrontExtractor]:
        scorer = scorer or RelevanceScorer(config.reference_price)
        return [
            self.get(name)(
                scorer,
                navigation_timeout_ms=config.navigation_timeout_ms,
                content_wait_ms=config.content_wait_ms,
            )
            for name in names
        ]

    # ---- Discovery ----

    def discover_entry_points(self, group: str = ENTRY_POINT_GROUP) -> int:
        """
        Discover third-party extractors installed as entry points.
        Returns count of newly registered extractors.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                self.register(ep.load())
                added += 1
            except Exception as exc:
                # Plugins are optional; a broken one must not take the service down.
                logger.warning("Failed to load extractor plugin %s: %r", ep.name, exc)
        return added


def registry_from_config(config: AggregatorConfig) -> ExtractorRegistry:
    registry = ExtractorRegistry()
    registry.discover_entry_points()
    for dotted in config.extra_extractors:
        try:
            registry.register_dotted(dotted)
        except Exception as exc:
            logger.warning("Failed to load extractor %s: %r", dotted, exc)
    return registry

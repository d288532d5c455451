from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any
import os
import json

from .version import CONFIG_SCHEMA_VERSION

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass
class AggregatorConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    # Storefronts queried for every request, by extractor name.
    sources: List[str] = field(default_factory=lambda: ["amazon", "myntra"])
    # Extra extractors (dotted class paths) to register at startup
    extra_extractors: List[str] = field(default_factory=list)

    # Browser
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1920
    viewport_height: int = 1080
    blocked_resource_types: List[str] = field(
        default_factory=lambda: ["image", "stylesheet", "font", "media"]
    )
    navigation_timeout_ms: int = 30000
    # Overrides the extractor's own content-ready timeout when set.
    content_wait_ms: int | None = None

    # Retries
    max_retries: int = 2
    backoff_base: float = 1.0
    backoff_cap: float = 8.0
    backoff_jitter: float = 0.5

    # Aggregation
    max_concurrency: int = 4
    request_deadline: float | None = 60.0
    max_results: int = 50
    cache_ttl: float = 300.0
    cache_sweep_interval: float = 60.0

    # Input bounds
    max_price: float = 10_000_000.0
    max_category_length: int = 50

    # Ranking
    reference_price: float = 1000.0

    # Where the CLI writes results
    output_path: str = "output/products.json"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "AggregatorConfig":
        """
        Build config from environment variables (all optional).
        """
        defaults = cls()

        def _get(name: str, default: Any) -> str:
            return os.getenv(name, str(default))

        def _list(name: str, default: List[str]) -> List[str]:
            raw = os.getenv(name)
            if raw is None:
                return list(default)
            return [v.strip() for v in raw.split(",") if v.strip()]

        # An empty value disables the overall deadline.
        deadline = os.getenv("AGGREGATOR_REQUEST_DEADLINE")
        if deadline is None:
            request_deadline = defaults.request_deadline
        else:
            request_deadline = float(deadline) if deadline.strip() else None
        content_wait = os.getenv("AGGREGATOR_CONTENT_WAIT_MS")

        return cls(
            sources=_list("AGGREGATOR_SOURCES", defaults.sources),
            extra_extractors=_list("AGGREGATOR_EXTRA_EXTRACTORS", []),
            headless=_get("AGGREGATOR_HEADLESS", "1").lower() not in ("0", "false", "no"),
            user_agent=_get("AGGREGATOR_USER_AGENT", defaults.user_agent),
            viewport_width=int(_get("AGGREGATOR_VIEWPORT_WIDTH", defaults.viewport_width)),
            viewport_height=int(_get("AGGREGATOR_VIEWPORT_HEIGHT", defaults.viewport_height)),
            blocked_resource_types=_list("AGGREGATOR_BLOCKED_RESOURCES", defaults.blocked_resource_types),
            navigation_timeout_ms=int(_get("AGGREGATOR_NAVIGATION_TIMEOUT_MS", defaults.navigation_timeout_ms)),
            content_wait_ms=int(content_wait) if content_wait else None,
            max_retries=int(_get("AGGREGATOR_MAX_RETRIES", defaults.max_retries)),
            backoff_base=float(_get("AGGREGATOR_BACKOFF_BASE", defaults.backoff_base)),
            backoff_cap=float(_get("AGGREGATOR_BACKOFF_CAP", defaults.backoff_cap)),
            backoff_jitter=float(_get("AGGREGATOR_BACKOFF_JITTER", defaults.backoff_jitter)),
            max_concurrency=int(_get("AGGREGATOR_MAX_CONCURRENCY", defaults.max_concurrency)),
            request_deadline=request_deadline,
            max_results=int(_get("AGGREGATOR_MAX_RESULTS", defaults.max_results)),
            cache_ttl=float(_get("AGGREGATOR_CACHE_TTL", defaults.cache_ttl)),
            cache_sweep_interval=float(_get("AGGREGATOR_CACHE_SWEEP_INTERVAL", defaults.cache_sweep_interval)),
            max_price=float(_get("AGGREGATOR_MAX_PRICE", defaults.max_price)),
            max_category_length=int(_get("AGGREGATOR_MAX_CATEGORY_LENGTH", defaults.max_category_length)),
            reference_price=float(_get("AGGREGATOR_REFERENCE_PRICE", defaults.reference_price)),
            output_path=_get("AGGREGATOR_OUTPUT_PATH", defaults.output_path),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "AggregatorConfig":
        """
        Load configuration from a JSON file. Supports schema migration for future versions.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if not self.sources:
            raise ValueError("sources cannot be empty; enable at least one storefront.")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        if self.max_retries <= 0:
            raise ValueError("max_retries must be > 0 (it counts total attempts)")
        if self.backoff_base < 0 or self.backoff_cap < 0 or self.backoff_jitter < 0:
            raise ValueError("backoff settings must be >= 0")
        if self.request_deadline is not None and self.request_deadline <= 0:
            raise ValueError("request_deadline must be > 0 or unset")
        if self.max_results <= 0:
            raise ValueError("max_results must be > 0")
        if self.cache_ttl <= 0:
            raise ValueError("cache_ttl must be > 0")
        if self.reference_price <= 0:
            raise ValueError("reference_price must be > 0")
        if not str(self.output_path).strip():
            raise ValueError("output_path cannot be empty")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    raw = dict(raw)
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 used a single "retries" count on top of the first attempt.
        if "retries" in raw:
            raw["max_retries"] = int(raw.pop("retries")) + 1
        # v1 called extractors "adapters".
        if "extra_adapters" in raw:
            raw["extra_extractors"] = raw.pop("extra_adapters")
        raw["schema_version"] = 2

    # Ensure a schema_version is present
    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw

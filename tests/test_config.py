from __future__ import annotations

import json

import pytest

from shop_aggregator.config import AggregatorConfig, migrate_config
from shop_aggregator.version import CONFIG_SCHEMA_VERSION


def test_defaults_are_valid(tmp_path):
    cfg = AggregatorConfig(output_path=str(tmp_path / "a" / "b.json"))
    cfg.validate()
    assert cfg.sources == ["amazon", "myntra"]
    assert cfg.blocked_resource_types == ["image", "stylesheet", "font", "media"]
    assert not (tmp_path / "a").exists()


def test_from_env(monkeypatch):
    monkeypatch.setenv("AGGREGATOR_SOURCES", "myntra, amazon")
    monkeypatch.setenv("AGGREGATOR_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("AGGREGATOR_HEADLESS", "0")
    monkeypatch.setenv("AGGREGATOR_REQUEST_DEADLINE", "")
    monkeypatch.setenv("AGGREGATOR_CACHE_TTL", "12.5")
    cfg = AggregatorConfig.from_env()
    assert cfg.sources == ["myntra", "amazon"]
    assert cfg.max_concurrency == 3
    assert cfg.headless is False
    assert cfg.request_deadline is None
    assert cfg.cache_ttl == 12.5
    assert cfg.content_wait_ms is None


def test_from_env_defaults(monkeypatch):
    for name in ("AGGREGATOR_SOURCES", "AGGREGATOR_REQUEST_DEADLINE", "AGGREGATOR_MAX_RETRIES"):
        monkeypatch.delenv(name, raising=False)
    cfg = AggregatorConfig.from_env()
    assert cfg.sources == ["amazon", "myntra"]
    assert cfg.request_deadline == 60.0
    assert cfg.max_retries == 2


def test_from_file_migrates_v1(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"schema_version": 1, "retries": 2, "extra_adapters": ["pkg.mod:Cls"]}))
    cfg = AggregatorConfig.from_file(path)
    assert cfg.schema_version == CONFIG_SCHEMA_VERSION
    assert cfg.max_retries == 3
    assert cfg.extra_extractors == ["pkg.mod:Cls"]


def test_migrate_is_pure():
    raw = {"retries": 1}
    migrate_config(raw)
    assert raw == {"retries": 1}


@pytest.mark.parametrize("field, value", [
    ("sources", []),
    ("max_concurrency", 0),
    ("max_retries", 0),
    ("request_deadline", 0),
    ("max_results", 0),
    ("cache_ttl", 0),
    ("reference_price", -1),
])
def test_validate_rejects(tmp_path, field, value):
    cfg = AggregatorConfig(output_path=str(tmp_path / "out.json"))
    setattr(cfg, field, value)
    with pytest.raises(ValueError):
        cfg.validate()


def test_blank_output_path_is_rejected():
    with pytest.raises(ValueError):
        AggregatorConfig(output_path="  ").validate()

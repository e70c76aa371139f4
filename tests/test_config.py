from pathlib import Path

from analytics.config import load_config


def test_defaults(monkeypatch, tmp_path):
    for name in ("TOP_N", "BOTTOM_N", "DECIMALS", "CATEGORY_LABEL", "MAX_WORKERS", "DUCKDB"):
        monkeypatch.delenv(f"AIRBNB_ANALYTICS_{name}", raising=False)
    monkeypatch.setenv("AIRBNB_ANALYTICS_ROOT", str(tmp_path))
    cfg = load_config(refresh=True)
    assert (cfg.top_n, cfg.bottom_n, cfg.decimals) == (3, 2, 2)
    assert cfg.category_label == "Yurt"
    assert cfg.duckdb_path == tmp_path / "db" / "airbnb.duckdb"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("AIRBNB_ANALYTICS_TOP_N", "5")
    monkeypatch.setenv("AIRBNB_ANALYTICS_CATEGORY_LABEL", "Treehouse")
    monkeypatch.setenv("AIRBNB_ANALYTICS_DUCKDB", "/data/market.duckdb")
    cfg = load_config(refresh=True)
    assert cfg.top_n == 5
    assert cfg.category_label == "Treehouse"
    assert cfg.duckdb_path == Path("/data/market.duckdb")


def test_malformed_values_fall_back(monkeypatch):
    monkeypatch.setenv("AIRBNB_ANALYTICS_BOTTOM_N", "two")
    monkeypatch.setenv("AIRBNB_ANALYTICS_MAX_WORKERS", "0")
    cfg = load_config(refresh=True)
    assert cfg.bottom_n == 2
    assert cfg.max_workers == 4


def test_cached_until_refresh(monkeypatch):
    first = load_config(refresh=True)
    monkeypatch.setenv("AIRBNB_ANALYTICS_TOP_N", "9")
    assert load_config() is first
    assert load_config(refresh=True).top_n == 9

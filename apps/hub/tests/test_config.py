from config import Settings


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.app_name == "River Gauge Hub"
    assert settings.app_version == "0.1.0"
    assert settings.wmis_base_url == "https://data.water.vic.gov.au"
    assert settings.wmis_conductivity_varcode == "62"
    assert settings.recency_window_months == 3
    assert settings.snapshot_cache_ttl == 300
    assert settings.series_cache_ttl == 3600
    assert settings.water_quality_cache_ttl == 0


def test_settings_normalizes_cors_from_string():
    settings = Settings(_env_file=None, cors_origins="http://example.com, http://localhost")
    assert settings.cors_origins == ["http://example.com", "http://localhost"]


def test_settings_handles_case_insensitive_env(monkeypatch):
    monkeypatch.setenv("WMIS_DISSOLVED_OXYGEN_VARCODE", "810")
    monkeypatch.setenv("series_cache_ttl", "60")
    settings = Settings(_env_file=None)
    assert settings.wmis_dissolved_oxygen_varcode == "810"
    assert settings.series_cache_ttl == 60

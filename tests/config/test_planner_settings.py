from pathlib import Path

from bunkplanner.config.settings import Settings
from bunkplanner.decision.models import DecisionThresholds


def test_defaults(monkeypatch):
    for name in ("LOG_LEVEL", "TRAVEL_TIME_MINUTES", "TERM_FILE"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.travel_time_minutes == 240
    assert settings.warning_margin == 5.0
    assert Path(settings.term_file).name == "sample_term.json"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TRAVEL_TIME_MINUTES", "90")
    monkeypatch.setenv("AT_RISK_RATIO", "0.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings(_env_file=None)

    assert settings.travel_time_minutes == 90
    assert settings.at_risk_ratio == 0.5
    assert settings.log_level == "DEBUG"


def test_invalid_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    assert Settings(_env_file=None).log_level == "INFO"


def test_thresholds_from_settings(monkeypatch):
    monkeypatch.setenv("LARGE_GAP_MINUTES", "120")
    monkeypatch.setenv("PROJECTION_HORIZON_DAYS", "14")

    thresholds = DecisionThresholds.from_settings(Settings(_env_file=None))

    assert thresholds.large_gap_minutes == 120
    assert thresholds.projection_horizon_days == 14
    assert thresholds.travel_time_minutes == DecisionThresholds().travel_time_minutes

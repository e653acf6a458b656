import pytest

from app.config import get_settings


def test_settings_defaults(monkeypatch) -> None:
    for key in [
        "BASE_LOCK_MINUTES",
        "EXTENDED_LOCK_MINUTES",
        "IDEMPOTENCY_TTL_HOURS",
        "BOOSTER_DEFAULT_DURATION_DAYS",
        "ENABLE_SCHEDULER",
        "SCHED_EXPIRE_INTERVAL_SEC",
        "SCHED_PURGE_INTERVAL_SEC",
        "SCHED_JITTER_SEC",
        "SCHED_REQUIRE_DB",
        "CRON_SECRET",
        "AUTH_TIMEOUT_SEC",
        "LOG_LEVEL",
    ]:
        monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.base_lock_minutes == 60
    assert settings.extended_lock_minutes == 15
    assert settings.idempotency_ttl_hours == 24
    assert settings.booster_default_duration_days == 7
    assert settings.enable_scheduler is False
    assert settings.sched_expire_interval_sec == 300
    assert settings.sched_purge_interval_sec == 3600
    assert settings.sched_jitter_sec == 30
    assert settings.sched_require_db is True
    assert settings.cron_secret == ""
    assert settings.auth_timeout_sec == 5.0
    assert settings.log_level == "INFO"


def test_settings_env_overrides_defaults(monkeypatch) -> None:
    monkeypatch.setenv("BASE_LOCK_MINUTES", "90")
    monkeypatch.setenv("EXTENDED_LOCK_MINUTES", "20")
    monkeypatch.setenv("IDEMPOTENCY_TTL_HOURS", "48")
    monkeypatch.setenv("ENABLE_SCHEDULER", "true")
    monkeypatch.setenv("AUTH_BASE_URL", "https://auth.example.com/")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.base_lock_minutes == 90
    assert settings.extended_lock_minutes == 20
    assert settings.idempotency_ttl_hours == 48
    assert settings.enable_scheduler is True
    assert settings.auth_base_url == "https://auth.example.com"
    assert settings.log_level == "DEBUG"


def test_settings_reject_inverted_lock_windows(monkeypatch) -> None:
    monkeypatch.setenv("BASE_LOCK_MINUTES", "10")
    monkeypatch.setenv("EXTENDED_LOCK_MINUTES", "15")
    get_settings.cache_clear()

    with pytest.raises(ValueError):
        get_settings()
    get_settings.cache_clear()

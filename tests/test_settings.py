import pytest

from backend.core import settings as settings_module


@pytest.fixture
def fresh_settings(monkeypatch):
    def _load(**env):
        for key, value in env.items():
            if value is None:
                monkeypatch.delenv(key, raising=False)
            else:
                monkeypatch.setenv(key, value)
        settings_module.get_settings.cache_clear()
        return settings_module.get_settings()

    yield _load
    settings_module.get_settings.cache_clear()


def test_test_environment_defaults(settings):
    assert settings.environment == "test"
    assert settings.rate_limit_enabled is False
    assert settings.github_owner == "clankamode"
    assert settings.changelog_repo == "clankamode/meta-runner"
    assert settings.has_github_token is False
    assert settings.cors_allow_origins == ("*",)


def test_invalid_numbers_fall_back_to_defaults(fresh_settings):
    settings = fresh_settings(RATE_LIMIT_PER_MINUTE="zero", PRESENCE_TTL_SECONDS="-5", HTTP_TIMEOUT_SECONDS="0")
    assert settings.rate_limit_per_minute == 60
    assert settings.presence_ttl_seconds == 1800
    assert settings.http_timeout_seconds == 10.0


def test_unknown_environment_is_development(fresh_settings):
    settings = fresh_settings(ENVIRONMENT="qa", RATE_LIMIT_ENABLED=None, METRICS_ENABLED=None)
    assert settings.environment == "development"
    assert settings.rate_limit_enabled is True
    assert settings.metrics_enabled is True


def test_production_hides_prometheus_by_default(fresh_settings):
    settings = fresh_settings(ENVIRONMENT="production", METRICS_ENABLED=None)
    assert settings.metrics_enabled is False


def test_csv_and_string_settings(fresh_settings):
    settings = fresh_settings(
        CORS_ALLOW_ORIGINS="https://a.example, https://b.example,",
        GITHUB_OWNER="  ",
        GITHUB_API_BASE="https://ghe.example/api/v3/",
        LOG_LEVEL="debug",
    )
    assert settings.cors_allow_origins == ("https://a.example", "https://b.example")
    assert settings.github_owner == "clankamode"
    assert settings.github_api_base == "https://ghe.example/api/v3"
    assert settings.log_level == "DEBUG"


def test_server_binding(fresh_settings):
    settings = fresh_settings(HOST="127.0.0.1", PORT="not-a-port")
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert fresh_settings(PORT="9100").port == 9100

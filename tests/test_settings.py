from admissions.app.core.settings import Settings, get_settings


def test_settings_defaults(monkeypatch):
    for name in ["APP_ENV", "PHONE_COUNTRY_CODE", "NOTIFIER_URL", "SCHEDULER_URL", "SIDE_EFFECT_TIMEOUT_SECONDS", "SEND_WELCOME_MESSAGE"]:
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    assert settings.app_name == "Admissions CRM"
    assert settings.environment == "development"
    assert settings.country_code == "+91"
    assert settings.notifier_url == ""
    assert settings.scheduler_url == ""
    assert settings.side_effect_timeout_seconds == 10.0
    assert settings.send_welcome_message is False


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("PHONE_COUNTRY_CODE", "+44")
    monkeypatch.setenv("SIDE_EFFECT_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SEND_WELCOME_MESSAGE", "yes")
    settings = Settings()
    assert settings.country_code == "+44"
    assert settings.side_effect_timeout_seconds == 2.5
    assert settings.send_welcome_message is True


def test_get_settings_is_singleton():
    assert get_settings() is get_settings()
    assert isinstance(get_settings().database_url, str) and get_settings().database_url

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    def __init__(self):
        self.app_name = "Admissions CRM"
        self.api_version = "1.0.0"
        self.environment = os.getenv("APP_ENV", "development")
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./admissions.db")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        # Stored phones are the 10 local digits behind this prefix
        self.country_code = os.getenv("PHONE_COUNTRY_CODE", "+91")
        self.notifier_url = os.getenv("NOTIFIER_URL", "")
        self.notifier_api_key = os.getenv("NOTIFIER_API_KEY", "")
        self.scheduler_url = os.getenv("SCHEDULER_URL", "")
        self.side_effect_timeout_seconds = float(os.getenv("SIDE_EFFECT_TIMEOUT_SECONDS", "10"))
        self.send_welcome_message = _env_bool("SEND_WELCOME_MESSAGE", False)


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance

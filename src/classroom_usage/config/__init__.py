import os


def get_settings_module() -> str:
    # APP_ENV selects the settings module, defaulting to development
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "classroom_usage.config.production"

    if env in {"test", "testing"}:
        return "classroom_usage.config.testing"

    return "classroom_usage.config.development"

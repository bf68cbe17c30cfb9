import os
import tempfile

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    APP_NAME: str = "google-search"
    APP_DESCRIPTION: str | None = "Google search through a fingerprint-consistent Playwright session"
    APP_VERSION: str | None = "1.0.0"


class LoggingSettings(BaseSettings):
    """Logging destinations.

    The console handler always writes to stderr because stdout carries the CLI's JSON output.
    """

    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOG_DIR: str = os.path.join(tempfile.gettempdir(), "google-search-logs")
    LOG_FILE_NAME: str = "google-search.log"


class SearchSettings(BaseSettings):
    """Configuration for the adaptive search engine.

    Timeouts are in milliseconds, matching Playwright's own units.
    """

    # ============================================
    # Result / Timeout Defaults
    # ============================================
    SEARCH_DEFAULT_LIMIT: int = 10
    SEARCH_DEFAULT_TIMEOUT_MS: int = 60000  # library entry point
    SEARCH_CLI_TIMEOUT_MS: int = 30000  # command line entry point
    SEARCH_API_TIMEOUT_MS: int = 30000  # HTTP tool entry point

    # ============================================
    # Session State Files
    # ============================================
    SEARCH_DEFAULT_STATE_FILE: str = "./browser-state.json"
    SEARCH_API_STATE_FILE: str = "~/.google-search-browser-state.json"

    # ============================================
    # Fingerprint Fallbacks
    # ============================================
    SEARCH_DEFAULT_LOCALE: str = "en-US"
    SEARCH_DEFAULT_TIMEZONE: str = "Asia/Shanghai"

    # ============================================
    # Provider Domains
    # ============================================
    # One is picked at random on first run, then pinned in the state file
    SEARCH_PROVIDER_DOMAINS: list[str] = [
        "https://www.google.com",
        "https://www.google.co.uk",
        "https://www.google.ca",
        "https://www.google.com.au",
        "https://www.google.hu",
    ]


class Settings(
    AppSettings,
    LoggingSettings,
    SearchSettings,
):
    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.realpath(__file__)), "..", "..", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()

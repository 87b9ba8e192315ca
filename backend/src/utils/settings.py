from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PATH = Path(__file__).resolve().parents[2] / "configs/.env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # App
    APP_ENV: str = "dev"
    APP_NAME: str = "transaction-detection"
    LOG_LEVEL: str = "INFO"

    # Logging
    LOG_DIRECTORY: str = "logs"
    LOG_NAME: str = "transaction_detection.log"
    LOG_MAX_BYTES: int = 10**7
    LOG_BACKUP_COUNT: int = 5

    # Platform override: "android" forces native bridges, anything else disables them.
    # Left unset, the interpreter is inspected for Android markers.
    DETECTION_PLATFORM: str | None = None

    # Durable state (processed/dismissed ids + settings)
    DETECTION_STATE_PATH: str = "data/transaction_detection_state.json"
    DETECTION_AUTOSTART: bool = True

    # SMS watcher
    SMS_WATCH_INTERVAL_SECONDS: float = 30.0
    SMS_WATCH_HOURS_BACK: float = 1.0
    SMS_WATCH_MAX_COUNT: int = 20

    # On-demand SMS scan
    SMS_SCAN_HOURS_BACK: float = 48.0
    SMS_SCAN_MAX_COUNT: int = 50

    @computed_field
    @property
    def STATE_FILE(self) -> Path:  # noqa: N802
        return Path(self.DETECTION_STATE_PATH).expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOCKERBAY_", env_file=".env", extra="ignore")

    environment: str = "production"
    database_url: str = "sqlite+pysqlite:///./lockerbay.db"
    lock_timeout_seconds: float = 5.0
    transaction_retries: int = 1
    otp_ttl_minutes: int = 10
    expiring_soon_minutes: int = 15
    event_log_path: Path = Path("./lockerbay_events.jsonl")
    logging_config_path: Path = _PACKAGE_ROOT / "logging.yaml"
    log_level: str = "INFO"
    log_format: str = "text"
    inventory_path: Path | None = None
    max_reservation_hours: float = 168
    max_extension_hours: float = 168
    max_total_reservation_hours: float = 720
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""
    operator_user_ids: list[str] = []

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


"""
Application settings (Pydantic Settings).
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env next to backend/ (parent of townhub/)
_env_path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./townhub.db"

    # Shared secret for the scheduled quota reset trigger (CRON_SECRET). Empty = no check.
    cron_secret: str = ""
    # Bearer tokens from the auth provider (HS256, sub = external user id)
    auth_jwt_secret: str = ""
    # Demo/dev: resolve the caller from X-Mock-User-Id instead of a bearer token
    mock_auth: bool = False

    # Push fan-out: "expo" | "apns" | "none"
    push_provider: str = "expo"
    push_max_workers: int = 8
    push_timeout_seconds: float = 10.0
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    expo_access_token: str = ""
    apns_key_id: str = ""
    apns_team_id: str = ""
    apns_bundle_id: str = ""
    apns_key_p8_path: str = ""
    apns_use_sandbox: bool = True

    # In-process trigger for the monthly reset (off when an external cron calls /cron/reset-quotas)
    quota_reset_job_enabled: bool = False
    quota_reset_hour_utc: int = 3

    cors_origins: str = ""

    class Config:
        env_file = _env_path
        extra = "ignore"

    @field_validator("cron_secret", "auth_jwt_secret", "expo_access_token", mode="after")
    @classmethod
    def strip_secret(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("push_provider", mode="after")
    @classmethod
    def normalize_provider(cls, v: str) -> str:
        return (v or "none").strip().lower()


settings = Settings()

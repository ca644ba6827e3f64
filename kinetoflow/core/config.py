from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "KinetoFlow API"
    database_url: str = (
        "postgresql+psycopg2://kinetoflow:kinetoflow@db:5432/kinetoflow"  # pragma: allowlist secret
    )
    redis_url: str = "redis://redis:6379/0"
    cors_origins: list[str] = ["http://localhost:3000"]
    rate_limit_requests: int = 120
    rate_limit_window_seconds: int = 60

    frontend_base_url: str = "http://localhost:3000"
    invitation_token_ttl_minutes: int = 60 * 24

    jwt_secret: str = "change-me-in-production"  # pragma: allowlist secret
    jwt_ttl_ms: int = 24 * 60 * 60 * 1000
    jwt_issuer: str = "kinetoflow"

    mail_from: str = "no-reply@kinetoflow.local"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_mock_mode: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()

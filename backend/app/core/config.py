# backend/app/core/config.py

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"

    database_url: str = "sqlite:///./inventory.db"

    # one secret everywhere (auth routes + deps + functions)
    jwt_secret_key: str = Field(
        default="dev-secret-change-me",
        validation_alias=AliasChoices("JWT_SECRET_KEY", "JWT_SECRET", "SECRET_KEY"),
    )
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080

    # comma-separated allowlist, e.g. "https://inventory.example.com,http://localhost:5173"
    cors_origins: str = ""
    frontend_url: str = "http://localhost:5173"

    log_level: str = "INFO"

    seed_default_users: bool = False

    # display-name changes go through the privileged metadata path
    account_metadata_updates_enabled: bool = True

    default_page_size: int = 10
    max_page_size: int = 100
    search_min_chars: int = 2

    # stock alert refresh (2 hours)
    alert_poll_seconds: int = 7200

    def allowed_origins(self) -> list[str]:
        raw = self.cors_origins.strip()
        if raw:
            return [o.strip() for o in raw.split(",") if o.strip()]
        return list({self.frontend_url.strip(), "http://localhost:5173"})


settings = Settings()

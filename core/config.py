from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str
    create_schema_on_startup: bool = False

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # API
    api_port: int = 8000

    # Security
    secret_key: str  # HMAC secret for offer tokens
    session_ttl_hours: int = 24 * 7
    min_password_length: int = 6

    # Login throttling
    login_max_failures: int = 5
    login_lockout_seconds: int = 900

    # Logging
    log_level: str = "INFO"

    # Environment
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()

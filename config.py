from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Broker Portal API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./broker_portal.db"
    cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    admin_emails: str = ""

    # Applications / documents
    reference_prefix: str = "LA"
    max_upload_size_mb: int = 20

    # Object storage: "s3", "local", "memory" or "none"
    storage_primary: str = "s3"
    storage_secondary: str = "local"
    local_storage_dir: str = "./storage"

    s3_endpoint_url: str | None = None
    s3_bucket: str = "loan-documents"
    s3_access_key_id: str | None = None
    s3_secret_access_key: str | None = None
    s3_region: str = "auto"

    s3_secondary_endpoint_url: str | None = None
    s3_secondary_bucket: str = "documents"
    s3_secondary_access_key_id: str | None = None
    s3_secondary_secret_access_key: str | None = None
    s3_secondary_region: str = "auto"

    # Telegram relay
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    telegram_api_base: str = "https://api.telegram.org"
    telegram_webhook_secret: str | None = None
    relay_timeout_seconds: float = 10.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def admin_email_set(self) -> set[str]:
        return {e.strip().lower() for e in self.admin_emails.split(",") if e.strip()}

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


settings = Settings()

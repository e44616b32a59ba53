from pydantic import Field
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str
    port: int
    debug: bool
    secret_key: str  # Signs access tokens
    cors_origins: list[str] = []
    access_token_expire_minutes: int = 60 * 24
    jwt_algorithm: str = "HS256"
    bcrypt_rounds: int = 12
    # Sessions idle longer than this lose their claim on the account
    session_timeout_minutes: int = 30
    # Idle threshold for the background cleanup, independent of session_timeout_minutes
    session_cleanup_minutes: int = 60
    session_cleanup_interval_minutes: int = Field(15, ge=1)
    entitlement_window_days: int = 180
    extension_months: int = 6
    expiry_sweep_hour: int = Field(2, ge=0, le=23)  # UTC hour for the daily expiry sweep
    expiry_warning_hour: int = Field(9, ge=0, le=23)  # UTC hour for the daily expiry warnings
    scheduler_enabled: bool = True
    max_login_attempts: int = 5
    login_lock_minutes: int = 15
    telegram_bot_token: str | None = None  # Forward expiry notices to Telegram (optional)
    telegram_chat_id: str | None = None
    admin_email: str = "admin@coursegate.local"
    admin_password: str = "admin123"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "COURSEGATE_",
        "extra": "ignore",
    }

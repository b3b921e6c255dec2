from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Society Voices")
    app_description: str = Field(default="Voices, reports and moderation API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)
    timezone: str = Field(default="UTC")

    # Database Configuration
    # DATABASE_URL wins over the individual parts when set
    database_url: Optional[str] = Field(default=None)
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="society")
    db_username: str = Field(default="society")
    db_password: str = Field(default="society")

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # JWT Configuration
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_expiration: int = Field(default=7)
    jwt_refresh_expiration: int = Field(default=30)
    jwt_issuer: str = Field(default="Society Voices")

    # Protected identity (the original president)
    protected_president_email: str = Field(default="president@society.org")
    protected_president_name: str = Field(default="Original President")
    protected_president_password: str = Field(default="President@123")

    # Moderation
    report_threshold: int = Field(default=3)
    block_notice_path: str = Field(default="/suspended")
    max_timeout_minutes: int = Field(default=60 * 24 * 30)
    voice_categories: List[str] = Field(
        default=["Opinion", "Experience", "Poetry", "Awareness", "Other"]
    )

    # File Uploads
    upload_dir: str = Field(default="storage")

    # Redis
    redis_enabled: bool = Field(default=False)
    redis_url: str = Field(default="redis://localhost:6379")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage: str = Field(default="memory://")
    login_rate_limit: str = Field(default="10/minute")
    report_rate_limit: str = Field(default="20/minute")

    # Telegram
    telegram_bot_token: str = Field(default="")
    telegram_admin_chat_id: str = Field(default="")
    telegram_notification_enabled: bool = Field(default=False)

    # Logging
    log_file: str = Field(default="logs/app.log")

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @field_validator("voice_categories", mode="before")
    def validate_categories(cls, v):
        return cls._parse_csv(
            v, ["Opinion", "Experience", "Poetry", "Awareness", "Other"]
        )

    @field_validator("protected_president_email", mode="after")
    def normalize_protected_email(cls, v):
        return v.strip().lower()

    @field_validator("report_threshold", mode="after")
    def validate_threshold(cls, v):
        if v < 1:
            raise ValueError("report_threshold must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )


def load_settings():
    try:
        return Settings()
    except ValidationError as e:
        print("❌ Settings validation error:", e)
        raise


settings = load_settings()

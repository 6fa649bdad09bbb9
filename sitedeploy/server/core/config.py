"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class SMTPConfig(BaseModel):
    """SMTP configuration for build notification e-mails."""

    host: Optional[str] = Field(default=None, alias="SMTP_HOST", description="SMTP server host (disabled when unset)")
    port: int = Field(default=587, alias="SMTP_PORT", description="SMTP server port")
    username: Optional[str] = Field(default=None, alias="SMTP_USERNAME", description="SMTP login user")
    password: Optional[str] = Field(default=None, alias="SMTP_PASSWORD", description="SMTP login password")
    use_tls: bool = Field(default=True, alias="SMTP_USE_TLS", description="Upgrade the connection with STARTTLS")
    from_address: str = Field(
        default="sitedeploy@localhost", alias="SMTP_FROM_ADDRESS", description="Sender address of notifications"
    )

    model_config = {"populate_by_name": True}

    @property
    def enabled(self) -> bool:
        return bool(self.host)


class TelegramConfig(BaseModel):
    """Telegram bot configuration for build notifications."""

    bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN", description="Telegram bot token")
    chat_id: Optional[str] = Field(default=None, alias="TELEGRAM_CHAT_ID", description="Target chat identifier")
    api_base_url: str = Field(
        default="https://api.telegram.org", alias="TELEGRAM_API_BASE_URL", description="Telegram Bot API base URL"
    )

    model_config = {"populate_by_name": True}

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins (use * for all)")
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True}


class BuildConfig(BaseModel):
    """Build pipeline configuration."""

    storage_root: str = Field(
        default="./storage/my_site", alias="SITE_STORAGE_ROOT", description="Root directory of site scripts and logs"
    )
    timeout_seconds: int = Field(
        default=600, alias="BUILD_TIMEOUT_SECONDS", description="Maximum duration of a single build job"
    )
    shell: str = Field(default="/bin/bash", alias="BUILD_SHELL", description="Interpreter used to run build scripts")
    path_project: str = Field(
        default="/var/www/html", alias="PATH_PROJECT", description="Root directory of deployed site checkouts"
    )
    log_pm2_path: str = Field(
        default="/var/www/html/log_pm2", alias="LOG_PM2_PATH", description="Directory holding PM2 log files"
    )
    dev_email: str = Field(
        default="dev@example.com", alias="DEV_EMAIL", description="Fallback recipient of build notifications"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # sitedeploy Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="sitedeploy server host address to bind to",
        alias="SITEDEPLOY_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="sitedeploy server port number",
        alias="SITEDEPLOY_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="sitedeploy server logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="SITEDEPLOY_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="LOG_FORMAT",
    )
    log_file_dir: str = Field(
        default="logs",
        description="Directory of the application and build log files",
        alias="LOG_FILE_DIR",
    )
    enable_file_logging: bool = Field(
        default=True,
        description="Write logs to files in addition to the console",
        alias="ENABLE_FILE_LOGGING",
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./sitedeploy.db",
        description="Async SQLAlchemy connection URL for the application database",
        alias="DATABASE_URL",
    )

    # =====================================================================
    # Security Configuration
    # =====================================================================
    app_encrypt_key: str = Field(
        default="",
        description="Key used to encrypt environment variable values at rest",
        alias="APP_ENCRYPT_KEY",
    )

    # =====================================================================
    # Build Pipeline Configuration
    # =====================================================================
    site_storage_root: str = Field(default="./storage/my_site", alias="SITE_STORAGE_ROOT")
    build_timeout_seconds: int = Field(default=600, alias="BUILD_TIMEOUT_SECONDS")
    build_shell: str = Field(default="/bin/bash", alias="BUILD_SHELL")
    path_project: str = Field(default="/var/www/html", alias="PATH_PROJECT")
    log_pm2_path: str = Field(default="/var/www/html/log_pm2", alias="LOG_PM2_PATH")
    dev_email: str = Field(default="dev@example.com", alias="DEV_EMAIL")

    # =====================================================================
    # Notification Configuration
    # =====================================================================
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: Optional[str] = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: Optional[str] = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    smtp_from_address: str = Field(default="sitedeploy@localhost", alias="SMTP_FROM_ADDRESS")
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: Optional[str] = Field(default=None, alias="TELEGRAM_CHAT_ID")
    telegram_api_base_url: str = Field(default="https://api.telegram.org", alias="TELEGRAM_API_BASE_URL")

    # =====================================================================
    # CORS Configuration
    # =====================================================================
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def smtp(self) -> SMTPConfig:
        """Get SMTP configuration from environment variables."""
        return SMTPConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def telegram(self) -> TelegramConfig:
        """Get Telegram configuration from environment variables."""
        return TelegramConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration from environment variables."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def build(self) -> BuildConfig:
        """Get build pipeline configuration from environment variables."""
        return BuildConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()

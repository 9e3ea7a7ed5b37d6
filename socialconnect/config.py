"""
Application configuration using Pydantic Settings.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    
    # Application
    app_name: str = "SocialConnect"
    debug: bool = False
    secret_key: str = "change-this-in-production"
    log_level: str = "INFO"
    # Public base URL for OAuth callbacks when running behind a proxy
    application_url: str | None = None
    
    # Database
    database_url: str = "sqlite+aiosqlite:///./socialconnect.db"
    
    # JWT
    jwt_secret_key: str = "change-this-jwt-secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7
    
    # Stored provider credentials; empty disables encryption
    encryption_key: str = ""
    
    # Sign-in / connect flow
    signin_url: str = "/api/v1/signin"
    signup_url: str | None = "/signup"
    post_login_url: str = "/"
    post_failure_url: str = "/signin"
    connection_added_redirect_url: str | None = None
    connect_status_url: str = "/api/v1/connect"
    implicit_signup: bool = False
    update_connections: bool = True
    http_timeout_seconds: float = 10.0
    
    # Facebook OAuth2
    facebook_app_id: str = ""
    facebook_app_secret: str = ""
    facebook_scope: str = "email"
    
    # Twitter OAuth1
    twitter_consumer_key: str = ""
    twitter_consumer_secret: str = ""


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Application configuration."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Auth0 Actions Manager", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3100, description="Server port")
    workers: int = Field(default=1, description="Number of workers")
    reload: bool = Field(default=False, description="Auto-reload on changes")

    # Auth0 Management API (M2M application)
    auth0_domain: Optional[str] = Field(default=None, description="Auth0 tenant domain")
    auth0_client_id: Optional[str] = Field(default=None, description="M2M client ID")
    auth0_client_secret: Optional[str] = Field(
        default=None, description="M2M client secret"
    )
    auth0_audience: Optional[str] = Field(
        default=None, description="Management API audience (defaults to https://{domain}/api/v2/)"
    )
    auth0_request_timeout: float = Field(
        default=30.0, description="Management API request timeout in seconds"
    )

    # Action deployment
    action_name_prefix: Optional[str] = Field(
        default=None, description="Prefix for action names (e.g. 'myapp-')"
    )
    metadata_key: Optional[str] = Field(
        default=None, description="Key used for user_metadata written by the action"
    )
    claims_namespace: Optional[str] = Field(
        default=None, description="Namespace for custom token claims"
    )
    callback_url: Optional[str] = Field(
        default=None, description="Base URL the deployed action calls back"
    )
    callback_api_key: Optional[str] = Field(
        default=None, description="API key the deployed action authenticates with"
    )
    callback_url_secret_name: Optional[str] = Field(
        default=None, description="Action secret name holding the callback URL"
    )
    callback_api_key_secret_name: Optional[str] = Field(
        default=None, description="Action secret name holding the callback API key"
    )
    default_timeout_ms: int = Field(
        default=5000, description="Timeout for callback requests made by the action"
    )
    action_runtime: str = Field(default="node18", description="Action runtime")

    # Storage
    database_url: str = Field(
        default="sqlite+aiosqlite:///./auth0_actions.db", description="Database URL"
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    m2m_config_table: str = Field(
        default="auth0_m2m_config", description="Table holding stored M2M configurations"
    )
    encryption_key: Optional[str] = Field(
        default=None, description="Base64 encoded 256-bit key for secrets at rest"
    )

    # Monitoring
    metrics_enabled: bool = Field(default=True, description="Enable metrics")

    # CORS
    cors_enabled: bool = Field(default=True, description="Enable CORS")
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:3100"],
        description="CORS origins",
    )
    cors_credentials: bool = Field(default=True, description="CORS credentials")
    cors_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        description="CORS methods",
    )
    cors_headers: List[str] = Field(default=["*"], description="CORS headers")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment.lower() in ("testing", "test")

    @property
    def management_configured(self) -> bool:
        """Check if M2M credentials for the Management API are present."""
        return bool(self.auth0_domain and self.auth0_client_id and self.auth0_client_secret)

    @property
    def deployment_configured(self) -> bool:
        """Check if the action naming and callback settings are present."""
        return bool(
            self.callback_url
            and self.callback_api_key
            and self.action_name_prefix
            and self.metadata_key
            and self.claims_namespace
        )


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return Settings()


# Global settings instance
settings = get_settings()

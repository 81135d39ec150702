"""M2M settings API schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SaveM2MConfigInput(BaseModel):
    """Schema for saving a new M2M configuration."""
    name: Optional[str] = Field(None, max_length=100, description="Display name")
    domain: str = Field(..., min_length=1, description="Auth0 tenant domain")
    client_id: str = Field(..., min_length=1, description="M2M client ID")
    client_secret: str = Field(..., min_length=1, description="M2M client secret (will be encrypted)")
    audience: Optional[str] = Field(None, description="Management API audience")
    scope: Optional[str] = Field(None, description="Granted scopes")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Production tenant",
                "domain": "my-tenant.us.auth0.com",
                "client_id": "abc123",
                "client_secret": "********",
            }
        }
    )


class CredentialsTestInput(BaseModel):
    """Schema for testing credentials without saving them."""
    domain: str = Field(..., min_length=1)
    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    audience: Optional[str] = None


class M2MConfigResponse(BaseModel):
    """Stored M2M configuration without the client secret."""
    id: int
    name: Optional[str] = None
    domain: str
    client_id: str
    client_secret_set: bool
    audience: Optional[str] = None
    scope: Optional[str] = None
    is_active: bool
    last_validated: Optional[datetime] = None
    validation_error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class M2MConfigListResponse(BaseModel):
    configs: List[M2MConfigResponse]


class SaveResult(BaseModel):
    """Outcome of saving a configuration."""
    success: bool
    id: Optional[int] = None
    error: Optional[str] = None


class DeleteResult(BaseModel):
    """Outcome of deleting a configuration."""
    success: bool
    error: Optional[str] = None


class CredentialTestResult(BaseModel):
    """Outcome of a client-credentials token request."""
    valid: bool
    domain: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    error: Optional[str] = None
    response_time_ms: Optional[int] = None


class AccessToken(BaseModel):
    token: str
    expires_in: Optional[int] = None


class EffectiveConfig(BaseModel):
    """Configuration in effect: the active stored row, else the environment."""
    domain: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    audience: Optional[str] = None
    name: Optional[str] = None
    source: Literal["database", "environment"]

    @property
    def complete(self) -> bool:
        return bool(self.domain and self.client_id and self.client_secret)

    def masked(self) -> dict:
        return {
            "domain": self.domain,
            "client_id": self.client_id,
            "client_secret_set": bool(self.client_secret),
            "audience": self.audience,
            "name": self.name,
            "source": self.source,
        }


class SettingsStatus(BaseModel):
    """Configuration status summary."""
    configured: bool
    domain: Optional[str] = None
    name: Optional[str] = None
    m2m_configured: bool
    last_validated: Optional[datetime] = None
    validation_error: Optional[str] = None
    source: Literal["database", "environment"]


class SocialConnection(BaseModel):
    id: str
    name: str
    strategy: str
    enabled_clients: List[str] = Field(default_factory=list)


class SocialConnectionListResponse(BaseModel):
    connections: List[SocialConnection]


class SetupUrls(BaseModel):
    """URLs to register on the Auth0 application."""
    callback_url: str
    logout_url: str
    web_origins: str

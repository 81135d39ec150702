"""Stored M2M credentials for the Management API."""

from auth0_actions.credentials.models import M2MConfig
from auth0_actions.credentials.schemas import (
    CredentialTestResult,
    EffectiveConfig,
    M2MConfigResponse,
    SaveM2MConfigInput,
    SettingsStatus,
)
from auth0_actions.credentials.service import M2MConfigService, m2m_config_service
from auth0_actions.credentials.routes import router

__all__ = [
    # Models
    "M2MConfig",
    # Schemas
    "CredentialTestResult",
    "EffectiveConfig",
    "M2MConfigResponse",
    "SaveM2MConfigInput",
    "SettingsStatus",
    # Service
    "M2MConfigService",
    "m2m_config_service",
    # Router
    "router",
]

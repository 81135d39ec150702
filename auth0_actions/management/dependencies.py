"""FastAPI dependencies for the Management API components."""

from functools import lru_cache

from fastapi import Depends, HTTPException, status

from auth0_actions.config import settings
from auth0_actions.management.actions import ActionsManager
from auth0_actions.management.client import Auth0ManagementClient
from auth0_actions.management.schemas import ActionsConfig, ManagementConfig
from auth0_actions.management.triggers import TriggersManager


def build_management_config() -> ManagementConfig:
    """Management API credentials from the application settings."""
    return ManagementConfig(
        domain=settings.auth0_domain,
        client_id=settings.auth0_client_id,
        client_secret=settings.auth0_client_secret,
        audience=settings.auth0_audience,
        timeout=settings.auth0_request_timeout,
    )


def build_actions_config() -> ActionsConfig:
    """Action naming and callback configuration from the application settings."""
    return ActionsConfig(
        action_name_prefix=settings.action_name_prefix,
        metadata_key=settings.metadata_key,
        claims_namespace=settings.claims_namespace,
        callback_url=settings.callback_url,
        callback_api_key=settings.callback_api_key,
        callback_url_secret_name=settings.callback_url_secret_name,
        callback_api_key_secret_name=settings.callback_api_key_secret_name,
        default_timeout_ms=settings.default_timeout_ms,
        runtime=settings.action_runtime,
    )


@lru_cache()
def _management_client() -> Auth0ManagementClient:
    # One long-lived client so the cached token is shared between requests
    return Auth0ManagementClient(build_management_config())


def get_management_client() -> Auth0ManagementClient:
    """Dependency returning the shared Management API client."""
    if not settings.management_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auth0 Management API credentials are not configured",
        )
    return _management_client()


def get_actions_config() -> ActionsConfig:
    """Dependency returning the action deployment configuration."""
    if not settings.deployment_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Action deployment settings are not configured",
        )
    return build_actions_config()


def get_actions_manager(
    client: Auth0ManagementClient = Depends(get_management_client),
    config: ActionsConfig = Depends(get_actions_config),
) -> ActionsManager:
    return ActionsManager(client, config)


def get_triggers_manager(
    client: Auth0ManagementClient = Depends(get_management_client),
) -> TriggersManager:
    default_display_name = None
    if settings.deployment_configured:
        default_display_name = ActionsManager(client, build_actions_config()).metadata.display_name
    return TriggersManager(client, default_display_name=default_display_name)

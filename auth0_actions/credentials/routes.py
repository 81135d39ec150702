"""M2M settings REST API routes."""

from typing import Dict, Union

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth0_actions.credentials.exceptions import CredentialEncryptionError, InvalidDomainError
from auth0_actions.credentials.schemas import (
    CredentialsTestInput,
    CredentialTestResult,
    M2MConfigListResponse,
    M2MConfigResponse,
    SaveM2MConfigInput,
    SettingsStatus,
    SetupUrls,
    SocialConnectionListResponse,
)
from auth0_actions.credentials.service import (
    M2MConfigService,
    m2m_config_service,
    validate_domain,
)
from auth0_actions.database_deps import get_db

logger = structlog.get_logger()

router = APIRouter(prefix="/settings", tags=["Auth0 Settings"])


def get_m2m_config_service() -> M2MConfigService:
    return m2m_config_service


def _check_domain(domain: str) -> None:
    try:
        validate_domain(domain)
    except InvalidDomainError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


def _encryption_failure() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to decrypt stored client secret"
    )


@router.get("/status", response_model=SettingsStatus)
async def get_status(
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """Get the configuration status summary."""
    try:
        return await service.get_status(db)
    except CredentialEncryptionError:
        raise _encryption_failure()


@router.get("/config")
async def get_config(
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
) -> Dict[str, Union[str, bool, None]]:
    """Get the effective configuration with the client secret masked."""
    try:
        config = await service.get_config(db)
    except CredentialEncryptionError:
        raise _encryption_failure()
    return config.masked()


@router.get("/m2m-configs", response_model=M2MConfigListResponse)
async def list_m2m_configs(
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """List stored configurations with secrets masked."""
    configs = await service.get_m2m_configs(db)
    return M2MConfigListResponse(
        configs=[M2MConfigResponse(**c.to_dict()) for c in configs]
    )


@router.post("/m2m-config")
async def save_m2m_config(
    config: SaveM2MConfigInput,
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """Test and store a configuration, making it the active one."""
    _check_domain(config.domain)

    result = await service.save_m2m_config(db, config)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.error
        )

    return {"message": "M2M configuration saved successfully", "id": result.id}


@router.delete("/m2m-config/{config_id}")
async def delete_m2m_config(
    config_id: int,
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """Delete a stored configuration."""
    result = await service.delete_m2m_config(db, config_id)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.error
        )

    return {"message": "M2M configuration deleted"}


@router.post("/test", response_model=CredentialTestResult)
async def test_current_config(
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """Test the effective configuration and record the outcome."""
    try:
        result = await service.test_current_config(db)
    except CredentialEncryptionError:
        raise _encryption_failure()

    await service.update_validation_status(db, result.valid, result.error)
    return result


@router.post("/test-credentials", response_model=CredentialTestResult)
async def test_credentials(
    credentials: CredentialsTestInput,
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """Test credentials without storing them."""
    _check_domain(credentials.domain)

    return await service.test_credentials(
        credentials.domain,
        credentials.client_id,
        credentials.client_secret,
        credentials.audience,
    )


@router.get("/connections", response_model=SocialConnectionListResponse)
async def get_connections(
    db: AsyncSession = Depends(get_db),
    service: M2MConfigService = Depends(get_m2m_config_service),
):
    """List the tenant's social connections."""
    try:
        connections = await service.get_social_connections(db)
    except CredentialEncryptionError:
        raise _encryption_failure()
    return SocialConnectionListResponse(connections=connections)


@router.get("/urls", response_model=SetupUrls)
async def get_urls(request: Request):
    """Get the URLs to register on the Auth0 application."""
    protocol = request.headers.get("x-forwarded-proto") or request.url.scheme or "http"
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or "localhost:3100"
    base_url = f"{protocol}://{host}"

    return SetupUrls(
        callback_url=f"{base_url}/auth/callback",
        logout_url=base_url,
        web_origins=base_url,
    )

"""M2M configuration service.

Stores Auth0 machine-to-machine credentials in the database. The newest
active row overrides the environment settings; without one the environment
settings are in effect.
"""

import re
import time
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx
import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth0_actions.config import settings
from auth0_actions.credentials.encryption import SecretEncryption, get_secret_encryption
from auth0_actions.credentials.exceptions import InvalidDomainError
from auth0_actions.credentials.models import M2MConfig
from auth0_actions.credentials.schemas import (
    AccessToken,
    CredentialTestResult,
    DeleteResult,
    EffectiveConfig,
    SaveM2MConfigInput,
    SaveResult,
    SettingsStatus,
    SocialConnection,
)
from auth0_actions.utils.sanitize import sanitize_error_message

logger = structlog.get_logger()

SOCIAL_STRATEGIES = "google-oauth2,apple,facebook,linkedin,microsoft,github,twitter"

_AUTH0_DOMAIN_PATTERN = re.compile(r"^[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.auth0\.com$")
_HOSTNAME_PATTERN = re.compile(
    r"^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9](\.[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])*\.[a-zA-Z]{2,}$"
)


def is_valid_auth0_domain(domain: str) -> bool:
    """Check for a tenant domain (``*.auth0.com``) or a custom domain."""
    return bool(_AUTH0_DOMAIN_PATTERN.match(domain) or _HOSTNAME_PATTERN.match(domain))


def validate_domain(domain: str) -> str:
    if not is_valid_auth0_domain(domain):
        raise InvalidDomainError(
            "Invalid Auth0 domain format. Expected format: tenant.auth0.com or custom domain"
        )
    return domain


def default_audience(domain: str) -> str:
    return f"https://{domain}/api/v2/"


class M2MConfigService:
    """Service for stored M2M configurations."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        encryption: Optional[SecretEncryption] = None,
    ):
        self._http_client = http_client
        self._encryption = encryption

    @property
    def encryption(self) -> SecretEncryption:
        if self._encryption is None:
            self._encryption = get_secret_encryption()
        return self._encryption

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, **kwargs)

        async with httpx.AsyncClient(timeout=settings.auth0_request_timeout) as client:
            return await client.request(method, url, **kwargs)

    async def ensure_table(self, db: AsyncSession) -> None:
        """Create the configuration table if it does not exist."""
        await db.run_sync(
            lambda session: M2MConfig.__table__.create(session.connection(), checkfirst=True)
        )
        await db.commit()

    async def get_active_config(self, db: AsyncSession) -> Optional[M2MConfig]:
        """Get the newest active stored configuration."""
        result = await db.execute(
            select(M2MConfig)
            .where(M2MConfig.is_active.is_(True))
            .order_by(M2MConfig.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_m2m_configs(self, db: AsyncSession) -> List[M2MConfig]:
        """Get all stored configurations, newest first."""
        result = await db.execute(
            select(M2MConfig).order_by(M2MConfig.created_at.desc(), M2MConfig.id.desc())
        )
        return list(result.scalars().all())

    async def get_config(self, db: AsyncSession) -> EffectiveConfig:
        """Get the effective configuration."""
        stored = await self.get_active_config(db)

        if stored is not None:
            return EffectiveConfig(
                domain=stored.domain,
                client_id=stored.client_id,
                client_secret=self.encryption.decrypt(stored.client_secret),
                audience=stored.audience or default_audience(stored.domain),
                name=stored.name,
                source="database",
            )

        domain = settings.auth0_domain
        return EffectiveConfig(
            domain=domain,
            client_id=settings.auth0_client_id,
            client_secret=settings.auth0_client_secret,
            audience=settings.auth0_audience or (default_audience(domain) if domain else None),
            name=None,
            source="environment",
        )

    async def save_m2m_config(self, db: AsyncSession, config: SaveM2MConfigInput) -> SaveResult:
        """Test and store a configuration as the only active one."""
        test_result = await self.test_credentials(
            config.domain,
            config.client_id,
            config.client_secret,
            config.audience,
        )

        try:
            await db.execute(
                update(M2MConfig)
                .values(is_active=False, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session="fetch")
            )

            record = M2MConfig(
                name=config.name or None,
                domain=config.domain,
                client_id=config.client_id,
                client_secret=self.encryption.encrypt(config.client_secret),
                audience=config.audience or None,
                scope=config.scope or None,
                is_active=True,
                last_validated=datetime.now(timezone.utc) if test_result.valid else None,
                validation_error=None if test_result.valid else test_result.error,
            )
            db.add(record)
            await db.commit()
            await db.refresh(record)
        except Exception as e:
            await db.rollback()
            logger.error("Failed to save M2M config", domain=config.domain, error=str(e))
            return SaveResult(success=False, error=str(e))

        logger.info(
            "Saved M2M config",
            config_id=record.id,
            domain=record.domain,
            validated=test_result.valid,
        )
        return SaveResult(success=True, id=record.id)

    async def delete_m2m_config(self, db: AsyncSession, config_id: int) -> DeleteResult:
        """Delete a stored configuration."""
        try:
            result = await db.execute(delete(M2MConfig).where(M2MConfig.id == config_id))
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Failed to delete M2M config", config_id=config_id, error=str(e))
            return DeleteResult(success=False, error=str(e))

        if result.rowcount == 0:
            return DeleteResult(success=False, error="Configuration not found")

        logger.info("Deleted M2M config", config_id=config_id)
        return DeleteResult(success=True)

    async def test_credentials(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        audience: Optional[str] = None,
    ) -> CredentialTestResult:
        """Request a token with the given credentials.

        Never raises; failures are reported in the result with secrets
        removed from the message.
        """
        start_time = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - start_time) * 1000)

        try:
            response = await self._send(
                "POST",
                f"https://{domain}/oauth/token",
                json={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "audience": audience or default_audience(domain),
                    "grant_type": "client_credentials",
                },
                headers={"Content-Type": "application/json"},
            )
            response_time = elapsed_ms()

            if not response.is_success:
                detail = sanitize_error_message(response.text, secrets=[client_secret])
                return CredentialTestResult(
                    valid=False,
                    error=f"HTTP {response.status_code}: {detail}",
                    response_time_ms=response_time,
                )

            data = response.json()
            if not data.get("access_token"):
                return CredentialTestResult(
                    valid=False,
                    error="No access token in response",
                    response_time_ms=response_time,
                )

            return CredentialTestResult(
                valid=True,
                domain=domain,
                token_type=data.get("token_type"),
                expires_in=data.get("expires_in"),
                response_time_ms=response_time,
            )
        except Exception as e:
            return CredentialTestResult(
                valid=False,
                error=sanitize_error_message(str(e) or type(e).__name__, secrets=[client_secret]),
                response_time_ms=elapsed_ms(),
            )

    async def test_current_config(self, db: AsyncSession) -> CredentialTestResult:
        """Test the effective configuration."""
        config = await self.get_config(db)

        if not config.complete:
            return CredentialTestResult(valid=False, error="Auth0 M2M credentials not configured")

        return await self.test_credentials(
            config.domain,
            config.client_id,
            config.client_secret,
            config.audience,
        )

    async def get_access_token(self, db: AsyncSession) -> Optional[AccessToken]:
        """Get a Management API token for the effective configuration."""
        config = await self.get_config(db)

        if not config.complete:
            return None

        try:
            response = await self._send(
                "POST",
                f"https://{config.domain}/oauth/token",
                json={
                    "client_id": config.client_id,
                    "client_secret": config.client_secret,
                    "audience": config.audience,
                    "grant_type": "client_credentials",
                },
                headers={"Content-Type": "application/json"},
            )

            if not response.is_success:
                logger.error("Failed to get Auth0 access token", status_code=response.status_code)
                return None

            data = response.json()
            return AccessToken(token=data["access_token"], expires_in=data.get("expires_in"))
        except Exception as e:
            logger.error("Error getting Auth0 access token", error_type=type(e).__name__)
            return None

    async def get_social_connections(self, db: AsyncSession) -> List[SocialConnection]:
        """Get the tenant's social connections."""
        token = await self.get_access_token(db)
        if token is None:
            logger.error("Cannot get social connections: no access token")
            return []

        config = await self.get_config(db)

        try:
            response = await self._send(
                "GET",
                f"https://{config.domain}/api/v2/connections",
                params={"strategy": SOCIAL_STRATEGIES},
                headers={"Authorization": f"Bearer {token.token}"},
            )

            if not response.is_success:
                logger.error("Failed to get social connections", status_code=response.status_code)
                return []

            return [
                SocialConnection(
                    id=c["id"],
                    name=c["name"],
                    strategy=c["strategy"],
                    enabled_clients=c.get("enabled_clients") or [],
                )
                for c in response.json()
            ]
        except Exception as e:
            logger.error("Error getting social connections", error=str(e))
            return []

    async def get_status(self, db: AsyncSession) -> SettingsStatus:
        """Get the configuration status summary."""
        config = await self.get_config(db)
        stored = await self.get_active_config(db)

        return SettingsStatus(
            configured=bool(config.domain and config.client_id),
            domain=config.domain or None,
            name=config.name,
            m2m_configured=bool(config.client_id and config.client_secret),
            last_validated=stored.last_validated if stored else None,
            validation_error=stored.validation_error if stored else None,
            source=config.source,
        )

    async def update_validation_status(
        self,
        db: AsyncSession,
        valid: bool,
        error: Optional[str] = None,
    ) -> None:
        """Record a validation outcome on the active configuration."""
        await db.execute(
            update(M2MConfig)
            .where(M2MConfig.is_active.is_(True))
            .values(
                last_validated=datetime.now(timezone.utc) if valid else None,
                validation_error=None if valid else error,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session="fetch")
        )
        await db.commit()


# Global service instance
m2m_config_service = M2MConfigService()

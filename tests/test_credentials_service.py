"""Tests for stored M2M configurations."""

import json

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auth0_actions.config import settings
from auth0_actions.credentials.encryption import SecretEncryption, generate_encryption_key
from auth0_actions.credentials.exceptions import CredentialEncryptionError, InvalidDomainError
from auth0_actions.credentials.schemas import SaveM2MConfigInput
from auth0_actions.credentials.service import (
    SOCIAL_STRATEGIES,
    M2MConfigService,
    is_valid_auth0_domain,
    validate_domain,
)


@pytest.fixture
def encryption():
    return SecretEncryption(generate_encryption_key())


@pytest.fixture
def service(http_client, encryption):
    return M2MConfigService(http_client=http_client, encryption=encryption)


@pytest.fixture
def m2m_input():
    return SaveM2MConfigInput(
        name="Production",
        domain="test-tenant.auth0.com",
        client_id="test-client-id",
        client_secret="test-client-secret",
    )


@pytest.fixture
def env_settings(monkeypatch):
    monkeypatch.setattr(settings, "auth0_domain", "env-tenant.auth0.com")
    monkeypatch.setattr(settings, "auth0_client_id", "env-client-id")
    monkeypatch.setattr(settings, "auth0_client_secret", "env-client-secret")
    monkeypatch.setattr(settings, "auth0_audience", None)
    return settings


@pytest.mark.unit
class TestSecretEncryption:
    """Test encryption of client secrets."""

    def test_round_trip(self, encryption):
        encrypted = encryption.encrypt("test-client-secret")

        assert "test-client-secret" not in encrypted
        assert encryption.decrypt(encrypted) == "test-client-secret"

    def test_nonce_is_random(self, encryption):
        assert encryption.encrypt("same") != encryption.encrypt("same")

    def test_wrong_key(self, encryption):
        encrypted = encryption.encrypt("secret")

        with pytest.raises(CredentialEncryptionError):
            SecretEncryption(generate_encryption_key()).decrypt(encrypted)

    def test_invalid_key_length(self):
        with pytest.raises(CredentialEncryptionError):
            SecretEncryption("c2hvcnQ=")

    def test_generated_key_length(self):
        assert len(generate_encryption_key()) == 44


@pytest.mark.unit
class TestDomainValidation:
    """Test Auth0 domain format checks."""

    @pytest.mark.parametrize("domain", [
        "tenant.auth0.com",
        "tenant.us.auth0.com",
        "my-tenant.eu.auth0.com",
        "login.example.com",
    ])
    def test_valid(self, domain):
        assert is_valid_auth0_domain(domain)
        assert validate_domain(domain) == domain

    @pytest.mark.parametrize("domain", [
        "https://tenant.auth0.com",
        "tenant",
        "not a domain",
        "-bad.example.com",
        "tenant.auth0.com/",
    ])
    def test_invalid(self, domain):
        assert not is_valid_auth0_domain(domain)
        with pytest.raises(InvalidDomainError):
            validate_domain(domain)


@pytest.mark.integration
class TestEffectiveConfig:
    """Test resolving the configuration in effect."""

    @pytest.mark.asyncio
    async def test_environment_fallback(self, service, test_session, env_settings):
        config = await service.get_config(test_session)

        assert config.source == "environment"
        assert config.domain == "env-tenant.auth0.com"
        assert config.client_secret == "env-client-secret"
        assert config.audience == "https://env-tenant.auth0.com/api/v2/"
        assert config.name is None

    @pytest.mark.asyncio
    async def test_nothing_configured(self, service, test_session, unconfigured_settings):
        config = await service.get_config(test_session)

        assert config.source == "environment"
        assert config.complete is False
        assert config.audience is None

    @pytest.mark.asyncio
    async def test_database_overrides_environment(self, service, test_session, env_settings, m2m_input):
        await service.save_m2m_config(test_session, m2m_input)

        config = await service.get_config(test_session)

        assert config.source == "database"
        assert config.domain == "test-tenant.auth0.com"
        assert config.client_secret == "test-client-secret"
        assert config.audience == "https://test-tenant.auth0.com/api/v2/"
        assert config.name == "Production"

    @pytest.mark.asyncio
    async def test_masked(self, service, test_session, m2m_input):
        await service.save_m2m_config(test_session, m2m_input)

        masked = (await service.get_config(test_session)).masked()

        assert masked["client_secret_set"] is True
        assert "client_secret" not in masked


@pytest.mark.integration
class TestSaveAndDelete:
    """Test storing configurations."""

    @pytest.mark.asyncio
    async def test_save_valid_credentials(self, service, test_session, encryption, m2m_input):
        result = await service.save_m2m_config(test_session, m2m_input)

        assert result.success is True
        configs = await service.get_m2m_configs(test_session)
        assert len(configs) == 1
        stored = configs[0]
        assert stored.id == result.id
        assert stored.is_active is True
        assert stored.last_validated is not None
        assert stored.validation_error is None
        assert stored.client_secret != "test-client-secret"
        assert encryption.decrypt(stored.client_secret) == "test-client-secret"

    @pytest.mark.asyncio
    async def test_save_invalid_credentials_is_stored(self, service, test_session, m2m_input):
        m2m_input.client_secret = "wrong-secret"

        result = await service.save_m2m_config(test_session, m2m_input)

        assert result.success is True
        stored = await service.get_active_config(test_session)
        assert stored.last_validated is None
        assert stored.validation_error.startswith("HTTP 401:")
        assert "wrong-secret" not in stored.validation_error

    @pytest.mark.asyncio
    async def test_new_config_becomes_only_active(self, service, test_session, m2m_input):
        first = await service.save_m2m_config(test_session, m2m_input)
        second = await service.save_m2m_config(
            test_session,
            m2m_input.model_copy(update={"name": "Staging", "domain": "staging.auth0.com"}),
        )

        configs = await service.get_m2m_configs(test_session)

        assert [c.id for c in configs] == [second.id, first.id]
        assert [c.is_active for c in configs] == [True, False]
        assert (await service.get_config(test_session)).domain == "staging.auth0.com"

    @pytest.mark.asyncio
    async def test_delete(self, service, test_session, m2m_input):
        saved = await service.save_m2m_config(test_session, m2m_input)

        result = await service.delete_m2m_config(test_session, saved.id)

        assert result.success is True
        assert await service.get_m2m_configs(test_session) == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, service, test_session):
        result = await service.delete_m2m_config(test_session, 999)

        assert result.success is False
        assert result.error == "Configuration not found"

    @pytest.mark.asyncio
    async def test_ensure_table(self, service, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'fresh.db'}")
        session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with session_maker() as session:
            await service.ensure_table(session)
            await service.ensure_table(session)
            assert await service.get_m2m_configs(session) == []

        await engine.dispose()


@pytest.mark.unit
class TestCredentialsCheck:
    """Test validating credentials against the token endpoint."""

    @pytest.mark.asyncio
    async def test_valid(self, service, fake_auth0):
        result = await service.test_credentials("test-tenant.auth0.com", "test-client-id", "test-client-secret")

        assert result.valid is True
        assert result.domain == "test-tenant.auth0.com"
        assert result.token_type == "Bearer"
        assert result.expires_in == 86400
        assert result.response_time_ms >= 0

        body = json.loads(fake_auth0.token_requests[0].content)
        assert body["audience"] == "https://test-tenant.auth0.com/api/v2/"
        assert body["grant_type"] == "client_credentials"

    @pytest.mark.asyncio
    async def test_explicit_audience(self, service, fake_auth0):
        await service.test_credentials(
            "auth.example.com", "test-client-id", "test-client-secret",
            audience="https://test-tenant.auth0.com/api/v2/",
        )

        body = json.loads(fake_auth0.token_requests[0].content)
        assert body["audience"] == "https://test-tenant.auth0.com/api/v2/"

    @pytest.mark.asyncio
    async def test_rejected_response_is_sanitized(self, service, fake_auth0):
        fake_auth0.token_status = 400
        fake_auth0.token_body = {"error": "invalid_request", "client_secret": "echoed-secret"}

        result = await service.test_credentials("test-tenant.auth0.com", "id", "echoed-secret")

        assert result.valid is False
        assert result.error.startswith("HTTP 400:")
        assert "echoed-secret" not in result.error
        assert "[REDACTED]" in result.error

    @pytest.mark.asyncio
    async def test_missing_access_token(self, service, fake_auth0):
        fake_auth0.token_body = {"token_type": "Bearer"}

        result = await service.test_credentials("test-tenant.auth0.com", "id", "secret")

        assert result.valid is False
        assert result.error == "No access token in response"

    @pytest.mark.asyncio
    async def test_network_error(self, encryption):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Name or service not known", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            service = M2MConfigService(http_client=http_client, encryption=encryption)
            result = await service.test_credentials("missing.auth0.com", "id", "secret")

        assert result.valid is False
        assert "Name or service not known" in result.error
        assert result.response_time_ms is not None

    @pytest.mark.asyncio
    async def test_current_config_not_configured(self, service, test_session, unconfigured_settings):
        result = await service.test_current_config(test_session)

        assert result.valid is False
        assert result.error == "Auth0 M2M credentials not configured"

    @pytest.mark.asyncio
    async def test_current_config(self, service, test_session, m2m_input):
        await service.save_m2m_config(test_session, m2m_input)

        result = await service.test_current_config(test_session)

        assert result.valid is True


@pytest.mark.integration
class TestTenantQueries:
    """Test token and connection lookups."""

    @pytest.mark.asyncio
    async def test_access_token(self, service, test_session, m2m_input):
        await service.save_m2m_config(test_session, m2m_input)

        token = await service.get_access_token(test_session)

        assert token.token == "test-access-token"
        assert token.expires_in == 86400

    @pytest.mark.asyncio
    async def test_access_token_not_configured(self, service, test_session, unconfigured_settings):
        assert await service.get_access_token(test_session) is None

    @pytest.mark.asyncio
    async def test_access_token_rejected(self, service, test_session, m2m_input, fake_auth0):
        await service.save_m2m_config(test_session, m2m_input)
        fake_auth0.token_status = 401

        assert await service.get_access_token(test_session) is None

    @pytest.mark.asyncio
    async def test_social_connections(self, service, test_session, m2m_input, fake_auth0):
        fake_auth0.connections = [
            {
                "id": "con_1",
                "name": "google-oauth2",
                "strategy": "google-oauth2",
                "enabled_clients": ["client_a"],
                "options": {},
            },
        ]
        await service.save_m2m_config(test_session, m2m_input)

        connections = await service.get_social_connections(test_session)

        assert [c.model_dump() for c in connections] == [
            {"id": "con_1", "name": "google-oauth2", "strategy": "google-oauth2", "enabled_clients": ["client_a"]},
        ]
        request = fake_auth0.calls("GET", "/api/v2/connections")[0]
        assert request.url.params["strategy"] == SOCIAL_STRATEGIES
        assert request.headers["authorization"] == "Bearer test-access-token"

    @pytest.mark.asyncio
    async def test_social_connections_without_token(self, service, test_session, unconfigured_settings, fake_auth0):
        assert await service.get_social_connections(test_session) == []
        assert not fake_auth0.requests


@pytest.mark.integration
class TestStatus:
    """Test the status summary."""

    @pytest.mark.asyncio
    async def test_environment_status(self, service, test_session, env_settings):
        status = await service.get_status(test_session)

        assert status.configured is True
        assert status.m2m_configured is True
        assert status.domain == "env-tenant.auth0.com"
        assert status.source == "environment"
        assert status.last_validated is None

    @pytest.mark.asyncio
    async def test_unconfigured_status(self, service, test_session, unconfigured_settings):
        status = await service.get_status(test_session)

        assert status.configured is False
        assert status.m2m_configured is False
        assert status.domain is None

    @pytest.mark.asyncio
    async def test_database_status(self, service, test_session, m2m_input):
        await service.save_m2m_config(test_session, m2m_input)

        status = await service.get_status(test_session)

        assert status.source == "database"
        assert status.name == "Production"
        assert status.last_validated is not None
        assert status.validation_error is None

    @pytest.mark.asyncio
    async def test_update_validation_status(self, service, test_session, m2m_input):
        await service.save_m2m_config(test_session, m2m_input)

        await service.update_validation_status(test_session, False, "Token request failed")

        status = await service.get_status(test_session)
        assert status.last_validated is None
        assert status.validation_error == "Token request failed"

        await service.update_validation_status(test_session, True)

        status = await service.get_status(test_session)
        assert status.last_validated is not None
        assert status.validation_error is None

"""Auth0 Management API client.

Typed request layer over the Management API. Each client instance owns one
cached bearer token obtained with the client-credentials grant; construct one
client per set of credentials.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from auth0_actions.management.exceptions import ApiRequestError, AuthenticationError
from auth0_actions.management.schemas import (
    Action,
    ActionVersion,
    CachedToken,
    ConnectionTestResult,
    CreateActionRequest,
    ManagementConfig,
    TokenResponse,
    TriggerBinding,
    TriggerBindingUpdate,
    UpdateActionRequest,
)
from auth0_actions.utils.sanitize import sanitize_error_message

logger = structlog.get_logger()


class Auth0ManagementClient:
    """Client for the Auth0 Management API v2."""

    def __init__(
        self,
        config: ManagementConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            config: Tenant domain and M2M credentials
            http_client: Optional shared ``httpx.AsyncClient``. When omitted a
                short-lived client is opened per request.
        """
        self.config = config
        self._http_client = http_client
        self._token: Optional[CachedToken] = None

    @property
    def domain(self) -> str:
        return self.config.domain

    @property
    def audience(self) -> str:
        return self.config.effective_audience

    @property
    def token_url(self) -> str:
        return f"https://{self.domain}/oauth/token"

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}/api/v2"

    def clear_token_cache(self) -> None:
        """Discard the cached bearer token."""
        self._token = None

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, **kwargs)

        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def get_access_token(self) -> str:
        """Return a valid bearer token, requesting a new one when needed.

        Raises:
            AuthenticationError: If the token endpoint rejects the request
        """
        token = self._token
        if token is not None and token.is_valid():
            return token.access_token

        client_secret = self.config.client_secret.get_secret_value()
        payload = {
            "client_id": self.config.client_id,
            "client_secret": client_secret,
            "audience": self.audience,
            "grant_type": "client_credentials",
        }

        response = await self._send(
            "POST",
            self.token_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )

        if not response.is_success:
            detail = sanitize_error_message(response.text, secrets=[client_secret])
            logger.warning(
                "Token request rejected",
                domain=self.domain,
                status_code=response.status_code,
            )
            raise AuthenticationError(
                f"Failed to get access token: {response.status_code} {detail}",
                status_code=response.status_code,
            )

        try:
            token_response = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise AuthenticationError(f"Failed to get access token: invalid token response ({type(e).__name__})")

        # Last write wins when concurrent callers both missed the cache
        self._token = CachedToken.from_response(token_response)
        logger.debug("Obtained Management API token", domain=self.domain, expires_in=token_response.expires_in)
        return self._token.access_token

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        token = await self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        response = await self._send(
            method,
            f"{self.base_url}{path}",
            json=json,
            params=params,
            headers=headers,
        )

        if not response.is_success:
            if response.status_code == 401:
                self.clear_token_cache()
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.warning(
                "Management API request failed",
                method=method,
                path=path,
                status_code=response.status_code,
            )
            raise ApiRequestError(method, path, response.status_code, body)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Actions

    async def list_actions(self, trigger_id: Optional[str] = None) -> List[Action]:
        """List actions, optionally restricted to one trigger."""
        params = {"triggerId": trigger_id} if trigger_id else None
        data = await self._request("GET", "/actions/actions", params=params)
        return [Action.model_validate(item) for item in (data or {}).get("actions", [])]

    async def get_action(self, action_id: str) -> Action:
        data = await self._request("GET", f"/actions/actions/{quote(action_id, safe='')}")
        return Action.model_validate(data)

    async def create_action(self, request: CreateActionRequest) -> Action:
        data = await self._request(
            "POST", "/actions/actions", json=request.model_dump(exclude_none=True)
        )
        return Action.model_validate(data)

    async def update_action(self, action_id: str, request: UpdateActionRequest) -> Action:
        data = await self._request(
            "PATCH",
            f"/actions/actions/{quote(action_id, safe='')}",
            json=request.model_dump(exclude_none=True),
        )
        return Action.model_validate(data)

    async def delete_action(self, action_id: str, force: bool = False) -> None:
        """Delete an action. A missing action raises ``ApiRequestError`` (404)."""
        params = {"force": "true"} if force else None
        await self._request("DELETE", f"/actions/actions/{quote(action_id, safe='')}", params=params)

    async def deploy_action(self, action_id: str) -> ActionVersion:
        data = await self._request("POST", f"/actions/actions/{quote(action_id, safe='')}/deploy")
        return ActionVersion.model_validate(data)

    # Trigger bindings

    async def get_trigger_bindings(self, trigger_id: str) -> List[TriggerBinding]:
        data = await self._request("GET", f"/actions/triggers/{quote(trigger_id, safe='')}/bindings")
        return [TriggerBinding.model_validate(item) for item in (data or {}).get("bindings", [])]

    async def update_trigger_bindings(
        self,
        trigger_id: str,
        bindings: List[TriggerBindingUpdate],
    ) -> List[TriggerBinding]:
        """Replace the whole ordered binding list of a trigger."""
        data = await self._request(
            "PATCH",
            f"/actions/triggers/{quote(trigger_id, safe='')}/bindings",
            json={"bindings": [b.model_dump() for b in bindings]},
        )
        return [TriggerBinding.model_validate(item) for item in (data or {}).get("bindings", [])]

    async def test_connection(self) -> ConnectionTestResult:
        """Fetch a token and list actions. Never raises."""
        try:
            await self.get_access_token()
            await self.list_actions()
            return ConnectionTestResult(success=True)
        except Exception as e:
            logger.info("Management API connection test failed", domain=self.domain, error=str(e))
            return ConnectionTestResult(success=False, error=str(e) or type(e).__name__)

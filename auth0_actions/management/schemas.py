"""Management API schemas."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

_DOMAIN_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.-]*[A-Za-z0-9](:\d+)?$")


class ManagementConfig(BaseModel):
    """Credentials and endpoint settings for one Auth0 tenant."""
    domain: str
    client_id: str
    client_secret: SecretStr
    audience: Optional[str] = None
    timeout: float = 30.0

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        v = v.strip()
        for scheme in ("https://", "http://"):
            if v.startswith(scheme):
                v = v[len(scheme):]
        v = v.rstrip("/")
        if not _DOMAIN_PATTERN.match(v):
            raise ValueError(f"Invalid Auth0 domain: {v}")
        return v

    @property
    def effective_audience(self) -> str:
        return self.audience or f"https://{self.domain}/api/v2/"


class TokenResponse(BaseModel):
    """Token endpoint response."""
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 86400
    scope: Optional[str] = None


class CachedToken(BaseModel):
    """Bearer credential held by the client between requests."""
    access_token: str
    token_type: str = "Bearer"
    expires_at: datetime

    @classmethod
    def from_response(cls, response: TokenResponse) -> "CachedToken":
        return cls(
            access_token=response.access_token,
            token_type=response.token_type,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=response.expires_in),
        )

    def is_valid(self, margin_seconds: int = 0) -> bool:
        """Check the token expires strictly after now (plus margin)."""
        return datetime.now(timezone.utc) + timedelta(seconds=margin_seconds) < self.expires_at


class SupportedTrigger(BaseModel):
    """Trigger compatibility declaration of an action."""
    model_config = ConfigDict(extra="allow")

    id: str
    version: str


class ActionSecret(BaseModel):
    """Secret name/value pair of an action."""
    model_config = ConfigDict(extra="allow")

    name: str
    value: Optional[str] = None


class Action(BaseModel):
    """Action as returned by the Management API."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    code: Optional[str] = None
    runtime: Optional[str] = None
    status: Optional[str] = None
    supported_triggers: List[SupportedTrigger] = Field(default_factory=list)
    secrets: List[ActionSecret] = Field(default_factory=list)
    all_changes_deployed: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreateActionRequest(BaseModel):
    """Payload for creating an action."""
    name: str
    supported_triggers: List[SupportedTrigger]
    code: str
    runtime: Optional[str] = None
    secrets: List[ActionSecret] = Field(default_factory=list)
    dependencies: List[Dict[str, str]] = Field(default_factory=list)


class UpdateActionRequest(BaseModel):
    """Payload for updating an action in place."""
    name: Optional[str] = None
    supported_triggers: Optional[List[SupportedTrigger]] = None
    code: Optional[str] = None
    runtime: Optional[str] = None
    secrets: Optional[List[ActionSecret]] = None
    dependencies: Optional[List[Dict[str, str]]] = None


class ActionVersion(BaseModel):
    """Version created by deploying an action."""
    model_config = ConfigDict(extra="allow")

    id: str
    number: Optional[int] = None
    deployed: Optional[bool] = None
    status: Optional[str] = None


class BindingAction(BaseModel):
    """Action embedded in a trigger binding."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None


class TriggerBinding(BaseModel):
    """One entry of a trigger's ordered binding list."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    trigger_id: Optional[str] = None
    display_name: Optional[str] = None
    action: BindingAction
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def action_id(self) -> str:
        return self.action.id


class BindingRef(BaseModel):
    """Reference to the action a binding points at."""
    type: str = "action_id"
    value: str


class TriggerBindingUpdate(BaseModel):
    """Entry of the full ordered list written back to a trigger."""
    ref: BindingRef
    display_name: str

    @classmethod
    def for_action(cls, action_id: str, display_name: str) -> "TriggerBindingUpdate":
        return cls(ref=BindingRef(value=action_id), display_name=display_name)

    @classmethod
    def from_binding(cls, binding: TriggerBinding) -> "TriggerBindingUpdate":
        """Rebuild the write entry for an existing binding, keeping its display name."""
        display_name = binding.display_name or binding.action.name or binding.action.id
        return cls.for_action(binding.action.id, display_name)


class DeployResult(BaseModel):
    """Outcome of a deploy or undeploy operation."""
    success: bool
    action_id: Optional[str] = None
    deployed: Optional[bool] = None
    bound_to_trigger: Optional[bool] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "DeployResult":
        return cls(success=False, error=error)


class ConnectionTestResult(BaseModel):
    """Outcome of a Management API connectivity test."""
    success: bool
    error: Optional[str] = None


class BundleSecret(BaseModel):
    """Secret an operator must configure when deploying a bundle by hand."""
    name: str
    description: str
    required: bool
    default: Optional[str] = None


class ActionBundle(BaseModel):
    """Action code and instructions for manual deployment."""
    filename: str
    code: str
    secrets: List[BundleSecret]
    instructions: str


class ActionsConfig(BaseModel):
    """Naming and secret configuration for the deployed action.

    All naming is caller supplied; nothing is tied to a specific product.
    """
    action_name_prefix: str
    metadata_key: str
    claims_namespace: str
    callback_url: str
    callback_api_key: str
    callback_url_secret_name: Optional[str] = None
    callback_api_key_secret_name: Optional[str] = None
    default_timeout_ms: Optional[int] = None
    runtime: str = "node18"

    def masked(self) -> Dict[str, Any]:
        """Configuration with secret values replaced by presence flags."""
        data = self.model_dump(exclude={"callback_api_key"})
        data["callback_api_key_set"] = bool(self.callback_api_key)
        return data


class DeployRequest(BaseModel):
    """Body of the deploy endpoint."""
    skip_ban_check: bool = False
    skip_entitlements_sync: bool = False
    bind_to_trigger: bool = True


class BindRequest(BaseModel):
    """Body of the bind endpoint."""
    action_id: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    position: Optional[int] = None


class ReorderRequest(BaseModel):
    """Body of the reorder endpoint."""
    action_ids: List[str]


class ActionListResponse(BaseModel):
    actions: List[Action]


class BindingListResponse(BaseModel):
    bindings: List[TriggerBinding]

"""Auth0 Management API: client, action deployment and trigger bindings."""

from auth0_actions.management.actions import ActionsManager
from auth0_actions.management.client import Auth0ManagementClient
from auth0_actions.management.exceptions import (
    ApiRequestError,
    AuthenticationError,
    ManagementError,
    UnknownResourceError,
)
from auth0_actions.management.schemas import (
    Action,
    ActionBundle,
    ActionsConfig,
    DeployResult,
    ManagementConfig,
    TriggerBinding,
)
from auth0_actions.management.templates import (
    get_action_template_version,
    get_post_login_action_code,
    get_post_login_action_metadata,
)
from auth0_actions.management.triggers import TriggersManager

__all__ = [
    "Action",
    "ActionBundle",
    "ActionsConfig",
    "ActionsManager",
    "ApiRequestError",
    "Auth0ManagementClient",
    "AuthenticationError",
    "DeployResult",
    "ManagementConfig",
    "ManagementError",
    "TriggerBinding",
    "TriggersManager",
    "UnknownResourceError",
    "get_action_template_version",
    "get_post_login_action_code",
    "get_post_login_action_metadata",
]

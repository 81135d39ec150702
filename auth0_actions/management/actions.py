"""Actions manager.

Deploys the post-login action idempotently: the action name rendered from the
naming configuration is the only key used to find an existing action, so a
repeated deploy updates the same action in place instead of creating a
duplicate. Every public operation that talks to Auth0 reports failures in its
``DeployResult`` instead of raising.
"""

from typing import List, Optional

import structlog

from auth0_actions.management.client import Auth0ManagementClient
from auth0_actions.management.exceptions import UnknownResourceError
from auth0_actions.management.schemas import (
    Action,
    ActionBundle,
    ActionSecret,
    ActionsConfig,
    BundleSecret,
    CreateActionRequest,
    DeployResult,
    SupportedTrigger,
    UpdateActionRequest,
)
from auth0_actions.management.templates import (
    DEFAULT_TIMEOUT_MS,
    POST_LOGIN_TRIGGER_ID,
    POST_LOGIN_TRIGGER_VERSION,
    ActionMetadata,
    ActionTemplateConfig,
    get_post_login_action_code,
    get_post_login_action_metadata,
)
from auth0_actions.management.triggers import TriggersManager

logger = structlog.get_logger()

DEFAULT_CALLBACK_URL_SECRET_NAME = "API_URL"
DEFAULT_CALLBACK_API_KEY_SECRET_NAME = "API_KEY"

_MANUAL_DEPLOYMENT_INSTRUCTIONS = """\
## Manual Deployment Instructions

1. Go to Auth0 Dashboard → Actions → Library → Build Custom

2. Click "Build from scratch"

3. Set the following:
   - Name: {display_name}
   - Trigger: {trigger}
   - Runtime: {runtime}

4. Replace the code with the contents of {filename}

5. Add the following secrets in the "Secrets" tab:
{secrets}

6. Click "Deploy"

7. Go to Actions → Flows → Login → Add the action to the flow"""


def _error_message(error: Exception) -> str:
    return str(error) or type(error).__name__


class ActionsManager:
    """Deploy, update and remove the post-login action."""

    def __init__(
        self,
        client: Auth0ManagementClient,
        config: ActionsConfig,
        triggers: Optional[TriggersManager] = None,
    ):
        self.client = client
        self.config = config
        self.template_config = ActionTemplateConfig(
            action_name_prefix=config.action_name_prefix,
            metadata_key=config.metadata_key,
            claims_namespace=config.claims_namespace,
            callback_url_secret_name=config.callback_url_secret_name or DEFAULT_CALLBACK_URL_SECRET_NAME,
            callback_api_key_secret_name=config.callback_api_key_secret_name or DEFAULT_CALLBACK_API_KEY_SECRET_NAME,
        )
        self.triggers = triggers or TriggersManager(
            client,
            trigger_id=POST_LOGIN_TRIGGER_ID,
            default_display_name=self.metadata.display_name,
        )

    @property
    def metadata(self) -> ActionMetadata:
        return get_post_login_action_metadata(self.template_config, runtime=self.config.runtime)

    @property
    def action_name(self) -> str:
        return self.metadata.name

    def build_secrets(
        self,
        skip_ban_check: bool = False,
        skip_entitlements_sync: bool = False,
    ) -> List[ActionSecret]:
        """Secrets sent with every create or update."""
        secrets = [
            ActionSecret(
                name=self.template_config.callback_url_secret_name,
                value=self.config.callback_url,
            ),
            ActionSecret(
                name=self.template_config.callback_api_key_secret_name,
                value=self.config.callback_api_key,
            ),
            ActionSecret(
                name="TIMEOUT_MS",
                value=str(self.config.default_timeout_ms or DEFAULT_TIMEOUT_MS),
            ),
        ]

        if skip_ban_check:
            secrets.append(ActionSecret(name="SKIP_BAN_CHECK", value="true"))

        if skip_entitlements_sync:
            secrets.append(ActionSecret(name="SKIP_ENTITLEMENTS_SYNC", value="true"))

        return secrets

    async def _find_existing(self, name: str) -> Optional[Action]:
        actions = await self.client.list_actions()
        return next((a for a in actions if a.name == name), None)

    async def deploy_post_login_action(
        self,
        skip_ban_check: bool = False,
        skip_entitlements_sync: bool = False,
    ) -> DeployResult:
        """Create or update the post-login action, then deploy it."""
        try:
            code = get_post_login_action_code(self.template_config)
            metadata = self.metadata
            secrets = self.build_secrets(skip_ban_check, skip_entitlements_sync)

            existing = await self._find_existing(metadata.name)

            if existing:
                action = await self.client.update_action(
                    existing.id,
                    UpdateActionRequest(code=code, secrets=secrets, runtime=metadata.runtime),
                )
                logger.info("Updated existing action", action_id=action.id, name=metadata.name)
            else:
                action = await self.client.create_action(
                    CreateActionRequest(
                        name=metadata.name,
                        supported_triggers=[
                            SupportedTrigger(id=POST_LOGIN_TRIGGER_ID, version=POST_LOGIN_TRIGGER_VERSION)
                        ],
                        code=code,
                        runtime=metadata.runtime,
                        secrets=secrets,
                    )
                )
                logger.info("Created action", action_id=action.id, name=metadata.name)

            await self.client.deploy_action(action.id)
            logger.info("Action deployed", action_id=action.id)

            return DeployResult(success=True, action_id=action.id, deployed=True)

        except Exception as e:
            logger.error("Failed to deploy action", name=self.action_name, error=_error_message(e))
            return DeployResult.failure(_error_message(e))

    async def undeploy_post_login_action(self) -> DeployResult:
        """Unbind and delete the post-login action.

        A missing action is reported as success, so retrying is safe.
        """
        try:
            name = self.action_name
            existing = await self._find_existing(name)

            if not existing:
                return DeployResult(success=True, deployed=False)

            await self.triggers.unbind(existing.id)
            await self.client.delete_action(existing.id)
            logger.info("Action undeployed", action_id=existing.id, name=name)

            return DeployResult(success=True, action_id=existing.id, deployed=False)

        except Exception as e:
            logger.error("Failed to undeploy action", name=self.action_name, error=_error_message(e))
            return DeployResult.failure(_error_message(e))

    async def get_deployed_actions(self) -> List[Action]:
        """List actions whose name carries the configured prefix."""
        actions = await self.client.list_actions()
        return [a for a in actions if a.name.startswith(self.config.action_name_prefix)]

    def get_action_bundle(self, action_name: str = POST_LOGIN_TRIGGER_ID) -> ActionBundle:
        """Render the action for manual deployment. No network call."""
        if action_name != POST_LOGIN_TRIGGER_ID:
            raise UnknownResourceError(f"Unknown action: {action_name}")

        metadata = self.metadata
        filename = f"{metadata.name}.js"
        secret_lines = "\n".join(
            f"   - {s.name}: {s.description}{' (required)' if s.required else ''}"
            for s in metadata.secrets
        )

        return ActionBundle(
            filename=filename,
            code=get_post_login_action_code(self.template_config),
            secrets=[BundleSecret(**s.model_dump()) for s in metadata.secrets],
            instructions=_MANUAL_DEPLOYMENT_INSTRUCTIONS.format(
                display_name=metadata.display_name,
                trigger=metadata.trigger,
                runtime=metadata.runtime,
                filename=filename,
                secrets=secret_lines,
            ),
        )

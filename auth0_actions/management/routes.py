"""Auth0 actions REST API routes."""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from auth0_actions.management.actions import ActionsManager
from auth0_actions.management.client import Auth0ManagementClient
from auth0_actions.management.dependencies import (
    get_actions_config,
    get_actions_manager,
    get_management_client,
    get_triggers_manager,
)
from auth0_actions.management.exceptions import ManagementError, UnknownResourceError
from auth0_actions.management.schemas import (
    ActionBundle,
    ActionListResponse,
    ActionsConfig,
    BindingListResponse,
    BindRequest,
    ConnectionTestResult,
    DeployRequest,
    DeployResult,
    ReorderRequest,
)
from auth0_actions.management.templates import DEFAULT_TIMEOUT_MS
from auth0_actions.management.triggers import TriggersManager

logger = structlog.get_logger()

router = APIRouter(tags=["Auth0 Actions"])


def _upstream_error(e: ManagementError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=str(e),
    )


# Actions

@router.get("/actions", response_model=ActionListResponse)
async def list_actions(
    actions_manager: ActionsManager = Depends(get_actions_manager),
):
    """List deployed actions carrying the configured name prefix."""
    try:
        actions = await actions_manager.get_deployed_actions()
    except ManagementError as e:
        raise _upstream_error(e)
    return ActionListResponse(actions=actions)


@router.post("/actions/deploy", response_model=DeployResult)
async def deploy_action(
    request: Optional[DeployRequest] = None,
    actions_manager: ActionsManager = Depends(get_actions_manager),
):
    """Deploy the post-login action and optionally bind it first in the flow."""
    request = request or DeployRequest()
    result = await actions_manager.deploy_post_login_action(
        skip_ban_check=request.skip_ban_check,
        skip_entitlements_sync=request.skip_entitlements_sync,
    )

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error,
        )

    if request.bind_to_trigger and result.action_id:
        try:
            await actions_manager.triggers.bind(
                result.action_id,
                actions_manager.metadata.display_name,
                0,
            )
            result.bound_to_trigger = True
        except Exception as e:
            # The action is deployed; report the binding failure without failing
            logger.error("Failed to bind action to trigger", action_id=result.action_id, error=str(e))
            result.bound_to_trigger = False

    return result


@router.delete("/actions/{action_id}", response_model=DeployResult)
async def undeploy_action(
    action_id: str,
    actions_manager: ActionsManager = Depends(get_actions_manager),
):
    """Undeploy the post-login action.

    The action is resolved by its configured name; ``action_id`` is accepted
    for REST symmetry only.
    """
    result = await actions_manager.undeploy_post_login_action()

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error,
        )

    return result


# Trigger bindings

@router.get("/triggers/post-login", response_model=BindingListResponse)
async def list_post_login_bindings(
    triggers_manager: TriggersManager = Depends(get_triggers_manager),
):
    """List post-login trigger bindings in execution order."""
    try:
        bindings = await triggers_manager.list_bindings()
    except ManagementError as e:
        raise _upstream_error(e)
    return BindingListResponse(bindings=bindings)


@router.post("/triggers/post-login/bind", response_model=BindingListResponse)
async def bind_action(
    request: BindRequest,
    triggers_manager: TriggersManager = Depends(get_triggers_manager),
):
    """Bind an action to the post-login trigger."""
    try:
        bindings = await triggers_manager.bind(
            request.action_id,
            request.display_name,
            request.position,
        )
    except ManagementError as e:
        raise _upstream_error(e)
    return BindingListResponse(bindings=bindings)


@router.put("/triggers/post-login/reorder", response_model=BindingListResponse)
async def reorder_bindings(
    request: ReorderRequest,
    triggers_manager: TriggersManager = Depends(get_triggers_manager),
):
    """Set the post-login execution order."""
    try:
        bindings = await triggers_manager.reorder(request.action_ids)
    except ManagementError as e:
        raise _upstream_error(e)
    return BindingListResponse(bindings=bindings)


@router.get("/triggers/post-login/{action_id}/bound")
async def is_action_bound(
    action_id: str,
    triggers_manager: TriggersManager = Depends(get_triggers_manager),
) -> Dict[str, bool]:
    """Check whether an action is bound to the post-login trigger."""
    try:
        bound = await triggers_manager.is_bound(action_id)
    except ManagementError as e:
        raise _upstream_error(e)
    return {"bound": bound}


@router.delete("/triggers/post-login/{action_id}", response_model=BindingListResponse)
async def unbind_action(
    action_id: str,
    triggers_manager: TriggersManager = Depends(get_triggers_manager),
):
    """Unbind an action from the post-login trigger."""
    try:
        bindings = await triggers_manager.unbind(action_id)
    except ManagementError as e:
        raise _upstream_error(e)
    return BindingListResponse(bindings=bindings)


# Bundles

@router.get("/bundle/post-login", response_model=ActionBundle)
async def get_post_login_bundle(
    actions_manager: ActionsManager = Depends(get_actions_manager),
):
    """Get the post-login action bundle for manual deployment."""
    return actions_manager.get_action_bundle("post-login")


@router.get("/bundle/post-login/download")
async def download_post_login_bundle(
    actions_manager: ActionsManager = Depends(get_actions_manager),
):
    """Download the post-login action as a JavaScript file."""
    bundle = actions_manager.get_action_bundle("post-login")
    return Response(
        content=bundle.code,
        media_type="application/javascript",
        headers={"Content-Disposition": f'attachment; filename="{bundle.filename}"'},
    )


@router.get("/bundle/{action_name}", response_model=ActionBundle)
async def get_bundle(
    action_name: str,
    actions_manager: ActionsManager = Depends(get_actions_manager),
):
    """Get a bundle by action name."""
    try:
        return actions_manager.get_action_bundle(action_name)
    except UnknownResourceError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )


# Configuration

@router.get("/config")
async def get_config(
    client: Auth0ManagementClient = Depends(get_management_client),
    config: ActionsConfig = Depends(get_actions_config),
) -> Dict[str, Any]:
    """Get the active configuration with secrets masked."""
    masked = config.masked()
    masked["default_timeout_ms"] = config.default_timeout_ms or DEFAULT_TIMEOUT_MS
    return {
        "domain": client.domain,
        "client_id": client.config.client_id,
        "client_secret_set": bool(client.config.client_secret.get_secret_value()),
        **masked,
    }


@router.post("/config/test", response_model=ConnectionTestResult)
async def test_connection(
    client: Auth0ManagementClient = Depends(get_management_client),
):
    """Test connectivity to the Management API."""
    return await client.test_connection()

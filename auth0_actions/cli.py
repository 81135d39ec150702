"""Command line interface for the Auth0 actions manager."""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from auth0_actions.config import settings
from auth0_actions.management.exceptions import ManagementError

app = typer.Typer(
    name="auth0-actions",
    help="Auth0 Actions Manager - deploy and bind Auth0 post-login actions",
    add_completion=False,
)

console = Console()


def _fail(message: str) -> None:
    console.print(f"[red]❌ {escape(message)}[/red]")
    raise typer.Exit(1)


def _client():
    from auth0_actions.management.client import Auth0ManagementClient
    from auth0_actions.management.dependencies import build_management_config

    if not settings.management_configured:
        _fail("Auth0 Management API credentials are not configured "
              "(AUTH0_DOMAIN, AUTH0_CLIENT_ID, AUTH0_CLIENT_SECRET)")
    return Auth0ManagementClient(build_management_config())


def _actions_manager():
    from auth0_actions.management.actions import ActionsManager
    from auth0_actions.management.dependencies import build_actions_config

    if not settings.deployment_configured:
        _fail("Action deployment settings are not configured "
              "(ACTION_NAME_PREFIX, METADATA_KEY, CLAIMS_NAMESPACE, CALLBACK_URL, CALLBACK_API_KEY)")
    return ActionsManager(_client(), build_actions_config())


def _triggers_manager():
    from auth0_actions.management.triggers import TriggersManager

    if settings.deployment_configured:
        return _actions_manager().triggers
    return TriggersManager(_client())


def _run(coro):
    try:
        return asyncio.run(coro)
    except ManagementError as e:
        _fail(str(e))


def _print_bindings(bindings) -> None:
    table = Table(title="Post-Login Trigger Bindings")

    table.add_column("#", style="dim")
    table.add_column("Action ID", style="cyan")
    table.add_column("Display Name", style="green")

    for index, binding in enumerate(bindings):
        table.add_row(str(index), binding.action_id, binding.display_name or "")

    console.print(table)


@app.command("version")
def version():
    """Show version information."""
    from auth0_actions.management.templates import get_action_template_version

    version_info = f"""
Auth0 Actions Manager v{settings.app_version}
Action template v{get_action_template_version()}

Environment: {settings.environment}
Python: {sys.version}
"""
    console.print(
        Panel(
            version_info.strip(),
            title="Version Information",
            border_style="green",
        )
    )


@app.command("server")
def start_server(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Server port"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug mode"),
):
    """Start the API server."""
    from auth0_actions.server import main as server_main

    if host:
        settings.host = host
    if port:
        settings.port = port
    if reload:
        settings.reload = reload
    if debug:
        settings.debug = debug

    server_main()


@app.command("test-connection")
def test_connection():
    """Test connectivity to the Management API."""
    result = _run(_client().test_connection())

    if not result.success:
        _fail(f"Connection failed: {result.error}")
    console.print(f"[green]✅ Connected to {settings.auth0_domain}[/green]")


@app.command("deploy")
def deploy(
    skip_ban_check: bool = typer.Option(False, "--skip-ban-check", help="Set SKIP_BAN_CHECK on the action"),
    skip_entitlements_sync: bool = typer.Option(
        False, "--skip-entitlements-sync", help="Set SKIP_ENTITLEMENTS_SYNC on the action"
    ),
    no_bind: bool = typer.Option(False, "--no-bind", help="Do not bind the action to the post-login trigger"),
):
    """Deploy the post-login action."""
    manager = _actions_manager()

    async def _deploy():
        result = await manager.deploy_post_login_action(
            skip_ban_check=skip_ban_check,
            skip_entitlements_sync=skip_entitlements_sync,
        )
        if result.success and not no_bind:
            try:
                await manager.triggers.bind(result.action_id, manager.metadata.display_name, 0)
                result.bound_to_trigger = True
            except ManagementError as e:
                console.print(f"[yellow]Deployed, but binding to the post-login trigger failed: {escape(str(e))}[/yellow]")
                result.bound_to_trigger = False
        return result

    result = _run(_deploy())

    if not result.success:
        _fail(f"Deploy failed: {result.error}")

    details = f"Action: {manager.action_name}\nAction ID: {result.action_id}"
    if result.bound_to_trigger:
        details += "\nBound first in the post-login flow"
    console.print(Panel(details, title="✅ Deployed", border_style="green"))


@app.command("undeploy")
def undeploy():
    """Unbind and delete the post-login action."""
    manager = _actions_manager()
    result = _run(manager.undeploy_post_login_action())

    if not result.success:
        _fail(f"Undeploy failed: {result.error}")

    if result.action_id:
        console.print(f"[green]✅ Removed {manager.action_name} ({result.action_id})[/green]")
    else:
        console.print(f"[yellow]{manager.action_name} is not deployed[/yellow]")


@app.command("list-actions")
def list_actions():
    """List deployed actions carrying the configured prefix."""
    actions = _run(_actions_manager().get_deployed_actions())

    table = Table(title="Deployed Actions")

    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Runtime", style="dim")
    table.add_column("Status", style="dim")

    for action in actions:
        table.add_row(action.id, action.name, action.runtime or "", action.status or "")

    console.print(table)


@app.command("bindings")
def list_bindings():
    """Show the post-login execution order."""
    _print_bindings(_run(_triggers_manager().list_bindings()))


@app.command("bind")
def bind(
    action_id: str = typer.Argument(..., help="Action ID"),
    display_name: Optional[str] = typer.Option(None, "--display-name", "-n", help="Binding display name"),
    position: Optional[int] = typer.Option(None, "--position", "-p", help="Zero-based position"),
):
    """Bind an action to the post-login trigger."""
    _print_bindings(_run(_triggers_manager().bind(action_id, display_name, position)))


@app.command("unbind")
def unbind(action_id: str = typer.Argument(..., help="Action ID")):
    """Remove an action from the post-login trigger."""
    _print_bindings(_run(_triggers_manager().unbind(action_id)))


@app.command("reorder")
def reorder(action_ids: List[str] = typer.Argument(..., help="Action IDs in the desired order")):
    """Set the post-login execution order."""
    _print_bindings(_run(_triggers_manager().reorder(action_ids)))


@app.command("bundle")
def bundle(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the action code to this file"),
):
    """Print the post-login action bundle for manual deployment."""
    action_bundle = _actions_manager().get_action_bundle()

    if output:
        output.write_text(action_bundle.code, encoding="utf-8")
        console.print(f"[green]✅ Wrote {output}[/green]")
    else:
        console.print(action_bundle.code, markup=False, highlight=False)

    table = Table(title="Action Secrets")

    table.add_column("Name", style="cyan")
    table.add_column("Required", style="green")
    table.add_column("Description", style="dim")

    for secret in action_bundle.secrets:
        table.add_row(secret.name, "yes" if secret.required else "no", secret.description)

    console.print(table)
    console.print(Panel(Markdown(action_bundle.instructions), title="Manual Deployment", border_style="blue"))


def main():
    """Main CLI entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()

"""Tests for the command line interface."""

import pytest
from typer.testing import CliRunner

from auth0_actions.cli import app
from auth0_actions.config import settings

runner = CliRunner()


@pytest.fixture
def deployment_settings(monkeypatch):
    values = {
        "auth0_domain": "test-tenant.auth0.com",
        "auth0_client_id": "test-client-id",
        "auth0_client_secret": "test-client-secret",
        "action_name_prefix": "myapp-",
        "metadata_key": "myapp",
        "claims_namespace": "https://myapp.example.com",
        "callback_url": "https://api.myapp.example.com",
        "callback_api_key": "callback-api-key",
    }
    for name, value in values.items():
        monkeypatch.setattr(settings, name, value)
    return settings


@pytest.mark.unit
class TestCli:
    """Test CLI commands that need no network access."""

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "Auth0 Actions Manager" in result.output
        assert "1.0.0" in result.output

    def test_deploy_requires_credentials(self, unconfigured_settings):
        result = runner.invoke(app, ["deploy"])

        assert result.exit_code == 1
        assert "not configured" in result.output

    def test_bindings_requires_credentials(self, unconfigured_settings):
        result = runner.invoke(app, ["bindings"])

        assert result.exit_code == 1

    def test_bundle_to_file(self, deployment_settings, tmp_path):
        output = tmp_path / "action.js"

        result = runner.invoke(app, ["bundle", "--output", str(output)])

        assert result.exit_code == 0
        code = output.read_text(encoding="utf-8")
        assert "exports.onExecutePostLogin" in code
        assert "const METADATA_KEY = 'myapp';" in code

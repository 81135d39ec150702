"""Post-login action template.

The action source is embedded as a string so deployment needs no bundling
step. All product-specific naming comes from ``ActionTemplateConfig``.
"""

from string import Template
from typing import List, Optional

from pydantic import BaseModel, Field

ACTION_TEMPLATE_VERSION = "1.0.0"
ACTION_TEMPLATE_BUILD_DATE = "2025-12-11"

POST_LOGIN_TRIGGER_ID = "post-login"
POST_LOGIN_TRIGGER_VERSION = "v3"
DEFAULT_RUNTIME = "node18"
DEFAULT_TIMEOUT_MS = 5000


class ActionTemplateConfig(BaseModel):
    """Naming used when rendering the action."""
    action_name_prefix: str
    metadata_key: str
    claims_namespace: str
    callback_url_secret_name: str = "API_URL"
    callback_api_key_secret_name: str = "API_KEY"


class SecretDescriptor(BaseModel):
    """Secret expected by the rendered action."""
    name: str
    description: str
    required: bool
    default: Optional[str] = None


class ActionMetadata(BaseModel):
    """Descriptive metadata of the rendered action."""
    name: str
    display_name: str
    description: str
    runtime: str
    trigger: str
    version: str
    build_date: str
    secrets: List[SecretDescriptor] = Field(default_factory=list)


_POST_LOGIN_TEMPLATE = Template("""/**
 * Auth0 Post-Login Action
 * Version: $version
 * Build: $build_date
 *
 * Checks bans and syncs entitlements from your server.
 *
 * Required Secrets:
 * - $url_secret: Base URL of your server
 * - $key_secret: API key for authentication
 */

const DEFAULT_TIMEOUT_MS = $default_timeout;

async function fetchWithTimeout(url, options, timeoutMs) {
  const controller = new AbortController();
  const timeoutId = setTimeout(() => controller.abort(), timeoutMs);
  try {
    return await fetch(url, { ...options, signal: controller.signal });
  } catch (error) {
    if (error.name === 'AbortError') {
      throw new Error('Request timeout after ' + timeoutMs + 'ms');
    }
    throw error;
  } finally {
    clearTimeout(timeoutId);
  }
}

async function apiRequest(baseUrl, path, apiKey, timeoutMs) {
  const url = baseUrl.replace(/\\/$$/, '') + path;
  const response = await fetchWithTimeout(url, {
    method: 'GET',
    headers: {
      'Authorization': 'Bearer ' + apiKey,
      'Accept': 'application/json',
    },
  }, timeoutMs);

  if (!response.ok) {
    throw new Error('API request failed: ' + response.status);
  }
  return response.json();
}

exports.onExecutePostLogin = async (event, api) => {
  const METADATA_KEY = '$metadata_key';
  const CLAIMS_NAMESPACE = '$claims_namespace';

  const apiUrl = event.secrets['$url_secret'];
  const apiKey = event.secrets['$key_secret'];
  const timeoutMs = parseInt(event.secrets.TIMEOUT_MS || DEFAULT_TIMEOUT_MS, 10);
  const skipBanCheck = event.secrets.SKIP_BAN_CHECK === 'true';
  const skipEntitlementsSync = event.secrets.SKIP_ENTITLEMENTS_SYNC === 'true';
  const email = event.user.email;

  if (!apiUrl || !apiKey || !email) {
    console.warn('[auth0-action] Missing configuration or user email, skipping');
    return;
  }

  const encodedEmail = encodeURIComponent(email);

  if (!skipBanCheck) {
    try {
      const ban = await apiRequest(apiUrl, '/api/bans/email/' + encodedEmail, apiKey, timeoutMs);
      if (ban.banned) {
        api.access.deny('Access denied' + (ban.reason ? ': ' + ban.reason : ''));
        return;
      }
    } catch (error) {
      console.error('[auth0-action] Ban check failed:', error.message);
    }
  }

  if (!skipEntitlementsSync) {
    try {
      const result = await apiRequest(apiUrl, '/api/entitlements/' + encodedEmail, apiKey, timeoutMs);
      const metadata = {
        entitlements: (result && result.entitlements) || [],
        sync_timestamp: new Date().toISOString(),
        sync_status: 'success',
      };
      api.user.setUserMetadata(METADATA_KEY, metadata);
      api.idToken.setCustomClaim(CLAIMS_NAMESPACE + '/entitlements', metadata.entitlements);
    } catch (error) {
      console.error('[auth0-action] Entitlements sync failed:', error.message);
      api.user.setUserMetadata(METADATA_KEY, {
        sync_timestamp: new Date().toISOString(),
        sync_status: 'error',
        error_message: error.message,
      });
    }
  }
};
""")


def _escape_js_string(value: str) -> str:
    """Escape a value for a single-quoted JavaScript string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")


def get_action_template_version() -> str:
    return ACTION_TEMPLATE_VERSION


def get_post_login_action_code(config: ActionTemplateConfig) -> str:
    """Render the post-login action source for ``config``."""
    return _POST_LOGIN_TEMPLATE.substitute(
        version=ACTION_TEMPLATE_VERSION,
        build_date=ACTION_TEMPLATE_BUILD_DATE,
        default_timeout=DEFAULT_TIMEOUT_MS,
        metadata_key=_escape_js_string(config.metadata_key),
        claims_namespace=_escape_js_string(config.claims_namespace),
        url_secret=_escape_js_string(config.callback_url_secret_name),
        key_secret=_escape_js_string(config.callback_api_key_secret_name),
    )


def get_post_login_action_metadata(
    config: ActionTemplateConfig,
    runtime: str = DEFAULT_RUNTIME,
) -> ActionMetadata:
    """Describe the post-login action rendered for ``config``."""
    prefix = config.action_name_prefix
    return ActionMetadata(
        name=f"{prefix}post-login",
        display_name=f"{prefix[:-1] if prefix.endswith('-') else prefix} Post-Login",
        description="Check bans and sync entitlements from your server",
        runtime=runtime,
        trigger=POST_LOGIN_TRIGGER_ID,
        version=ACTION_TEMPLATE_VERSION,
        build_date=ACTION_TEMPLATE_BUILD_DATE,
        secrets=[
            SecretDescriptor(
                name=config.callback_url_secret_name,
                description="Base URL of your server (e.g., https://api.example.com)",
                required=True,
            ),
            SecretDescriptor(
                name=config.callback_api_key_secret_name,
                description="API key for authentication",
                required=True,
            ),
            SecretDescriptor(
                name="TIMEOUT_MS",
                description="Request timeout in milliseconds",
                required=False,
                default=str(DEFAULT_TIMEOUT_MS),
            ),
            SecretDescriptor(
                name="SKIP_BAN_CHECK",
                description='Set to "true" to skip ban checking',
                required=False,
                default="false",
            ),
            SecretDescriptor(
                name="SKIP_ENTITLEMENTS_SYNC",
                description='Set to "true" to skip entitlements sync',
                required=False,
                default="false",
            ),
        ],
    )

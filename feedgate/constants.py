"""Shared constants for FeedGate.

Protocol tags, defaults and size caps used across modules are defined here.
No magic values in other modules — import from here.
"""

# ─── Integration identity ────────────────────────────────────────────────────

#: Version of this integration. Sent as ``pluginVersion`` and in the User-Agent.
FEEDGATE_VERSION: str = "2.0.0"

#: Product token used in the User-Agent string.
FEEDGATE_PRODUCT_NAME: str = "FeedGate"

# ─── Policy service protocol ─────────────────────────────────────────────────

#: Default policy-check endpoint (vendor public SaaS).
DEFAULT_ENDPOINT: str = "https://saas.whitesourcesoftware.com/agent"

#: Fixed protocol-action tag sent as the ``type`` form field.
REQUEST_TYPE: str = "CHECK_POLICY_COMPLIANCE"

#: Agent identity expected by the policy service.
AGENT_NAME: str = "generic"
AGENT_VERSION: str = "2.4.1"

#: Content-Type of the request body. ``utf8`` (no dash) is what the service expects.
FORM_CONTENT_TYPE: str = "application/x-www-form-urlencoded; charset=utf8"

#: ``status`` value of a successful response envelope.
STATUS_SUCCESS: int = 1

#: ``actionType`` value that blocks a package. Case-sensitive.
REJECT_ACTION: str = "Reject"

# ─── Hash sizes ──────────────────────────────────────────────────────────────

SHA1_DIGEST_SIZE: int = 20
MD5_DIGEST_SIZE: int = 16

# ─── HTTP ────────────────────────────────────────────────────────────────────

#: Default total request timeout (seconds) for a single policy check.
DEFAULT_TIMEOUT_S: float = 30.0

#: Maximum number of response-body characters written to the error log.
MAX_LOGGED_BODY_CHARS: int = 2_048

# ─── Host adapter ────────────────────────────────────────────────────────────

DEFAULT_SERVER_HOST: str = "127.0.0.1"
DEFAULT_SERVER_PORT: int = 4343

# Host identity used in the User-Agent when the host does not supply one.
DEFAULT_HOST_PRODUCT: str = "FeedHost"
DEFAULT_HOST_VERSION: str = "0.0.0"

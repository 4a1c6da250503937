"""Config loading for FeedGate.

Reads `.feedgate/config.yaml` (or `~/.feedgate/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field or an invalid
endpoint. If no config file is found, returns default values; the rule then
has no token until FEEDGATE_TOKEN is set.

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. FEEDGATE_CONFIG environment variable (if set)
  3. `.feedgate/config.yaml` (working directory — for development)
  4. `~/.feedgate/config.yaml` (home directory — for production deployments)

Environment variable overrides (applied after the file):
  FEEDGATE_TOKEN    — organization token (preferred over storing it in the file)
  FEEDGATE_ENDPOINT — overrides rule.endpoint
  FEEDGATE_PRODUCT  — overrides rule.product
  FEEDGATE_PORT     — overrides server.port

Example::

    version: 1
    rule:
      token: "0123abcd..."
      product: "my-product"
      endpoint: "https://saas.whitesourcesoftware.com/agent"
      timeout_s: 10
    server:
      port: 4343
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import NoReturn, Optional
from urllib.parse import urlsplit

import yaml

from feedgate.constants import (
    DEFAULT_ENDPOINT,
    DEFAULT_HOST_PRODUCT,
    DEFAULT_HOST_VERSION,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    DEFAULT_TIMEOUT_S,
)
from feedgate.secrets import SecretToken
from feedgate.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

DEFAULT_CONFIG_PATHS = [
    ".feedgate/config.yaml",
    os.path.expanduser("~/.feedgate/config.yaml"),
]


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class RuleConfig:
    """Access-rule settings: where to ask, and with which credential.

    token:             Organization token ("API Key" in the service admin console).
                       Held as an opaque SecretToken, never printed.
    endpoint:          Policy-check URL, usually https://<service host>/agent.
    product:           Optional product name or token; omitted from requests when empty.
    timeout_s:         Total timeout of one policy-service round trip.
    append_blank_data: Append the envelope's ``data`` to service errors even when blank.
    host_product:      Host product name used in the User-Agent.
    host_version:      Host product version used in the User-Agent.
    """

    token: Optional[SecretToken] = None
    endpoint: str = DEFAULT_ENDPOINT
    product: Optional[str] = None
    timeout_s: float = DEFAULT_TIMEOUT_S
    append_blank_data: bool = False
    host_product: str = DEFAULT_HOST_PRODUCT
    host_version: str = DEFAULT_HOST_VERSION

    @property
    def configured(self) -> bool:
        return self.token is not None


@dataclass
class ServerConfig:
    """Host-adapter binding configuration."""

    host: str = DEFAULT_SERVER_HOST
    port: int = DEFAULT_SERVER_PORT


@dataclass
class Config:
    """Root configuration object populated from .feedgate/config.yaml."""

    version: int = SUPPORTED_CONFIG_VERSION
    rule: RuleConfig = field(default_factory=RuleConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    path: Optional[str] = None

    @classmethod
    def defaults(cls) -> "Config":
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On an invalid endpoint, timeout or empty token.
        """
        # ── Rule ──────────────────────────────────────────────────────────────
        rule_raw = raw.get("rule") or {}
        if not isinstance(rule_raw, dict):
            _fail("CONFIG ERROR: 'rule' must be a YAML mapping.")

        token_raw = rule_raw.get("token")
        token: Optional[SecretToken] = None
        if token_raw is not None:
            try:
                token = SecretToken(str(token_raw))
            except ValueError:
                _fail("CONFIG ERROR: rule.token is set but empty.")

        endpoint = rule_raw.get("endpoint") or DEFAULT_ENDPOINT
        _validate_endpoint(endpoint)

        timeout_raw = rule_raw.get("timeout_s", DEFAULT_TIMEOUT_S)
        try:
            timeout_s = float(timeout_raw)
        except (TypeError, ValueError):
            _fail(f"CONFIG ERROR: rule.timeout_s is not a number: {timeout_raw!r}")
        if timeout_s <= 0:
            _fail(f"CONFIG ERROR: rule.timeout_s must be positive, got {timeout_s}")

        rule = RuleConfig(
            token=token,
            endpoint=endpoint,
            product=rule_raw.get("product") or None,
            timeout_s=timeout_s,
            append_blank_data=bool(rule_raw.get("append_blank_data", False)),
            host_product=rule_raw.get("host_product", DEFAULT_HOST_PRODUCT),
            host_version=str(rule_raw.get("host_version", DEFAULT_HOST_VERSION)),
        )

        # ── Server ────────────────────────────────────────────────────────────
        server_raw = raw.get("server") or {}
        server = ServerConfig(
            host=server_raw.get("host", DEFAULT_SERVER_HOST),
            port=server_raw.get("port", DEFAULT_SERVER_PORT),
        )

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            rule=rule,
            server=server,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate FeedGate configuration.

    If no file is found at any search path, returns default Config (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).
    Environment overrides are applied in both cases.

    Raises:
        SystemExit(1): On YAML parse error, missing or unsupported ``version``,
                       invalid endpoint/timeout, or invalid ``FEEDGATE_PORT``.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("FEEDGATE_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    # ── No config file found ─────────────────────────────────────────────────
    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        return config

    # ── Parse config file ─────────────────────────────────────────────────────
    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "FeedGate refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    # ── Version validation ────────────────────────────────────────────────────
    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)

    if config.rule.endpoint.startswith("http://"):
        logger.warning(
            "SECURITY WARNING: policy endpoint uses plain HTTP. "
            "The organization token is sent in the request body unencrypted.",
            endpoint=config.rule.endpoint,
        )

    logger.info(
        "Config loaded",
        path=found_path,
        version=config.version,
        endpoint=config.rule.endpoint,
        product=config.rule.product,
        token_configured=config.rule.configured,
    )
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Raises:
        SystemExit(1): If FEEDGATE_PORT is not an integer, FEEDGATE_ENDPOINT is
                       not an http(s) URL, or FEEDGATE_TOKEN is blank.
    """
    env_token = os.environ.get("FEEDGATE_TOKEN")
    if env_token is not None:
        try:
            config.rule.token = SecretToken(env_token)
        except ValueError:
            _fail("CONFIG ERROR: FEEDGATE_TOKEN environment variable is set but empty")

    env_endpoint = os.environ.get("FEEDGATE_ENDPOINT")
    if env_endpoint:
        _validate_endpoint(env_endpoint)
        config.rule.endpoint = env_endpoint

    env_product = os.environ.get("FEEDGATE_PRODUCT")
    if env_product is not None:
        config.rule.product = env_product or None

    env_port = os.environ.get("FEEDGATE_PORT")
    if env_port is not None:
        try:
            config.server.port = int(env_port)
        except ValueError:
            _fail(
                f"CONFIG ERROR: FEEDGATE_PORT environment variable is not a valid "
                f"integer: '{env_port}'"
            )


def _validate_endpoint(endpoint: str) -> None:
    parts = urlsplit(str(endpoint))
    if parts.scheme not in ("http", "https") or not parts.netloc:
        _fail(
            f"CONFIG ERROR: Invalid policy endpoint: '{endpoint}'. "
            "Expected an http(s) URL such as https://saas.whitesourcesoftware.com/agent"
        )


def _fail(msg: str) -> NoReturn:
    print(msg, file=sys.stderr)
    raise SystemExit(1)

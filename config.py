"""Config management for git-oauth-relay.

Everything the relay needs is read from the environment once at startup
(optionally from a .env file) and frozen into a RelayConfig.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from relay.allowlist import API_PREFIXES, OAUTH_ENDPOINTS, Provider
from relay.cors import CorsPolicy


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8787
DEFAULT_TIMEOUT = 30.0
DEFAULT_EXCERPT_LIMIT = 300


@dataclass(frozen=True)
class ProviderCredentials:
    """OAuth app credentials for one provider."""

    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class RelayConfig:
    """Immutable configuration for the relay routes."""

    credentials: Mapping[Provider, ProviderCredentials] = field(default_factory=dict)
    oauth_endpoints: Mapping[str, Provider] = field(default_factory=lambda: OAUTH_ENDPOINTS)
    api_prefixes: tuple = API_PREFIXES
    cors: CorsPolicy = field(default_factory=CorsPolicy)
    timeout: float = DEFAULT_TIMEOUT
    excerpt_limit: int = DEFAULT_EXCERPT_LIMIT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    log_format: str = "plain"

    def credentials_for(self, provider: Provider) -> Optional[ProviderCredentials]:
        return self.credentials.get(provider)

    def client_id(self, provider: Provider) -> Optional[str]:
        creds = self.credentials_for(provider)
        return creds.client_id if creds else None

    def secrets(self) -> list[str]:
        """All configured client secrets (for log redaction)."""
        return [c.client_secret for c in self.credentials.values() if c.client_secret]


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)


def _read_credentials(env: Mapping[str, str], provider: Provider) -> Optional[ProviderCredentials]:
    prefix = provider.value.upper()
    client_id = env.get(f"{prefix}_CLIENT_ID", "").strip()
    client_secret = env.get(f"{prefix}_CLIENT_SECRET", "").strip()
    if not client_id or not client_secret:
        return None
    return ProviderCredentials(client_id=client_id, client_secret=client_secret)


def _read_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> RelayConfig:
    """Build a RelayConfig from environment variables.

    Only GitHub and GitLab take credentials; Bitbucket token exchanges are
    relayed with whatever the caller sent.
    """
    if env is None:
        load_env()
        env = os.environ

    credentials = {}
    for provider in (Provider.GITHUB, Provider.GITLAB):
        creds = _read_credentials(env, provider)
        if creds:
            credentials[provider] = creds

    return RelayConfig(
        credentials=credentials,
        timeout=_read_number(env, "RELAY_TIMEOUT", DEFAULT_TIMEOUT, float),
        excerpt_limit=_read_number(env, "RELAY_EXCERPT_LIMIT", DEFAULT_EXCERPT_LIMIT, int),
        host=env.get("RELAY_HOST", DEFAULT_HOST),
        port=_read_number(env, "RELAY_PORT", DEFAULT_PORT, int),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        log_format=env.get("LOG_FORMAT", "plain").lower(),
    )

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from redsync.domain.errors import ConfigurationError


CLIENT_ID_ENV = 'SPOTIFY_ID'
CLIENT_SECRET_ENV = 'SPOTIFY_SECRET'
DEBUG_ENV = 'DEBUG_SYNC'

AUTH_URL = 'https://accounts.spotify.com/authorize'
TOKEN_URL = 'https://accounts.spotify.com/api/token'

DEFAULT_REDIRECT_URI = 'http://localhost:8080/callback'
DEFAULT_HANDSHAKE_TIMEOUT = 60
PAGE_SIZE = 100
BATCH_SIZE = 100


def get_spotify_scopes() -> list:
    """Scopes needed to create public playlists and read the user's id."""
    return [
        'playlist-modify-public',
        'user-read-private',
    ]


def get_spotify_scope_string() -> str:
    return ' '.join(get_spotify_scopes())


@dataclass(frozen=True)
class RedirectTarget:
    """Where the local callback listener binds and which route it serves."""

    uri: str
    host: str
    port: int
    route: str


@dataclass(frozen=True)
class SyncConfig:
    """Explicit run configuration handed to sessions and stages."""

    client_id: str
    client_secret: str
    redirect_uri: Optional[str] = None
    debug: bool = False
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT
    page_size: int = PAGE_SIZE
    batch_size: int = BATCH_SIZE

    def require_credentials(self) -> None:
        if not self.client_id:
            raise ConfigurationError(f"{CLIENT_ID_ENV} is not set in environment variables")
        if not self.client_secret:
            raise ConfigurationError(f"{CLIENT_SECRET_ENV} is not set in environment variables")

    def redirect_target(self) -> RedirectTarget:
        if not self.redirect_uri:
            raise ConfigurationError("redirect URI is required for interactive authorization")
        return parse_redirect_uri(self.redirect_uri)


def parse_redirect_uri(uri: str) -> RedirectTarget:
    """Split a redirect URI into listener host, port and callback route."""
    try:
        parsed = urlparse(uri)
        port = parsed.port
    except ValueError as e:
        raise ConfigurationError(f"Invalid redirect URI {uri!r}: {e}") from e

    if not parsed.scheme:
        raise ConfigurationError(f"Redirect URI {uri!r} must include a scheme")

    route = parsed.path if parsed.path.startswith('/') else '/' + parsed.path
    return RedirectTarget(
        uri=uri,
        host=parsed.hostname or '',
        port=port or 80,
        route=route,
    )


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides) -> SyncConfig:
    """Build a SyncConfig from environment variables.

    Args:
        environ: Mapping to read from, ``os.environ`` when omitted
        **overrides: Field values that take precedence over the environment

    Raises:
        ConfigurationError: when either client credential is missing
    """
    env = os.environ if environ is None else environ

    values = {
        'client_id': (env.get(CLIENT_ID_ENV) or '').strip(),
        'client_secret': (env.get(CLIENT_SECRET_ENV) or '').strip(),
        'debug': bool(env.get(DEBUG_ENV)),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    config = SyncConfig(**values)
    config.require_credentials()
    return config

import logging
from enum import Enum
from typing import Callable, Optional, Tuple

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from redsync.crosscutting.completion import OneShot
from redsync.crosscutting.config import DEFAULT_REDIRECT_URI, SyncConfig, get_spotify_scope_string
from redsync.domain.entities import SessionState
from redsync.domain.errors import AuthExchangeError, ConfigurationError, NotReadyError, ProviderError
from redsync.domain.ports import CatalogClient
from redsync.infrastructure.auth.transport import http11_session
from redsync.infrastructure.providers.spotify import SpotifyCatalog

logger = logging.getLogger(__name__)

_EXCHANGE_ERRORS = (SpotifyOauthError, requests.RequestException, KeyError, TypeError)

CatalogFactory = Callable[[str], CatalogClient]


class CallbackOutcome(Enum):
    """Result of delivering one authorization callback to a session."""

    COMPLETED = "completed"
    EXCHANGE_FAILED = "exchange_failed"
    STATE_MISMATCH = "state_mismatch"
    NOT_AWAITING = "not_awaiting"


def build_oauth(config: SyncConfig,
                redirect_uri: Optional[str] = None,
                requests_session=True) -> SpotifyOAuth:
    """OAuth manager for the configured client; tokens are cached in memory only."""
    return SpotifyOAuth(
        client_id=config.client_id,
        client_secret=config.client_secret,
        redirect_uri=redirect_uri,
        scope=get_spotify_scope_string(),
        requests_session=requests_session,
        open_browser=False,
        cache_handler=MemoryCacheHandler(),
    )


class Session:
    """Authorization state of one run against the Spotify Web API.

    A session starts unauthenticated, may wait for an interactive callback,
    and becomes authenticated exactly once. The authenticated catalog handle
    is handed over through a single-fire completion signal, so the thread
    that finishes the handshake and the thread waiting on it never share
    anything else.
    """

    def __init__(self,
                 config: SyncConfig,
                 oauth: SpotifyOAuth,
                 catalog_factory: CatalogFactory = SpotifyCatalog.from_access_token):
        self._config = config
        self._oauth = oauth
        self._catalog_factory = catalog_factory
        self._phase = SessionState.UNAUTHENTICATED
        self._correlation_token: Optional[str] = None
        self._completion = OneShot()

    @classmethod
    def begin_interactive(cls,
                          config: SyncConfig,
                          correlation_token: str,
                          catalog_factory: CatalogFactory = SpotifyCatalog.from_access_token
                          ) -> Tuple['Session', str]:
        """Start the redirect handshake.

        Returns:
            The session, now awaiting a callback, and the URL the user must visit

        Raises:
            ConfigurationError: when credentials or the redirect URI are missing
        """
        config.require_credentials()
        target = config.redirect_target()
        session = cls(config, build_oauth(config, target.uri), catalog_factory)
        return session, session.authorization_url(correlation_token)

    @classmethod
    def begin_with_refresh_token(cls,
                                 config: SyncConfig,
                                 refresh_token: str,
                                 catalog_factory: CatalogFactory = SpotifyCatalog.from_access_token
                                 ) -> 'Session':
        """Authenticate synchronously by exchanging a refresh token.

        Raises:
            ConfigurationError: when credentials are missing
            AuthExchangeError: when the token endpoint cannot be reached or rejects the token
        """
        logger.debug("requesting new access token with provided refresh token")
        config.require_credentials()
        # unused by the refresh grant, but required by SpotifyOAuth
        try:
            oauth = build_oauth(config, config.redirect_uri or DEFAULT_REDIRECT_URI,
                                requests_session=http11_session())
        except SpotifyOauthError as e:
            raise ConfigurationError(f"Invalid OAuth client settings: {e}") from e
        session = cls(config, oauth, catalog_factory)

        try:
            token_info = oauth.refresh_access_token(refresh_token)
            access_token = token_info['access_token']
        except _EXCHANGE_ERRORS as e:
            raise AuthExchangeError(f"Refresh token exchange failed: {e}") from e

        session._completion.fire(catalog_factory(access_token))
        return session

    @property
    def state(self) -> SessionState:
        if self._completion.is_fired():
            return SessionState.AUTHENTICATED
        return self._phase

    @property
    def correlation_token(self) -> Optional[str]:
        return self._correlation_token

    def authorization_url(self, correlation_token: str) -> str:
        """Issue the authorization URL and start waiting for its callback."""
        if self.state is not SessionState.UNAUTHENTICATED:
            raise NotReadyError("session is single-use, authorization was already started")
        self._correlation_token = correlation_token
        url = self._oauth.get_authorize_url(state=correlation_token)
        self._phase = SessionState.AWAITING_CALLBACK
        return url

    def handle_callback(self, code: Optional[str], state: Optional[str]) -> CallbackOutcome:
        """Complete the handshake with the code and state from the redirect."""
        logger.debug(f"callback invoked with code: {code} and state: {state}")
        if self.state is not SessionState.AWAITING_CALLBACK:
            logger.debug(f"ignoring callback, session is {self.state.value}")
            return CallbackOutcome.NOT_AWAITING

        try:
            access_token = self._oauth.get_access_token(code, as_dict=False, check_cache=False)
        except _EXCHANGE_ERRORS as e:
            logger.warning(f"unable to get token from Spotify: {e}")
            return CallbackOutcome.EXCHANGE_FAILED

        if state != self._correlation_token:
            logger.warning(f"state value mismatched, received {state!r}")
            return CallbackOutcome.STATE_MISMATCH

        logger.debug("creating client with token")
        if not self._completion.fire(self._catalog_factory(access_token)):
            logger.debug("handshake already completed by another callback")
            return CallbackOutcome.NOT_AWAITING

        logger.info("Spotify authorization completed")
        return CallbackOutcome.COMPLETED

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the session is authenticated; False on timeout."""
        return self._completion.wait(timeout)

    def is_ready(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def catalog(self) -> CatalogClient:
        if not self.is_ready():
            raise NotReadyError()
        return self._completion.value

    def current_user_id(self) -> str:
        """Id of the authenticated user.

        Raises:
            NotReadyError: if the session is not authenticated
            AuthExchangeError: if the provider does not return the user profile
        """
        catalog = self.catalog
        try:
            return catalog.current_user_id()
        except ProviderError as e:
            raise AuthExchangeError(f"Failed to look up the authenticated user: {e}") from e

import os
import sys
from unittest.mock import patch

import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()

from redsync.crosscutting.config import SyncConfig  # noqa: E402
from redsync.infrastructure.auth.session import Session  # noqa: E402
from redsync.tests.fakes import FakeCatalog  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_spotify_env():
    """Keep credentials from a developer's shell or .env out of the tests."""
    keys = ['SPOTIFY_ID', 'SPOTIFY_SECRET', 'DEBUG_SYNC']
    backup = {k: os.environ.get(k) for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


@pytest.fixture
def config():
    return SyncConfig(
        client_id='client-id-123',
        client_secret='client-secret-456',
        redirect_uri='http://localhost:8080/callback',
    )


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def ready_session(config, catalog):
    """Session authenticated through a stubbed refresh-token exchange."""
    with patch('redsync.infrastructure.auth.session.SpotifyOAuth') as oauth_class:
        oauth_class.return_value.refresh_access_token.return_value = {'access_token': 'AT'}
        return Session.begin_with_refresh_token(config, 'RT', catalog_factory=lambda token: catalog)

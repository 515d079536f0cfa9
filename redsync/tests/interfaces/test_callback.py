from unittest.mock import Mock

import requests

from redsync.crosscutting.config import RedirectTarget
from redsync.infrastructure.auth.session import Session
from redsync.interfaces.callback import CallbackServer, create_callback_app
from redsync.tests.fakes import FakeCatalog


class TestCallbackApp:
    """Tests for the Flask callback endpoint."""

    def setup_method(self):
        self.catalog = FakeCatalog()
        self.oauth = Mock()
        self.oauth.get_authorize_url.return_value = 'https://accounts.spotify.com/authorize?state=s1'
        self.oauth.get_access_token.return_value = 'AT'

    def _client(self, config, route='/callback'):
        self.session = Session(config, self.oauth, catalog_factory=lambda token: self.catalog)
        self.session.authorization_url('s1')
        return create_callback_app(self.session, route).test_client()

    def test_valid_callback_completes_login(self, config):
        client = self._client(config)

        response = client.get('/callback', query_string={'code': 'c', 'state': 's1'})

        assert response.status_code == 200
        assert response.get_data(as_text=True) == 'login process completed.'
        assert self.session.is_ready()

    def test_exchange_failure_is_403(self, config):
        self.oauth.get_access_token.side_effect = requests.HTTPError('400 invalid_grant')
        client = self._client(config)

        response = client.get('/callback', query_string={'code': 'c', 'state': 's1'})

        assert response.status_code == 403
        assert not self.session.is_ready()

    def test_state_mismatch_is_404(self, config):
        client = self._client(config)

        response = client.get('/callback', query_string={'code': 'c', 'state': 'other'})

        assert response.status_code == 404
        assert not self.session.is_ready()

    def test_second_callback_is_404_and_keeps_session(self, config):
        client = self._client(config)
        client.get('/callback', query_string={'code': 'c', 'state': 's1'})

        response = client.get('/callback', query_string={'code': 'c2', 'state': 's1'})

        assert response.status_code == 404
        assert self.oauth.get_access_token.call_count == 1
        assert self.session.catalog is self.catalog

    def test_root_explains_purpose(self, config):
        client = self._client(config)

        response = client.get('/')

        assert response.status_code == 200
        assert 'callback request from Spotify' in response.get_data(as_text=True)

    def test_callback_on_root_route(self, config):
        client = self._client(config, route='/')

        response = client.get('/', query_string={'code': 'c', 'state': 's1'})

        assert response.status_code == 200
        assert self.session.is_ready()


def test_server_thread_unblocks_waiter(config):
    catalog = FakeCatalog()
    oauth = Mock()
    oauth.get_access_token.return_value = 'AT'
    session = Session(config, oauth, catalog_factory=lambda token: catalog)
    session.authorization_url('s1')

    server = CallbackServer(session, RedirectTarget(uri='', host='127.0.0.1', port=0, route='/cb'),
                            bind_host='127.0.0.1')
    server.start()
    try:
        response = requests.get(f'http://127.0.0.1:{server.port}/cb',
                                params={'code': 'c', 'state': 's1'}, timeout=5)
        assert response.status_code == 200
        assert session.wait_until_ready(timeout=2) is True
        assert session.catalog is catalog
    finally:
        server.stop()

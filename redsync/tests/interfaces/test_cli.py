import argparse
from unittest.mock import Mock, patch

import pytest

from redsync.domain.entities import SyncResult
from redsync.domain.errors import AuthExchangeError, FetchError
from redsync.interfaces.cli import CLI


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv('SPOTIFY_ID', 'cid')
    monkeypatch.setenv('SPOTIFY_SECRET', 'secret')


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('redsync.interfaces.cli.setup_logging') as setup:
        yield setup


class TestParser:
    """Tests for flag parsing."""

    def test_defaults(self):
        parser = CLI()._create_parser()
        assert isinstance(parser, argparse.ArgumentParser)

        args = parser.parse_args([])

        assert args.subreddit == 'music'
        assert args.pages == 3
        assert args.redirect_url == 'http://localhost:8080/callback'
        assert args.playlist_id == ''
        assert args.refresh_token == ''
        assert args.timeout == 60

    def test_all_flags(self):
        args = CLI()._create_parser().parse_args([
            '--subreddit', 'music,indie', '--pages', '5', '--playlist-id', 'pl',
            '--refresh-token', 'RT', '--redirect-url', 'http://127.0.0.1:9000/cb', '--timeout', '10',
        ])

        assert args.pages == 5
        assert args.playlist_id == 'pl'
        assert args.refresh_token == 'RT'
        assert args.timeout == 10.0

    def test_parse_subreddits(self):
        assert CLI()._parse_subreddits('music') == ['music']
        assert CLI()._parse_subreddits('music, indie,,') == ['music', 'indie']


class TestRun:
    """Tests for end-to-end CLI wiring with stubbed collaborators."""

    def test_missing_credentials_exit_1(self, capsys):
        assert CLI().run([]) == 1
        assert 'SPOTIFY_ID' in capsys.readouterr().out

    @patch('redsync.interfaces.cli.RedditFeed')
    @patch('redsync.interfaces.cli.SyncWorkflow')
    @patch('redsync.interfaces.cli.Session')
    def test_refresh_token_path(self, session_class, workflow_class, feed_class, credentials, capsys):
        workflow_class.return_value.run.return_value = SyncResult('pl', titles=5, resolved=3, added=2)

        code = CLI().run(['--refresh-token', 'RT', '--subreddit', 'music,indie', '--playlist-id', 'pl'])

        assert code == 0
        assert 'Added (2/3) tracks in the playlist.' in capsys.readouterr().out
        config, token = session_class.begin_with_refresh_token.call_args.args
        assert token == 'RT'
        assert config.client_id == 'cid'
        session_class.begin_interactive.assert_not_called()
        workflow_class.assert_called_once_with(
            session_class.begin_with_refresh_token.return_value, feed_class.return_value
        )
        workflow_class.return_value.run.assert_called_once_with(['music', 'indie'], 3, playlist_id='pl')

    @patch('redsync.interfaces.cli.SyncWorkflow')
    @patch('redsync.interfaces.cli.Session')
    def test_refresh_failure_exit_1(self, session_class, workflow_class, credentials, capsys):
        session_class.begin_with_refresh_token.side_effect = AuthExchangeError('invalid_grant')

        assert CLI().run(['--refresh-token', 'RT']) == 1
        assert 'invalid_grant' in capsys.readouterr().out
        workflow_class.assert_not_called()

    @patch('redsync.interfaces.cli.SyncWorkflow')
    @patch('redsync.interfaces.cli.CallbackServer')
    @patch('redsync.interfaces.cli.Session')
    def test_handshake_timeout_exit_1_without_catalog_calls(
            self, session_class, server_class, workflow_class, credentials, capsys):
        session = Mock()
        session.wait_until_ready.return_value = False
        session_class.begin_interactive.return_value = (session, 'https://accounts.spotify.com/authorize?x')

        code = CLI().run(['--timeout', '0.01'])

        out = capsys.readouterr().out
        assert code == 1
        assert 'https://accounts.spotify.com/authorize?x' in out
        assert 'Unable to get authorised by Spotify' in out
        session.wait_until_ready.assert_called_once_with(0.01)
        server_class.return_value.start.assert_called_once()
        server_class.return_value.stop.assert_called_once()
        workflow_class.assert_not_called()

    @patch('redsync.interfaces.cli.RedditFeed')
    @patch('redsync.interfaces.cli.SyncWorkflow')
    @patch('redsync.interfaces.cli.CallbackServer')
    @patch('redsync.interfaces.cli.Session')
    def test_interactive_path(self, session_class, server_class, workflow_class, feed_class, credentials, capsys):
        session = Mock()
        session.wait_until_ready.return_value = True
        session_class.begin_interactive.return_value = (session, 'https://auth')
        workflow_class.return_value.run.return_value = SyncResult('new', titles=1, resolved=1, added=1)

        code = CLI().run(['--redirect-url', 'http://localhost:9999/spotify'])

        assert code == 0
        target = server_class.call_args.args[1]
        assert target.port == 9999
        assert target.route == '/spotify'
        config, correlation_token = session_class.begin_interactive.call_args.args
        assert correlation_token
        workflow_class.return_value.run.assert_called_once_with(['music'], 3, playlist_id=None)
        assert 'Added (1/1)' in capsys.readouterr().out

    def test_redirect_without_scheme_exit_1(self, credentials, capsys):
        assert CLI().run(['--redirect-url', 'localhost/callback']) == 1
        assert 'scheme' in capsys.readouterr().out

    @patch('redsync.interfaces.cli.RedditFeed')
    @patch('redsync.interfaces.cli.SyncWorkflow')
    @patch('redsync.interfaces.cli.Session')
    def test_stage_error_exit_1(self, session_class, workflow_class, feed_class, credentials, capsys):
        workflow_class.return_value.run.side_effect = FetchError('playlist gone')

        assert CLI().run(['--refresh-token', 'RT']) == 1
        assert 'playlist gone' in capsys.readouterr().out

    @patch('redsync.interfaces.cli.RedditFeed')
    @patch('redsync.interfaces.cli.SyncWorkflow')
    @patch('redsync.interfaces.cli.Session')
    def test_debug_env_switches_log_level(self, session_class, workflow_class, feed_class,
                                          credentials, monkeypatch, quiet_logging):
        monkeypatch.setenv('DEBUG_SYNC', '1')
        workflow_class.return_value.run.return_value = SyncResult('pl', titles=0, resolved=0, added=0)

        CLI().run(['--refresh-token', 'RT'])

        quiet_logging.assert_called_once_with('DEBUG')

import argparse
import logging
import secrets
import sys
import time
from typing import List, Optional

from dotenv import load_dotenv

from redsync.application.workflow import SyncWorkflow
from redsync.crosscutting.config import (
    DEFAULT_HANDSHAKE_TIMEOUT, DEFAULT_REDIRECT_URI, SyncConfig, load_config
)
from redsync.crosscutting.logging import setup_logging
from redsync.domain.errors import HandshakeTimeoutError, SyncError
from redsync.infrastructure.auth.session import Session
from redsync.infrastructure.providers.reddit import RedditFeed
from redsync.interfaces.callback import CallbackServer


class CLI:
    """Command Line Interface for redsync."""

    def __init__(self):
        # Do not auto-load .env here to keep tests deterministic
        self.parser = self._create_parser()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='redsync',
            description='Add tracks posted on subreddits to a Spotify playlist'
        )
        parser.add_argument(
            '--playlist-id',
            default='',
            help='playlist id where tracks are going to be added (a new one is created if empty)'
        )
        parser.add_argument(
            '--refresh-token',
            default='',
            help='refresh token to create a new authentication token'
        )
        parser.add_argument(
            '--subreddit',
            default='music',
            help='comma separated subreddit names'
        )
        parser.add_argument(
            '--pages',
            type=int,
            default=3,
            help='max pages to be parsed'
        )
        parser.add_argument(
            '--redirect-url',
            default=DEFAULT_REDIRECT_URI,
            help='redirect URI registered in spotify application'
        )
        parser.add_argument(
            '--timeout',
            type=float,
            default=DEFAULT_HANDSHAKE_TIMEOUT,
            help='seconds to wait for the browser login to complete (default: 60)'
        )
        parser.add_argument(
            '--log-level',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default='WARNING',
            help='Set logging level'
        )
        return parser

    def _setup_logging(self, level: str, debug: bool = False) -> None:
        setup_logging('DEBUG' if debug else level)

    def _parse_subreddits(self, value: str) -> List[str]:
        return [sub.strip() for sub in value.split(',') if sub.strip()]

    def _authenticate(self, config: SyncConfig, refresh_token: str) -> Session:
        if refresh_token:
            return Session.begin_with_refresh_token(config, refresh_token)
        return self._authenticate_interactive(config)

    def _authenticate_interactive(self, config: SyncConfig) -> Session:
        """Run the browser handshake, bounded by the configured timeout."""
        target = config.redirect_target()
        session, auth_url = Session.begin_interactive(config, secrets.token_urlsafe(16))

        server = CallbackServer(session, target)
        server.start()
        try:
            print(f"Please log in to Spotify by visiting the following page in your browser: {auth_url}")
            if not session.wait_until_ready(config.handshake_timeout):
                raise HandshakeTimeoutError("Unable to get authorised by Spotify")
        finally:
            server.stop()
        return session

    def _cleanup_resources(self) -> None:
        logger = logging.getLogger(__name__)
        if self._start_time:
            duration = time.time() - self._start_time
            logger.info(f"CLI execution time: {duration:.2f}s")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the process exit code."""
        self._start_time = time.time()
        args = self.parser.parse_args(argv)
        logger = logging.getLogger(__name__)

        try:
            config = load_config(redirect_uri=args.redirect_url, handshake_timeout=args.timeout)
            self._setup_logging(args.log_level, config.debug)

            session = self._authenticate(config, args.refresh_token)
            workflow = SyncWorkflow(session, RedditFeed())
            result = workflow.run(
                self._parse_subreddits(args.subreddit),
                args.pages,
                playlist_id=args.playlist_id or None,
            )

            print(f"Added ({result.added}/{result.resolved}) tracks in the playlist.")
            return 0

        except KeyboardInterrupt:
            logger.warning("Operation cancelled by user")
            return 130
        except SyncError as e:
            print(str(e))
            return 1
        except Exception as e:
            logger.error(f"CLI error: {e}", exc_info=True)
            print(str(e))
            return 1
        finally:
            self._cleanup_resources()


def main():
    """Main entry point."""
    load_dotenv()
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()

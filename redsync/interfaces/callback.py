import logging
import threading
from typing import Optional

from flask import Flask, request
from werkzeug.serving import make_server

from redsync.crosscutting.config import RedirectTarget
from redsync.infrastructure.auth.session import CallbackOutcome, Session

_RESPONSES = {
    CallbackOutcome.COMPLETED: ("login process completed.", 200),
    CallbackOutcome.EXCHANGE_FAILED: ("Couldn't get token from Spotify", 403),
    CallbackOutcome.STATE_MISMATCH: ("404 page not found", 404),
    CallbackOutcome.NOT_AWAITING: ("404 page not found", 404),
}


def create_callback_app(session: Session, route: str = '/callback') -> Flask:
    """Flask app that completes the session's authorization handshake."""
    app = Flask(__name__)

    def oauth_callback():
        outcome = session.handle_callback(request.args.get('code'), request.args.get('state'))
        body, status = _RESPONSES[outcome]
        return body, status, {'Content-Type': 'text/plain; charset=utf-8'}

    app.add_url_rule(route, 'oauth_callback', oauth_callback, methods=['GET'])

    if route != '/':
        @app.route('/', methods=['GET'])
        def root():
            return "This server is for handling callback request from Spotify authentication."

    return app


class CallbackServer:
    """Serves the callback app on a daemon thread while the main flow waits."""

    def __init__(self, session: Session, target: RedirectTarget, bind_host: str = '0.0.0.0'):
        self.app = create_callback_app(session, target.route)
        self.target = target
        self.bind_host = bind_host
        self.logger = logging.getLogger(__name__)
        self._server = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self._server.server_port if self._server else self.target.port

    def start(self) -> None:
        self._server = make_server(self.bind_host, self.target.port, self.app, threaded=True)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        self.logger.info(f"Listening for Spotify callback on port {self.port} at {self.target.route}")

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None

import requests
from requests.adapters import HTTPAdapter
from requests.utils import DEFAULT_CA_BUNDLE_PATH
from urllib3.util.ssl_ import create_urllib3_context


class Http11Adapter(HTTPAdapter):
    """HTTPS adapter whose TLS handshake only offers ``http/1.1`` over ALPN.

    The accounts token endpoint fails handshakes that negotiate HTTP/2, so the
    refresh-token exchange never lets the server pick ``h2``.
    """

    def init_poolmanager(self, *args, **kwargs):
        context = create_urllib3_context()
        context.load_verify_locations(DEFAULT_CA_BUNDLE_PATH)
        context.set_alpn_protocols(['http/1.1'])
        kwargs['ssl_context'] = context
        return super().init_poolmanager(*args, **kwargs)


def http11_session() -> requests.Session:
    session = requests.Session()
    session.mount('https://', Http11Adapter())
    return session

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from redsync.domain.errors import DecodeError, NetworkError
from redsync.domain.ports import TitleSource

logger = logging.getLogger(__name__)

# The listing endpoint throttles or rejects non-browser agents.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 6.1) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/41.0.2228.0 Safari/537.36"
)


class RedditFeed(TitleSource):
    """Reads post titles from a subreddit's JSON listing."""

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 base_url: str = "https://www.reddit.com",
                 timeout: float = 15):
        self._session = session or requests.Session()
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout

    def _page_url(self, subreddit: str, last_id: Optional[str]) -> str:
        url = f"{self._base_url}/r/{subreddit}.json"
        if last_id:
            url += f"?after=t3_{last_id}"
        return url

    def _get_json(self, url: str) -> Any:
        logger.debug(f"making a new request at URL: {url}")
        try:
            response = self._session.get(
                url,
                headers={'User-Agent': BROWSER_USER_AGENT},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.debug(f"error occurred while making http request: {e}")
            raise NetworkError(f"Failed to fetch {url}: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            logger.debug(f"error occurred while decoding json payload: {e}")
            raise DecodeError(f"Invalid JSON payload from {url}: {e}") from e

    def _parse_listing(self, payload: Any, url: str) -> List[Tuple[str, str]]:
        """Extract (title, id) pairs from a listing payload."""
        try:
            children = payload['data']['children']
            posts = []
            for child in children:
                data: Dict[str, Any] = child['data']
                posts.append((str(data['title']), str(data['id'])))
            return posts
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Unexpected listing payload from {url}: missing {e}") from e

    def fetch(self, subreddit: str, max_pages: int) -> List[str]:
        """Return titles from up to ``max_pages`` listing pages, in feed order.

        Paging follows the id of the last post on each page and stops early
        when a page comes back empty.

        Raises:
            NetworkError: on transport failures or non-2xx statuses
            DecodeError: on a body that is not a listing
        """
        titles: List[str] = []
        last_id: Optional[str] = None

        for cursor in range(max_pages):
            logger.debug(f"fetching subreddit:{subreddit} ({cursor}/{max_pages})")
            url = self._page_url(subreddit, last_id)
            posts = self._parse_listing(self._get_json(url), url)
            if not posts:
                logger.debug(f"subreddit {subreddit} has no more posts")
                break

            titles.extend(title for title, _ in posts)
            last_id = posts[-1][1]
            logger.debug(f"nodes appended to list ({len(titles)}): {len(posts)}")

        logger.info(f"Fetched {len(titles)} titles from /r/{subreddit}")
        return titles

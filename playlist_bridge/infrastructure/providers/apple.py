import html
import logging
import re
from typing import Optional

import requests

from playlist_bridge.crosscutting.config import ConverterConfig
from playlist_bridge.domain.entities import NOT_FOUND, PlaylistDescriptor, ProviderId, SearchResult
from playlist_bridge.domain.errors import ExtractionError

logger = logging.getLogger(__name__)

ITUNES_SEARCH_URL = 'https://itunes.apple.com/search'
BROWSER_USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                      '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36')
DEFAULT_PLAYLIST_NAME = 'Apple Music Playlist'

_TITLE_PATTERN = re.compile(r'<title>([^<]+)</title>', re.IGNORECASE)


class AppleMusicExtractor:
    """Reads the name of a public Apple Music playlist.

    Apple Music pages render their track list client-side, so only the
    playlist name is available without an Apple developer token. Playlists
    extracted here always come back with no tracks.
    """

    enumerates_tracks = False

    def __init__(self, config: ConverterConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def extract(self, url: str) -> PlaylistDescriptor:
        try:
            response = self.session.get(url, headers={'User-Agent': BROWSER_USER_AGENT},
                                        timeout=self.config.request_timeout_seconds)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch Apple Music page {url}: {e}")
            raise ExtractionError()

        logger.warning("Apple Music track listing is not supported; playlist will have no tracks")
        return PlaylistDescriptor(
            name=self._playlist_name(response.text),
            source_provider=ProviderId.APPLE,
            tracks=(),
        )

    @staticmethod
    def _playlist_name(page: str) -> str:
        match = _TITLE_PATTERN.search(page or '')
        if not match:
            return DEFAULT_PLAYLIST_NAME
        name = html.unescape(match.group(1)).split(' - ')[0].strip()
        return name or DEFAULT_PLAYLIST_NAME


class AppleMusicSearcher:
    """Looks tracks up through the public iTunes Search API."""

    def __init__(self, config: ConverterConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def search(self, query: str) -> SearchResult:
        params = {'term': query, 'media': 'music', 'entity': 'song', 'limit': 1}
        try:
            response = self.session.get(ITUNES_SEARCH_URL, params=params,
                                        timeout=self.config.request_timeout_seconds)
            response.raise_for_status()
            results = response.json().get('results') or []
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"iTunes search failed for '{query}': {e}")
            return NOT_FOUND

        if not results or results[0].get('trackId') is None:
            return NOT_FOUND
        return SearchResult(found=True, platform_track_id=str(results[0]['trackId']))

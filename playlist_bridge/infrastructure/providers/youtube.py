import logging
import random
import string
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from playlist_bridge.application.credentials import CredentialManager
from playlist_bridge.crosscutting.config import YOUTUBE_SCOPE, ConverterConfig
from playlist_bridge.domain.entities import (
    NOT_FOUND, PlaylistDescriptor, PlaylistSummary, ProviderId, SearchResult, TokenGrant, Track,
)
from playlist_bridge.domain.errors import (
    ConversionError, CredentialError, ExtractionError, ProviderApiDisabledError,
    ProviderQuotaError, ProviderRequestError, TemporaryFailure,
)
from playlist_bridge.domain.normalization import normalize_title
from playlist_bridge.domain.platforms import parse_youtube_playlist_id
from playlist_bridge.domain.ports import ConversionObserver

logger = logging.getLogger(__name__)

API_BASE_URL = 'https://www.googleapis.com/youtube/v3'
TOKEN_URL = 'https://oauth2.googleapis.com/token'
MUSIC_CATEGORY_ID = '10'
PAGE_SIZE = 50
MOCK_MATCH_THRESHOLD = 0.2

_UNAVAILABLE_TITLES = {'Deleted video', 'Private video'}
_QUOTA_REASONS = {'quotaExceeded', 'rateLimitExceeded', 'dailyLimitExceeded'}


def playlist_url(playlist_id: str) -> str:
    return f"https://music.youtube.com/playlist?list={playlist_id}"


class YouTubeDataClient:
    """Thin wrapper over the YouTube Data API v3 REST endpoints.

    Public reads are keyed with the API key; user calls carry a bearer token.
    Provider error payloads are translated into domain errors and never
    passed on verbatim.
    """

    def __init__(self, config: ConverterConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def get(self, resource: str, params: Dict[str, Any],
            access_token: Optional[str] = None) -> Dict[str, Any]:
        return self._request('GET', resource, params, access_token=access_token)

    def post(self, resource: str, params: Dict[str, Any], body: Dict[str, Any],
             access_token: str) -> Dict[str, Any]:
        return self._request('POST', resource, params, body=body, access_token=access_token)

    def _request(self, method: str, resource: str, params: Dict[str, Any],
                 body: Optional[Dict[str, Any]] = None,
                 access_token: Optional[str] = None) -> Dict[str, Any]:
        params = dict(params)
        headers = {'Accept': 'application/json'}
        if access_token:
            headers['Authorization'] = f'Bearer {access_token}'
        else:
            params['key'] = self.config.youtube_api_key

        try:
            response = self.session.request(
                method, f"{API_BASE_URL}/{resource}",
                params=params, json=body, headers=headers,
                timeout=self.config.request_timeout_seconds,
            )
        except requests.RequestException as e:
            raise TemporaryFailure(f"YouTube {resource} request failed: {e}")

        if response.status_code >= 400:
            raise self._error_for(resource, response)

        try:
            return response.json() if response.content else {}
        except ValueError:
            raise TemporaryFailure(f"YouTube {resource} returned malformed JSON")

    @staticmethod
    def _error_reason(response: requests.Response) -> Optional[str]:
        try:
            errors = response.json()['error']['errors']
            return errors[0].get('reason')
        except (ValueError, KeyError, IndexError, TypeError):
            return None

    def _error_for(self, resource: str, response: requests.Response) -> ConversionError:
        status = response.status_code
        reason = self._error_reason(response)
        logger.warning(f"YouTube {resource} returned {status} ({reason or 'no reason'})")

        if status in (403, 429) and (reason in _QUOTA_REASONS or status == 429):
            return ProviderQuotaError("YouTube API quota exceeded. Please try again later.")
        if reason == 'accessNotConfigured':
            return ProviderApiDisabledError(
                "YouTube Data API v3 is not enabled for this Google Cloud project.")
        return ProviderRequestError("YouTube API request failed", code='PROVIDER_ERROR',
                                    status_code=status)


class YouTubeExtractor:
    """Reads YouTube / YouTube Music playlists with the API key."""

    def __init__(self, config: ConverterConfig, api: Optional[YouTubeDataClient] = None):
        self.config = config
        self.api = api or YouTubeDataClient(config)

    def extract(self, url: str) -> PlaylistDescriptor:
        """Extract playlist metadata and every playable item.

        Deleted and private videos are dropped. Video titles are split into
        artist and track name on a best-effort basis.

        Raises:
            ExtractionError: Invalid URL, unknown playlist or failed metadata fetch
            ProviderQuotaError: Quota exhausted before the metadata could be read
            ProviderApiDisabledError: The Data API is not enabled for the project
        """
        playlist_id = parse_youtube_playlist_id(url)
        if not playlist_id:
            raise ExtractionError("Invalid YouTube playlist URL")

        try:
            data = self.api.get('playlists', {'part': 'snippet', 'id': playlist_id})
        except (ProviderQuotaError, ProviderApiDisabledError):
            raise
        except (ConversionError, TemporaryFailure) as e:
            logger.error(f"Failed to fetch YouTube playlist {playlist_id}: {e}")
            raise ExtractionError()

        items = data.get('items') or []
        if not items:
            raise ExtractionError("YouTube playlist not found")
        snippet = items[0].get('snippet') or {}

        tracks = self._list_tracks(playlist_id)

        return PlaylistDescriptor(
            name=snippet.get('title') or 'YouTube Playlist',
            source_provider=ProviderId.YOUTUBE,
            tracks=tuple(tracks),
            cover_image_url=((snippet.get('thumbnails') or {}).get('medium') or {}).get('url'),
        )

    def _list_tracks(self, playlist_id: str) -> List[Track]:
        tracks: List[Track] = []
        page_token = None

        while True:
            params = {'part': 'snippet', 'playlistId': playlist_id, 'maxResults': PAGE_SIZE}
            if page_token:
                params['pageToken'] = page_token
            try:
                page = self.api.get('playlistItems', params)
            except (ConversionError, TemporaryFailure) as e:
                # Keep what was read so far
                logger.warning(f"Stopped reading YouTube playlist {playlist_id} "
                               f"after {len(tracks)} tracks: {e}")
                break

            for item in page.get('items') or []:
                title = (item.get('snippet') or {}).get('title')
                if not title or title in _UNAVAILABLE_TITLES:
                    continue
                parsed = normalize_title(title)
                tracks.append(Track(name=parsed.name, artist=parsed.artist))

            page_token = page.get('nextPageToken')
            if not page_token:
                break

        return tracks


class YouTubeSearcher:
    """Finds the first music video for a query.

    In mock mode no request is made: outcomes come from a seeded
    ``random.Random`` (about 80% found) with fake video ids.
    """

    def __init__(self,
                 config: ConverterConfig,
                 observer: Optional[ConversionObserver] = None,
                 api: Optional[YouTubeDataClient] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self.observer = observer
        self.api = api or YouTubeDataClient(config)
        self.rng = rng or random.Random(config.youtube_mock_seed)

    def search(self, query: str) -> SearchResult:
        if self.config.youtube_mock_mode:
            return self._mock_search(query)

        try:
            data = self.api.get('search', {
                'part': 'snippet',
                'q': query,
                'type': 'video',
                'videoCategoryId': MUSIC_CATEGORY_ID,
                'maxResults': 1,
            })
        except ProviderQuotaError:
            logger.warning(f"YouTube quota exceeded while searching '{query}'")
            if self.observer:
                self.observer.emit('quota_exceeded', level='WARNING',
                                   provider=ProviderId.YOUTUBE.value, operation='search')
            return NOT_FOUND
        except Exception as e:
            logger.warning(f"YouTube search failed for '{query}': {e}")
            return NOT_FOUND

        items = data.get('items') or []
        video_id = (items[0].get('id') or {}).get('videoId') if items else None
        if not video_id:
            return NOT_FOUND
        return SearchResult(found=True, platform_track_id=video_id)

    def _mock_search(self, query: str) -> SearchResult:
        if self.rng.random() <= MOCK_MATCH_THRESHOLD:
            logger.debug(f"[mock] no match for '{query}'")
            return NOT_FOUND
        suffix = ''.join(self.rng.choice(string.ascii_lowercase + string.digits) for _ in range(9))
        return SearchResult(found=True, platform_track_id=f"mock_video_{suffix}")


class YouTubePlaylistCreator:
    """Creates a private playlist in the user's YouTube account."""

    def __init__(self,
                 credentials: CredentialManager,
                 config: ConverterConfig,
                 observer: Optional[ConversionObserver] = None,
                 api: Optional[YouTubeDataClient] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.credentials = credentials
        self.config = config
        self.observer = observer
        self.api = api or YouTubeDataClient(config)
        self.sleep = sleep

    def create(self, name: str, tracks: Sequence[Track], user_id: str) -> Optional[str]:
        """Create "<name> (Converted)" and add matched videos one by one.

        If the quota runs out while adding, the partially filled playlist's
        URL is still returned.
        """
        try:
            token = self.credentials.get_access_token(user_id, ProviderId.YOUTUBE,
                                                      required_scope=YOUTUBE_SCOPE)
        except CredentialError as e:
            logger.warning(f"Cannot create YouTube playlist for user {user_id}: {e.message}")
            return None

        try:
            playlist = self.api.post('playlists', {'part': 'snippet,status'}, {
                'snippet': {
                    'title': f"{name} (Converted)",
                    'description': 'Converted playlist',
                },
                'status': {'privacyStatus': 'private'},
            }, access_token=token)
        except ProviderQuotaError:
            self._quota_exceeded('create_playlist')
            return None
        except Exception as e:
            logger.error(f"Failed to create YouTube playlist: {e}")
            return None

        playlist_id = playlist.get('id')
        if not playlist_id:
            logger.error("YouTube playlist creation returned no id")
            return None

        video_ids = [t.platform_track_id for t in tracks if t.platform_track_id]
        added = 0
        for index, video_id in enumerate(video_ids):
            if index > 0 and self.config.youtube_add_delay_seconds > 0:
                self.sleep(self.config.youtube_add_delay_seconds)
            try:
                self.api.post('playlistItems', {'part': 'snippet'}, {
                    'snippet': {
                        'playlistId': playlist_id,
                        'resourceId': {'kind': 'youtube#video', 'videoId': video_id},
                    },
                }, access_token=token)
                added += 1
            except ProviderQuotaError:
                self._quota_exceeded('add_item', added=added, remaining=len(video_ids) - index)
                break
            except Exception as e:
                logger.warning(f"Failed to add video {video_id} to playlist {playlist_id}: {e}")

        logger.info(f"Added {added}/{len(video_ids)} videos to YouTube playlist {playlist_id}")
        return playlist_url(playlist_id)

    def _quota_exceeded(self, operation: str, **fields: Any) -> None:
        logger.warning(f"YouTube quota exceeded during {operation}")
        if self.observer:
            self.observer.emit('quota_exceeded', level='WARNING',
                               provider=ProviderId.YOUTUBE.value, operation=operation, **fields)


class YouTubePlaylistLister:
    """Lists the playlists on the user's own YouTube channel."""

    def __init__(self, config: ConverterConfig, api: Optional[YouTubeDataClient] = None):
        self.config = config
        self.api = api or YouTubeDataClient(config)

    def list_playlists(self, access_token: str) -> List[PlaylistSummary]:
        try:
            data = self.api.get('playlists', {
                'part': 'snippet,contentDetails',
                'mine': 'true',
                'maxResults': PAGE_SIZE,
            }, access_token=access_token)
        except TemporaryFailure as e:
            logger.error(f"Failed to list YouTube playlists: {e}")
            raise ProviderRequestError("Failed to fetch YouTube playlists", code='PROVIDER_ERROR')

        playlists = []
        for item in data.get('items') or []:
            snippet = item.get('snippet') or {}
            thumbnails = snippet.get('thumbnails') or {}
            playlists.append(PlaylistSummary(
                id=item['id'],
                name=snippet.get('title') or '',
                track_count=(item.get('contentDetails') or {}).get('itemCount', 0),
                image=(thumbnails.get('medium') or {}).get('url'),
                external_url=playlist_url(item['id']),
            ))
        return playlists


class GoogleTokenRefresher:
    """Refreshes Google OAuth tokens at the token endpoint."""

    def __init__(self, config: ConverterConfig):
        self.config = config

    def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token.

        Raises:
            TemporaryFailure: Transport error, non-2xx status or malformed payload
        """
        logger.info("Refreshing Google access token...")
        try:
            response = requests.post(TOKEN_URL, data={
                'client_id': self.config.google_client_id,
                'client_secret': self.config.google_client_secret,
                'refresh_token': refresh_token,
                'grant_type': 'refresh_token',
            }, timeout=self.config.request_timeout_seconds)
        except requests.RequestException as e:
            raise TemporaryFailure(f"Google token request failed: {e}")

        if not response.ok:
            raise TemporaryFailure(f"Google token refresh failed with status {response.status_code}")

        try:
            payload = response.json()
            return TokenGrant(
                access_token=payload['access_token'],
                expires_in=int(payload.get('expires_in', 3600)),
                refresh_token=payload.get('refresh_token'),
                scope=payload.get('scope'),
            )
        except (ValueError, KeyError, TypeError) as e:
            raise TemporaryFailure(f"Malformed Google token response: {e}")

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth

from playlist_bridge.application.credentials import CredentialManager
from playlist_bridge.crosscutting.config import ConverterConfig
from playlist_bridge.domain.entities import (
    NOT_FOUND, UNKNOWN_ARTIST, PlaylistDescriptor, PlaylistSummary, ProviderId,
    SearchResult, TokenGrant, Track,
)
from playlist_bridge.domain.errors import (
    CredentialError, ExtractionError, ProviderQuotaError, ProviderRequestError, TemporaryFailure,
)
from playlist_bridge.domain.platforms import parse_spotify_playlist_id

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
MAX_TRACKS_PER_ADD = 100
OAUTH_SCOPE = 'playlist-read-private playlist-modify-public playlist-modify-private'


def create_service_client(config: ConverterConfig) -> spotipy.Spotify:
    """Spotify client authenticated as the application (client credentials).

    Tokens are cached in memory only; nothing is written to disk.
    """
    auth_manager = SpotifyClientCredentials(
        client_id=config.spotify_client_id,
        client_secret=config.spotify_client_secret,
        cache_handler=MemoryCacheHandler(),
        requests_timeout=config.request_timeout_seconds,
    )
    return spotipy.Spotify(auth_manager=auth_manager,
                           requests_timeout=config.request_timeout_seconds,
                           retries=0, status_retries=0)


def create_user_client(access_token: str, config: ConverterConfig) -> spotipy.Spotify:
    """Spotify client acting on behalf of a user.

    spotipy's own retries are turned off: every call is a single request and
    throttling is left to the matching delay.
    """
    return spotipy.Spotify(auth=access_token, requests_timeout=config.request_timeout_seconds,
                           retries=0, status_retries=0)


class _ServiceClientMixin:
    """Lazily builds the client-credentials client unless one is injected."""

    config: ConverterConfig
    _client: Optional[spotipy.Spotify]

    @property
    def client(self) -> spotipy.Spotify:
        if self._client is None:
            self._client = create_service_client(self.config)
        return self._client


class SpotifyExtractor(_ServiceClientMixin):
    """Reads public Spotify playlists with the application's own credentials."""

    def __init__(self, config: ConverterConfig, client: Optional[spotipy.Spotify] = None):
        self.config = config
        self._client = client

    def _spotify_track_to_domain(self, spotify_track: Optional[Dict[str, Any]]) -> Optional[Track]:
        """Convert a Spotify track object to a domain Track.

        Returns None for removed tracks (null) and nameless entries.
        """
        if not spotify_track or not spotify_track.get('name'):
            return None

        artists = spotify_track.get('artists') or []
        artist = artists[0].get('name') if artists and artists[0].get('name') else UNKNOWN_ARTIST

        duration_ms = spotify_track.get('duration_ms')
        return Track(
            name=spotify_track['name'],
            artist=artist,
            duration_seconds=duration_ms // 1000 if duration_ms is not None else None,
        )

    def extract(self, url: str) -> PlaylistDescriptor:
        """Extract a playlist and all of its tracks.

        Args:
            url: open.spotify.com playlist URL

        Returns:
            PlaylistDescriptor with tracks in playlist order

        Raises:
            ExtractionError: Invalid URL or the playlist metadata can't be fetched
            ProviderQuotaError: Spotify rate limited the metadata request
        """
        playlist_id = parse_spotify_playlist_id(url)
        if not playlist_id:
            raise ExtractionError("Invalid Spotify playlist URL")

        try:
            metadata = self.client.playlist(playlist_id, fields='name,images')
        except SpotifyException as e:
            logger.error(f"Failed to fetch Spotify playlist {playlist_id}: {e}")
            if e.http_status == 429:
                raise ProviderQuotaError("Spotify rate limit reached. Please try again later.")
            raise ExtractionError()
        except Exception as e:
            logger.error(f"Failed to fetch Spotify playlist {playlist_id}: {e}")
            raise ExtractionError()

        images = metadata.get('images') or []
        tracks: List[Track] = []

        try:
            page = self.client.playlist_items(playlist_id, limit=PAGE_SIZE)
            while page:
                for item in page.get('items') or []:
                    track = self._spotify_track_to_domain(item.get('track'))
                    if track:
                        tracks.append(track)
                page = self.client.next(page) if page.get('next') else None
        except Exception as e:
            # Keep what was read so far
            logger.warning(f"Stopped reading Spotify playlist {playlist_id} "
                           f"after {len(tracks)} tracks: {e}")

        return PlaylistDescriptor(
            name=metadata.get('name') or 'Spotify Playlist',
            source_provider=ProviderId.SPOTIFY,
            tracks=tuple(tracks),
            cover_image_url=images[0].get('url') if images else None,
        )


class SpotifySearcher(_ServiceClientMixin):
    """Finds the first Spotify catalog track for a query."""

    def __init__(self, config: ConverterConfig, client: Optional[spotipy.Spotify] = None):
        self.config = config
        self._client = client

    def search(self, query: str) -> SearchResult:
        try:
            results = self.client.search(q=query, type='track', limit=1)
        except Exception as e:
            logger.warning(f"Spotify search failed for '{query}': {e}")
            return NOT_FOUND

        items = (results or {}).get('tracks', {}).get('items') or []
        if not items or not items[0].get('id'):
            return NOT_FOUND
        return SearchResult(found=True, platform_track_id=items[0]['id'])


class SpotifyPlaylistCreator:
    """Creates a private playlist in the user's Spotify account."""

    def __init__(self,
                 credentials: CredentialManager,
                 config: ConverterConfig,
                 client_factory: Optional[Callable[[str], spotipy.Spotify]] = None):
        self.credentials = credentials
        self.config = config
        self.client_factory = client_factory or (lambda token: create_user_client(token, config))

    def create(self, name: str, tracks: Sequence[Track], user_id: str) -> Optional[str]:
        """Create "<name> (Converted)" and add up to 100 matched tracks.

        Returns:
            The playlist's open.spotify.com URL, or None if it couldn't be created
        """
        try:
            token = self.credentials.get_access_token(user_id, ProviderId.SPOTIFY)
        except CredentialError as e:
            logger.warning(f"Cannot create Spotify playlist for user {user_id}: {e.message}")
            return None

        client = self.client_factory(token)
        try:
            spotify_user = client.current_user()
            playlist = client.user_playlist_create(
                spotify_user['id'],
                f"{name} (Converted)",
                public=False,
                description='Converted playlist',
            )
        except Exception as e:
            logger.error(f"Failed to create Spotify playlist: {e}")
            return None

        uris = [f"spotify:track:{t.platform_track_id}" for t in tracks if t.platform_track_id]
        if len(uris) > MAX_TRACKS_PER_ADD:
            logger.info(f"Adding first {MAX_TRACKS_PER_ADD} of {len(uris)} tracks")
            uris = uris[:MAX_TRACKS_PER_ADD]

        if uris:
            try:
                client.playlist_add_items(playlist['id'], uris)
            except Exception as e:
                logger.error(f"Failed to add tracks to Spotify playlist {playlist['id']}: {e}")

        return playlist.get('external_urls', {}).get('spotify')


class SpotifyPlaylistLister:
    """Lists the playlists in a user's Spotify library."""

    def __init__(self,
                 config: ConverterConfig,
                 client_factory: Optional[Callable[[str], spotipy.Spotify]] = None):
        self.config = config
        self.client_factory = client_factory or (lambda token: create_user_client(token, config))

    def list_playlists(self, access_token: str) -> List[PlaylistSummary]:
        client = self.client_factory(access_token)
        playlists = []
        try:
            page = client.current_user_playlists(limit=PAGE_SIZE)
            while page:
                for item in page.get('items') or []:
                    if not item:
                        continue
                    images = item.get('images') or []
                    playlists.append(PlaylistSummary(
                        id=item['id'],
                        name=item.get('name') or '',
                        track_count=(item.get('tracks') or {}).get('total', 0),
                        image=images[0].get('url') if images else None,
                        external_url=(item.get('external_urls') or {}).get('spotify'),
                    ))
                page = client.next(page) if page.get('next') else None
        except SpotifyException as e:
            logger.error(f"Failed to list Spotify playlists: {e}")
            if e.http_status == 429:
                raise ProviderQuotaError("Spotify rate limit reached. Please try again later.")
            raise ProviderRequestError("Failed to fetch Spotify playlists",
                                       code='PROVIDER_ERROR',
                                       status_code=e.http_status or 502)
        return playlists


class SpotifyTokenRefresher:
    """Refreshes Spotify user tokens through spotipy's OAuth manager."""

    def __init__(self, config: ConverterConfig, oauth: Optional[SpotifyOAuth] = None):
        self.config = config
        self._oauth = oauth

    @property
    def oauth(self) -> SpotifyOAuth:
        if self._oauth is None:
            self._oauth = SpotifyOAuth(
                client_id=self.config.spotify_client_id,
                client_secret=self.config.spotify_client_secret,
                redirect_uri=self.config.spotify_redirect_uri,
                scope=OAUTH_SCOPE,
                cache_handler=MemoryCacheHandler(),
                requests_timeout=self.config.request_timeout_seconds,
                open_browser=False,
            )
        return self._oauth

    def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token for a new access token.

        Raises:
            TemporaryFailure: The token endpoint returned no access token
            SpotifyOauthError: Spotify rejected the refresh token
        """
        logger.info("Refreshing Spotify access token...")
        token_info = self.oauth.refresh_access_token(refresh_token)

        if not token_info or not token_info.get('access_token'):
            raise TemporaryFailure("Spotify token refresh returned no access token")

        return TokenGrant(
            access_token=token_info['access_token'],
            expires_in=int(token_info.get('expires_in', 3600)),
            refresh_token=token_info.get('refresh_token'),
            scope=token_info.get('scope'),
        )

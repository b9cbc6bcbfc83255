import pytest

from playlist_bridge.domain.entities import ProviderId
from playlist_bridge.domain.platforms import (
    detect_platform, parse_spotify_playlist_id, parse_youtube_playlist_id,
)


class TestDetectPlatform:
    """Tests for playlist URL classification."""

    @pytest.mark.parametrize("url, expected", [
        ("https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M", ProviderId.SPOTIFY),
        ("https://music.youtube.com/playlist?list=OLAK5uy_abc", ProviderId.YOUTUBE),
        ("https://www.youtube.com/playlist?list=PL123", ProviderId.YOUTUBE),
        ("https://music.apple.com/us/playlist/chill/pl.u-abc", ProviderId.APPLE),
    ])
    def test_supported_urls(self, url, expected):
        assert detect_platform(url) == expected

    @pytest.mark.parametrize("url", [
        "https://open.spotify.com/album/4aawyAB9vmqN3uQ7FjRGTy",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PL123",
        "https://example.com/playlist/1",
        "",
        None,
    ])
    def test_unsupported_urls(self, url):
        assert detect_platform(url) is None

    def test_markers_are_case_sensitive(self):
        assert detect_platform("https://OPEN.SPOTIFY.COM/PLAYLIST/abc") is None


class TestPlaylistIdParsing:
    """Tests for extracting provider playlist ids from URLs."""

    def test_spotify_id_ignores_query(self):
        url = "https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M?si=abc123"
        assert parse_spotify_playlist_id(url) == "37i9dQZF1DXcBWIGoYBM5M"

    def test_spotify_id_missing(self):
        assert parse_spotify_playlist_id("https://open.spotify.com/playlist/") is None

    def test_youtube_id_from_first_param(self):
        url = "https://music.youtube.com/playlist?list=PLabc_123-x"
        assert parse_youtube_playlist_id(url) == "PLabc_123-x"

    def test_youtube_id_stops_at_next_param(self):
        url = "https://www.youtube.com/playlist?feature=share&list=PL999&si=zzz"
        assert parse_youtube_playlist_id(url) == "PL999"

    def test_youtube_id_missing(self):
        assert parse_youtube_playlist_id("https://www.youtube.com/playlist") is None

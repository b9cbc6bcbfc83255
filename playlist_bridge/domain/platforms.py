from __future__ import annotations

import re
from typing import Optional

from .entities import ProviderId


_PLATFORM_MARKERS = (
    (ProviderId.SPOTIFY, ("open.spotify.com/playlist/",)),
    (ProviderId.YOUTUBE, ("music.youtube.com/playlist", "youtube.com/playlist")),
    (ProviderId.APPLE, ("music.apple.com/",)),
)

_SPOTIFY_PLAYLIST_ID = re.compile(r"playlist/([a-zA-Z0-9]+)")
_YOUTUBE_PLAYLIST_ID = re.compile(r"[?&]list=([^&]+)")


def detect_platform(url: Optional[str]) -> Optional[ProviderId]:
    """Classify a playlist URL by its provider's path markers (case-sensitive)."""
    if not url:
        return None
    for provider, markers in _PLATFORM_MARKERS:
        if any(marker in url for marker in markers):
            return provider
    return None


def parse_spotify_playlist_id(url: str) -> Optional[str]:
    match = _SPOTIFY_PLAYLIST_ID.search(url or "")
    return match.group(1) if match else None


def parse_youtube_playlist_id(url: str) -> Optional[str]:
    match = _YOUTUBE_PLAYLIST_ID.search(url or "")
    return match.group(1) if match else None

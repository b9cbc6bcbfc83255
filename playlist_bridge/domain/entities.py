from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


UNKNOWN_ARTIST = "unknown"


class ProviderId(str, Enum):
    """Streaming platforms a playlist can be read from or written to."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"
    APPLE = "apple"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ProviderId"]:
        """Return the matching provider, or None for anything unrecognized."""
        if isinstance(value, ProviderId):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def account_name(self) -> str:
        """Name of the OAuth account this provider authenticates through."""
        return _ACCOUNT_NAMES[self]


_ACCOUNT_NAMES = {
    ProviderId.SPOTIFY: "SPOTIFY",
    ProviderId.YOUTUBE: "GOOGLE",
    ProviderId.APPLE: "APPLE",
}


class Availability(str, Enum):
    """Outcome of searching the destination catalog for a track."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PARTIAL = "partial"


@dataclass(frozen=True)
class Track:
    """A playlist entry, identified by its position in the source playlist.

    Extractors fill in name/artist/duration; matching produces a copy with
    availability and the destination's track id via ``with_match``.
    """

    name: str
    artist: str = UNKNOWN_ARTIST
    duration_seconds: Optional[int] = None
    availability: Optional[Availability] = None
    platform_track_id: Optional[str] = None

    def with_match(self, found: bool, platform_track_id: Optional[str] = None) -> "Track":
        availability = Availability.AVAILABLE if found else Availability.UNAVAILABLE
        return replace(
            self,
            availability=availability,
            platform_track_id=platform_track_id if found else None,
        )

    @property
    def is_available(self) -> bool:
        return self.availability == Availability.AVAILABLE

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "artist": self.artist,
            "durationSeconds": self.duration_seconds,
            "availability": self.availability.value if self.availability else None,
            "platformTrackId": self.platform_track_id,
        }


@dataclass(frozen=True)
class PlaylistDescriptor:
    """Provider-agnostic description of an extracted playlist."""

    name: str
    source_provider: ProviderId
    tracks: Tuple[Track, ...] = ()
    cover_image_url: Optional[str] = None

    @property
    def track_count(self) -> int:
        # Realized count after pagination, not what the provider advertises.
        return len(self.tracks)


@dataclass(frozen=True)
class Credential:
    """Stored OAuth credential for one user on one provider."""

    user_id: str
    provider: ProviderId
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    scope: Optional[str] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def has_scope(self, scope: str) -> bool:
        """Check the granted scope string for a named scope.

        Google stores scopes as full URLs, so the short name
        (``youtube`` for ``https://www.googleapis.com/auth/youtube``) is
        accepted as well.
        """
        if not self.scope:
            return False
        granted = self.scope.split()
        short_name = scope.rstrip("/").rsplit("/", 1)[-1]
        return any(
            item == scope or item.rstrip("/").rsplit("/", 1)[-1] == short_name
            for item in granted
        )


@dataclass(frozen=True)
class TokenGrant:
    """Payload returned by a provider token endpoint on refresh."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None


@dataclass(frozen=True)
class SearchResult:
    """Outcome of a single destination catalog search."""

    found: bool
    platform_track_id: Optional[str] = None


NOT_FOUND = SearchResult(found=False)


@dataclass(frozen=True)
class ConversionRequest:
    url: str
    target_platform: str
    create_playlist: bool = False
    user_id: Optional[str] = None


@dataclass(frozen=True)
class ConversionResult:
    """Terminal output of one conversion."""

    original_playlist: PlaylistDescriptor
    tracks: List[Track] = field(default_factory=list)
    target_platform: ProviderId = ProviderId.SPOTIFY
    match_rate: float = 0.0
    created_playlist_url: Optional[str] = None

    @property
    def available_count(self) -> int:
        return sum(1 for t in self.tracks if t.is_available)

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the wire shape returned by the HTTP and CLI interfaces."""
        original = self.original_playlist
        return {
            "originalPlaylist": {
                "name": original.name,
                "platform": original.source_provider.value,
                "trackCount": original.track_count,
                "image": original.cover_image_url,
            },
            "tracks": [t.to_json() for t in self.tracks],
            "targetPlatform": self.target_platform.value,
            "matchRate": self.match_rate,
            "createdPlaylistUrl": self.created_playlist_url,
        }


@dataclass(frozen=True)
class PlaylistSummary:
    """A playlist owned by the caller, as returned by listing endpoints."""

    id: str
    name: str
    track_count: int = 0
    image: Optional[str] = None
    external_url: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tracks": self.track_count,
            "image": self.image,
            "externalUrl": self.external_url,
        }

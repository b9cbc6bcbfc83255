from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence

from .entities import (
    Credential, PlaylistDescriptor, PlaylistSummary, ProviderId, SearchResult,
    TokenGrant, Track,
)


class PlaylistExtractor(Protocol):
    """Reads a playlist and its ordered tracks from the source provider."""

    def extract(self, url: str) -> PlaylistDescriptor:
        """Return the playlist, raising ExtractionError if it can't be read at all."""


class TrackSearcher(Protocol):
    """Searches a destination provider's catalog."""

    def search(self, query: str) -> SearchResult:
        """Return found/not-found for the first result. Never raises for a single query."""


class PlaylistCreator(Protocol):
    """Creates and fills a playlist on the destination provider."""

    def create(self, name: str, tracks: Sequence[Track], user_id: str) -> Optional[str]:
        """Return the new playlist URL, or None when creation was not possible."""


class PlaylistLister(Protocol):
    def list_playlists(self, access_token: str) -> List[PlaylistSummary]:
        """Return the playlists owned by the token's user."""


class TokenRefresher(Protocol):
    def refresh(self, refresh_token: str) -> TokenGrant:
        """Exchange a refresh token at the provider's token endpoint."""


class CredentialStore(Protocol):
    """Keyed access to per-user, per-provider OAuth credentials."""

    def get(self, user_id: str, provider: ProviderId) -> Optional[Credential]:
        """Return the stored credential or None when the account isn't linked."""

    def update(self, user_id: str, provider: ProviderId, **fields: Any) -> Credential:
        """Overwrite refresh-derived fields and return the updated credential."""


class ConversionObserver(Protocol):
    """Receives structured, leveled pipeline events."""

    def emit(self, event: str, level: str = "INFO", **fields: Any) -> None:
        """Record an event such as ``extraction_completed`` with its fields."""

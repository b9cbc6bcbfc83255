import logging
from typing import Dict, List, Optional

from playlist_bridge.application.credentials import CredentialManager
from playlist_bridge.domain.entities import PlaylistSummary, ProviderId
from playlist_bridge.domain.errors import InputError
from playlist_bridge.domain.ports import PlaylistLister


logger = logging.getLogger(__name__)


class PlaylistListingService:
    """Lists the caller's own playlists on a linked provider."""

    def __init__(self,
                 credentials: CredentialManager,
                 listers: Dict[ProviderId, PlaylistLister],
                 required_scopes: Optional[Dict[ProviderId, str]] = None):
        self.credentials = credentials
        self.listers = listers
        self.required_scopes = required_scopes or {}

    def list_playlists(self, user_id: str, provider: str) -> List[PlaylistSummary]:
        """Return the caller's playlists.

        Raises:
            InputError: Unknown provider or one without listing support
            CredentialError: The account isn't linked or its token is unusable
            ProviderQuotaError, ProviderApiDisabledError, ProviderRequestError:
                The provider rejected the listing call
        """
        provider_id = ProviderId.parse(provider)
        lister = self.listers.get(provider_id) if provider_id else None
        if lister is None:
            raise InputError(f"Listing playlists is not supported for {provider}",
                             code='UNSUPPORTED_PROVIDER')

        token = self.credentials.get_access_token(
            user_id, provider_id, required_scope=self.required_scopes.get(provider_id))
        playlists = lister.list_playlists(token)
        logger.info(f"Listed {len(playlists)} {provider_id.value} playlists for user {user_id}")
        return playlists

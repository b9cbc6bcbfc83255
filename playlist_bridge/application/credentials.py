import logging
import time
from typing import Callable, Dict, Optional

from playlist_bridge.domain.entities import Credential, ProviderId
from playlist_bridge.domain.errors import CredentialError, CredentialErrorKind
from playlist_bridge.domain.ports import ConversionObserver, CredentialStore, TokenRefresher


logger = logging.getLogger(__name__)


class CredentialManager:
    """Resolves a usable access token for a user on a provider.

    Expiry is re-checked against the clock on every call; an expired token is
    refreshed at most once. Two requests refreshing the same credential at the
    same time both write back, and the last write wins.
    """

    def __init__(self,
                 store: CredentialStore,
                 refreshers: Dict[ProviderId, TokenRefresher],
                 observer: ConversionObserver,
                 clock: Callable[[], float] = time.time):
        """Initialize credential manager.

        Args:
            store: Per-user, per-provider credential storage
            refreshers: Token refresher for each provider that supports refresh
            observer: Receives token_refresh_* events
            clock: Wall clock returning epoch seconds
        """
        self.store = store
        self.refreshers = refreshers
        self.observer = observer
        self.clock = clock

    def get_access_token(self, user_id: str, provider: ProviderId,
                         required_scope: Optional[str] = None) -> str:
        """Return a valid access token or raise CredentialError.

        Args:
            user_id: Authenticated caller
            provider: Provider whose account is needed
            required_scope: Scope the token must carry (e.g. the YouTube scope)

        Raises:
            CredentialError: NOT_LINKED, EXPIRED, REFRESH_FAILED or SCOPE_MISSING
        """
        provider = ProviderId(provider)
        account = provider.account_name

        credential = self.store.get(user_id, provider)
        if credential is None or not credential.access_token:
            raise CredentialError(CredentialErrorKind.NOT_LINKED, account)

        now = self.clock()
        if credential.is_expired(now):
            if not credential.refresh_token:
                logger.info(f"{provider.value} token for user {user_id} expired with no refresh token")
                raise CredentialError(CredentialErrorKind.EXPIRED, account)
            credential = self._refresh(credential, now)

        if required_scope and not credential.has_scope(required_scope):
            scope_name = required_scope.rstrip('/').rsplit('/', 1)[-1]
            raise CredentialError(CredentialErrorKind.SCOPE_MISSING, account, scope_name=scope_name)

        return credential.access_token

    def _refresh(self, credential: Credential, now: float) -> Credential:
        provider = credential.provider
        self.observer.emit('token_refresh_attempted', provider=provider.value,
                           user_id=credential.user_id)

        refresher = self.refreshers.get(provider)
        if refresher is None:
            self.observer.emit('token_refresh_failed', level='WARNING', provider=provider.value,
                               user_id=credential.user_id, reason='no refresher configured')
            raise CredentialError(CredentialErrorKind.REFRESH_FAILED, provider.account_name)

        try:
            grant = refresher.refresh(credential.refresh_token)
            fields = {
                'access_token': grant.access_token,
                'expires_at': int(now) + int(grant.expires_in),
                'refresh_token': grant.refresh_token or credential.refresh_token,
            }
            if grant.scope:
                fields['scope'] = grant.scope
            updated = self.store.update(credential.user_id, provider, **fields)
        except Exception as e:
            logger.warning(f"Token refresh failed for {provider.value}: {e}")
            self.observer.emit('token_refresh_failed', level='WARNING', provider=provider.value,
                               user_id=credential.user_id, reason=type(e).__name__)
            raise CredentialError(CredentialErrorKind.REFRESH_FAILED, provider.account_name) from e

        self.observer.emit('token_refresh_succeeded', provider=provider.value,
                           user_id=credential.user_id, expires_at=updated.expires_at)
        return updated

import json
import logging
import threading
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional

from playlist_bridge.crosscutting.config import ConfigError
from playlist_bridge.domain.entities import Credential, ProviderId

logger = logging.getLogger(__name__)

# Only fields derived from a token refresh may be written back
REFRESH_FIELDS = frozenset({'access_token', 'refresh_token', 'expires_at', 'scope'})


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - REFRESH_FIELDS
    if unknown:
        raise ValueError(f"Cannot update credential fields: {sorted(unknown)}")


class InMemoryCredentialStore:
    """Credential store kept in process memory."""

    def __init__(self):
        self._rows: Dict[tuple, Credential] = {}
        self._lock = threading.Lock()

    def add(self, credential: Credential) -> None:
        """Link an account (normally done by the login flow)."""
        with self._lock:
            self._rows[(credential.user_id, credential.provider)] = credential

    def get(self, user_id: str, provider: ProviderId) -> Optional[Credential]:
        with self._lock:
            return self._rows.get((user_id, ProviderId(provider)))

    def update(self, user_id: str, provider: ProviderId, **fields: Any) -> Credential:
        _check_fields(fields)
        key = (user_id, ProviderId(provider))
        with self._lock:
            if key not in self._rows:
                raise KeyError(f"No credential for user {user_id} on {key[1].value}")
            updated = replace(self._rows[key], **fields)
            self._rows[key] = updated
            return updated


class JsonCredentialStore:
    """Credential store backed by a JSON file.

    Layout is ``{user_id: {provider: {access_token, refresh_token, expires_at, scope}}}``.
    Writes are whole-file rewrites; concurrent refreshes are last-write-wins.
    """

    def __init__(self, path: str):
        """Initialize the store, creating the parent directory if needed."""
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Failed to load credentials from {self.path}: {e}")

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            with open(self.path, 'w') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except IOError as e:
            raise ConfigError(f"Failed to save credentials to {self.path}: {e}")

    def add(self, credential: Credential) -> None:
        """Link an account (normally done by the login flow)."""
        row = asdict(credential)
        row.pop('user_id')
        row.pop('provider')
        with self._lock:
            data = self._load()
            data.setdefault(credential.user_id, {})[credential.provider.value] = row
            self._save(data)

    def get(self, user_id: str, provider: ProviderId) -> Optional[Credential]:
        provider = ProviderId(provider)
        with self._lock:
            row = self._load().get(user_id, {}).get(provider.value)
        if not row:
            return None
        return Credential(
            user_id=user_id,
            provider=provider,
            access_token=row.get('access_token') or '',
            refresh_token=row.get('refresh_token'),
            expires_at=row.get('expires_at'),
            scope=row.get('scope'),
        )

    def update(self, user_id: str, provider: ProviderId, **fields: Any) -> Credential:
        _check_fields(fields)
        provider = ProviderId(provider)
        with self._lock:
            data = self._load()
            row = data.get(user_id, {}).get(provider.value)
            if row is None:
                raise KeyError(f"No credential for user {user_id} on {provider.value}")
            row.update(fields)
            self._save(data)
        logger.debug(f"Updated {provider.value} credential for user {user_id}")
        return self.get(user_id, provider)

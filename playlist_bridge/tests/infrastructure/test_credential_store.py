import json
import os
import tempfile

import pytest

from playlist_bridge.crosscutting.config import ConfigError
from playlist_bridge.domain.entities import Credential, ProviderId
from playlist_bridge.infrastructure.credential_store import (
    InMemoryCredentialStore, JsonCredentialStore,
)


class TestJsonCredentialStore:
    """Tests for the file-backed credential store."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, 'nested', 'credentials.json')
        self.store = JsonCredentialStore(self.path)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.path):
            os.remove(self.path)
        os.rmdir(os.path.dirname(self.path))
        os.rmdir(self.temp_dir)

    def test_missing_file_means_not_linked(self):
        assert self.store.get("u1", ProviderId.SPOTIFY) is None

    def test_add_and_get(self):
        self.store.add(Credential("u1", ProviderId.SPOTIFY, "tok", "ref", 123, "scope-a"))

        credential = self.store.get("u1", ProviderId.SPOTIFY)

        assert credential == Credential("u1", ProviderId.SPOTIFY, "tok", "ref", 123, "scope-a")
        assert self.store.get("u1", ProviderId.YOUTUBE) is None
        assert self.store.get("u2", ProviderId.SPOTIFY) is None

    def test_file_layout(self):
        self.store.add(Credential("u1", ProviderId.YOUTUBE, "tok", expires_at=5))

        with open(self.path) as f:
            data = json.load(f)

        assert data == {"u1": {"youtube": {
            "access_token": "tok", "refresh_token": None, "expires_at": 5, "scope": None,
        }}}

    def test_update_writes_back(self):
        self.store.add(Credential("u1", ProviderId.YOUTUBE, "old", "ref", 1))

        updated = self.store.update("u1", ProviderId.YOUTUBE, access_token="new", expires_at=99)

        assert updated.access_token == "new"
        assert updated.refresh_token == "ref"
        assert JsonCredentialStore(self.path).get("u1", ProviderId.YOUTUBE).expires_at == 99

    def test_update_missing_row(self):
        with pytest.raises(KeyError):
            self.store.update("u1", ProviderId.YOUTUBE, access_token="new")

    def test_update_rejects_other_fields(self):
        self.store.add(Credential("u1", ProviderId.YOUTUBE, "old"))

        with pytest.raises(ValueError):
            self.store.update("u1", ProviderId.YOUTUBE, user_id="u2")

    def test_corrupt_file(self):
        with open(self.path, 'w') as f:
            f.write("{not json")

        with pytest.raises(ConfigError):
            self.store.get("u1", ProviderId.SPOTIFY)


class TestInMemoryCredentialStore:
    def test_update(self):
        store = InMemoryCredentialStore()
        store.add(Credential("u1", ProviderId.SPOTIFY, "old", "ref"))

        updated = store.update("u1", "spotify", access_token="new", scope="s")

        assert updated.access_token == "new"
        assert store.get("u1", ProviderId.SPOTIFY).scope == "s"

    def test_update_missing_row(self):
        with pytest.raises(KeyError):
            InMemoryCredentialStore().update("u1", ProviderId.SPOTIFY, access_token="x")

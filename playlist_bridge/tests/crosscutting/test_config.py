import os
import shutil
import tempfile

import pytest

from playlist_bridge.crosscutting.config import ConfigError, ConverterConfig, load_config
from playlist_bridge.domain.entities import ProviderId


class TestLoadConfig:
    """Tests for building configuration from .env files and the environment."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.env_file = os.path.join(self.temp_dir, '.env')

    def teardown_method(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def _write_env(self, content):
        with open(self.env_file, 'w') as f:
            f.write(content)

    def test_defaults(self):
        config = load_config(environ={})

        assert config.spotify_client_id is None
        assert config.youtube_mock_mode is False
        assert config.match_delay_seconds == 0.1
        assert config.youtube_add_delay_seconds == 0.1
        assert config.request_timeout_seconds == 15.0
        assert config.credentials_file.endswith('credentials.json')

    def test_reads_env_file(self):
        self._write_env("SPOTIFY_CLIENT_ID=cid\nSPOTIFY_CLIENT_SECRET=secret\n"
                        "YOUTUBE_MOCK_MODE=true\nYOUTUBE_MOCK_SEED=7\n")

        config = load_config(env_file=self.env_file, environ={})

        assert config.spotify_client_id == 'cid'
        assert config.spotify_client_secret == 'secret'
        assert config.youtube_mock_mode is True
        assert config.youtube_mock_seed == 7

    def test_environment_overrides_env_file(self):
        self._write_env("YOUTUBE_API_KEY=from_file\n")

        config = load_config(env_file=self.env_file, environ={'YOUTUBE_API_KEY': 'from_env'})

        assert config.youtube_api_key == 'from_env'

    def test_reads_process_environment_by_default(self):
        os.environ['GOOGLE_CLIENT_ID'] = 'gid'

        assert load_config().google_client_id == 'gid'

    def test_numeric_settings(self):
        config = load_config(environ={
            'PLAYLIST_BRIDGE_MATCH_DELAY': '0',
            'PLAYLIST_BRIDGE_YOUTUBE_ADD_DELAY': '0.5',
            'PLAYLIST_BRIDGE_REQUEST_TIMEOUT': '30',
        })

        assert config.match_delay_seconds == 0.0
        assert config.youtube_add_delay_seconds == 0.5
        assert config.request_timeout_seconds == 30.0

    def test_malformed_number(self):
        with pytest.raises(ConfigError) as exc:
            load_config(environ={'PLAYLIST_BRIDGE_MATCH_DELAY': 'fast'})

        assert 'PLAYLIST_BRIDGE_MATCH_DELAY' in str(exc.value)

    def test_missing_env_file(self):
        with pytest.raises(ConfigError):
            load_config(env_file=os.path.join(self.temp_dir, 'nope.env'), environ={})

    def test_blank_values_are_ignored(self):
        config = load_config(environ={'SPOTIFY_CLIENT_ID': '  ', 'YOUTUBE_MOCK_MODE': ''})

        assert config.spotify_client_id is None
        assert config.youtube_mock_mode is False


class TestConverterConfig:
    def test_missing_settings(self):
        config = ConverterConfig(spotify_client_id='cid')

        assert config.missing_settings(ProviderId.SPOTIFY) == ['spotify_client_secret']
        assert config.missing_settings(ProviderId.YOUTUBE) == ['youtube_api_key']
        assert config.missing_settings(ProviderId.APPLE) == []

    def test_mock_mode_needs_no_api_key(self):
        assert ConverterConfig(youtube_mock_mode=True).missing_settings(ProviderId.YOUTUBE) == []

    def test_summary_hides_secrets(self):
        config = ConverterConfig(spotify_client_id='cid', spotify_client_secret='super_secret',
                                 youtube_api_key='AIza_key')

        summary = config.summary()

        assert summary['spotify_client_id'] == 'cid'
        assert summary['spotify_client_secret'] is True
        assert summary['youtube_api_key'] is True
        assert summary['google_client_secret'] is False
        assert 'super_secret' not in str(summary)
        assert summary['providers_ready'] == {'spotify': True, 'youtube': True, 'apple': True}

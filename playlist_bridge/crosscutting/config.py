import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import dotenv_values

from playlist_bridge.domain.entities import ProviderId


class ConfigError(Exception):
    """Configuration error."""
    pass


YOUTUBE_SCOPE = 'https://www.googleapis.com/auth/youtube'

# Settings a provider needs before any of its adapters can talk to the API
_REQUIRED_SETTINGS = {
    ProviderId.SPOTIFY: ('spotify_client_id', 'spotify_client_secret'),
    ProviderId.YOUTUBE: ('youtube_api_key',),
    ProviderId.APPLE: (),
}

_SECRET_SETTINGS = {
    'spotify_client_secret', 'google_client_secret', 'youtube_api_key',
}


@dataclass(frozen=True)
class ConverterConfig:
    """Explicit configuration injected into every provider adapter."""

    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_redirect_uri: str = 'http://127.0.0.1:8080/callback'
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    youtube_api_key: Optional[str] = None
    youtube_mock_mode: bool = False
    youtube_mock_seed: Optional[int] = None
    match_delay_seconds: float = 0.1
    youtube_add_delay_seconds: float = 0.1
    request_timeout_seconds: float = 15.0
    credentials_file: str = str(Path.home() / '.playlist-bridge' / 'credentials.json')

    def missing_settings(self, provider: ProviderId) -> List[str]:
        """List settings still required to use the given provider."""
        if provider == ProviderId.YOUTUBE and self.youtube_mock_mode:
            return []
        return [name for name in _REQUIRED_SETTINGS[provider] if not getattr(self, name)]

    def summary(self) -> Dict[str, Any]:
        """Get configuration summary (without sensitive data)."""
        result: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if item.name in _SECRET_SETTINGS:
                result[item.name] = bool(value)
            else:
                result[item.name] = value
        result['providers_ready'] = {
            provider.value: not self.missing_settings(provider) for provider in ProviderId
        }
        return result


_ENV_KEYS = {
    'spotify_client_id': 'SPOTIFY_CLIENT_ID',
    'spotify_client_secret': 'SPOTIFY_CLIENT_SECRET',
    'spotify_redirect_uri': 'SPOTIFY_REDIRECT_URI',
    'google_client_id': 'GOOGLE_CLIENT_ID',
    'google_client_secret': 'GOOGLE_CLIENT_SECRET',
    'youtube_api_key': 'YOUTUBE_API_KEY',
    'youtube_mock_mode': 'YOUTUBE_MOCK_MODE',
    'youtube_mock_seed': 'YOUTUBE_MOCK_SEED',
    'match_delay_seconds': 'PLAYLIST_BRIDGE_MATCH_DELAY',
    'youtube_add_delay_seconds': 'PLAYLIST_BRIDGE_YOUTUBE_ADD_DELAY',
    'request_timeout_seconds': 'PLAYLIST_BRIDGE_REQUEST_TIMEOUT',
    'credentials_file': 'PLAYLIST_BRIDGE_CREDENTIALS_FILE',
}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _parse_number(name: str, value: str, kind):
    try:
        return kind(value)
    except ValueError:
        raise ConfigError(f"{_ENV_KEYS[name]} must be a number, got {value!r}")


def load_config(env_file: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> ConverterConfig:
    """Build configuration from a .env file overlaid by the process environment.

    Args:
        env_file: Optional path to a .env file
        environ: Environment mapping, defaults to os.environ

    Raises:
        ConfigError: If env_file is missing or a numeric setting can't be parsed
    """
    values: Dict[str, Optional[str]] = {}
    if env_file:
        if not os.path.exists(env_file):
            raise ConfigError(f"Env file not found: {env_file}")
        values.update(dotenv_values(env_file))
    values.update(environ if environ is not None else os.environ)

    kwargs: Dict[str, Any] = {}
    for name, key in _ENV_KEYS.items():
        raw = values.get(key)
        if raw is None or not str(raw).strip():
            continue
        raw = str(raw).strip()
        if name == 'youtube_mock_mode':
            kwargs[name] = _parse_bool(raw)
        elif name == 'youtube_mock_seed':
            kwargs[name] = _parse_number(name, raw, int)
        elif name.endswith('_seconds'):
            kwargs[name] = _parse_number(name, raw, float)
        else:
            kwargs[name] = raw

    return ConverterConfig(**kwargs)

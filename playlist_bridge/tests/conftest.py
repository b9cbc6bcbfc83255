import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


PROVIDER_ENV_KEYS = [
    'SPOTIFY_CLIENT_ID', 'SPOTIFY_CLIENT_SECRET', 'SPOTIFY_REDIRECT_URI',
    'GOOGLE_CLIENT_ID', 'GOOGLE_CLIENT_SECRET', 'YOUTUBE_API_KEY',
    'YOUTUBE_MOCK_MODE', 'YOUTUBE_MOCK_SEED',
    'PLAYLIST_BRIDGE_MATCH_DELAY', 'PLAYLIST_BRIDGE_YOUTUBE_ADD_DELAY',
    'PLAYLIST_BRIDGE_REQUEST_TIMEOUT', 'PLAYLIST_BRIDGE_CREDENTIALS_FILE',
]


@pytest.fixture(autouse=True)
def _clear_provider_env():
    """Keep provider settings from the developer's shell out of the tests.

    Cleared before each test and restored afterwards so tests that set them
    explicitly stay deterministic.
    """
    backup = {k: os.environ.get(k) for k in PROVIDER_ENV_KEYS}
    for k in PROVIDER_ENV_KEYS:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v

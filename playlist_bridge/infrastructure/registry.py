import logging
from dataclasses import dataclass
from typing import Dict, Optional

from playlist_bridge.application.credentials import CredentialManager
from playlist_bridge.application.listing import PlaylistListingService
from playlist_bridge.application.matching import TrackMatchingService
from playlist_bridge.application.pipeline import ConversionPipeline
from playlist_bridge.crosscutting.config import YOUTUBE_SCOPE, ConverterConfig
from playlist_bridge.crosscutting.logging import CompositeObserver, LoggingObserver
from playlist_bridge.crosscutting.metrics import MetricsObserver
from playlist_bridge.domain.entities import ProviderId
from playlist_bridge.domain.ports import (
    CredentialStore, PlaylistCreator, PlaylistExtractor, PlaylistLister, TokenRefresher,
    TrackSearcher,
)
from playlist_bridge.infrastructure.credential_store import JsonCredentialStore
from playlist_bridge.infrastructure.providers.apple import AppleMusicExtractor, AppleMusicSearcher
from playlist_bridge.infrastructure.providers.spotify import (
    SpotifyExtractor, SpotifyPlaylistCreator, SpotifyPlaylistLister, SpotifySearcher,
    SpotifyTokenRefresher,
)
from playlist_bridge.infrastructure.providers.youtube import (
    GoogleTokenRefresher, YouTubeDataClient, YouTubeExtractor, YouTubePlaylistCreator,
    YouTubePlaylistLister, YouTubeSearcher,
)

logger = logging.getLogger(__name__)


@dataclass
class ConverterServices:
    """Everything the HTTP and CLI interfaces need, wired for one config."""

    config: ConverterConfig
    credentials: CredentialManager
    pipeline: ConversionPipeline
    listing: PlaylistListingService
    metrics: MetricsObserver


def build_extractors(config: ConverterConfig,
                     youtube_api: YouTubeDataClient) -> Dict[ProviderId, PlaylistExtractor]:
    return {
        ProviderId.SPOTIFY: SpotifyExtractor(config),
        ProviderId.YOUTUBE: YouTubeExtractor(config, api=youtube_api),
        ProviderId.APPLE: AppleMusicExtractor(config),
    }


def build_searchers(config: ConverterConfig, observer,
                    youtube_api: YouTubeDataClient) -> Dict[ProviderId, TrackSearcher]:
    return {
        ProviderId.SPOTIFY: SpotifySearcher(config),
        ProviderId.YOUTUBE: YouTubeSearcher(config, observer=observer, api=youtube_api),
        ProviderId.APPLE: AppleMusicSearcher(config),
    }


def build_creators(config: ConverterConfig, credentials: CredentialManager, observer,
                   youtube_api: YouTubeDataClient) -> Dict[ProviderId, PlaylistCreator]:
    # Apple has no creator: a lookup miss means creation is skipped
    return {
        ProviderId.SPOTIFY: SpotifyPlaylistCreator(credentials, config),
        ProviderId.YOUTUBE: YouTubePlaylistCreator(credentials, config, observer=observer,
                                                   api=youtube_api),
    }


def build_listers(config: ConverterConfig,
                  youtube_api: YouTubeDataClient) -> Dict[ProviderId, PlaylistLister]:
    return {
        ProviderId.SPOTIFY: SpotifyPlaylistLister(config),
        ProviderId.YOUTUBE: YouTubePlaylistLister(config, api=youtube_api),
    }


def build_refreshers(config: ConverterConfig) -> Dict[ProviderId, TokenRefresher]:
    return {
        ProviderId.SPOTIFY: SpotifyTokenRefresher(config),
        ProviderId.YOUTUBE: GoogleTokenRefresher(config),
    }


def build_services(config: ConverterConfig,
                   store: Optional[CredentialStore] = None,
                   metrics: Optional[MetricsObserver] = None) -> ConverterServices:
    """Wire adapters, credential handling and the pipeline for a config.

    Args:
        config: Loaded configuration
        store: Credential store; defaults to the JSON file named in config
        metrics: Metrics observer shared with the interface layer
    """
    for provider in ProviderId:
        missing = config.missing_settings(provider)
        if missing:
            logger.warning(f"{provider.value} is not fully configured, missing: {', '.join(missing)}")

    metrics = metrics or MetricsObserver()
    observer = CompositeObserver([LoggingObserver(), metrics])
    store = store or JsonCredentialStore(config.credentials_file)
    youtube_api = YouTubeDataClient(config)

    credentials = CredentialManager(store, build_refreshers(config), observer)
    matching = TrackMatchingService(
        build_searchers(config, observer, youtube_api),
        observer,
        delay_seconds=config.match_delay_seconds,
    )
    pipeline = ConversionPipeline(
        build_extractors(config, youtube_api),
        matching,
        build_creators(config, credentials, observer, youtube_api),
        observer,
    )
    listing = PlaylistListingService(
        credentials,
        build_listers(config, youtube_api),
        required_scopes={ProviderId.YOUTUBE: YOUTUBE_SCOPE},
    )
    return ConverterServices(config=config, credentials=credentials, pipeline=pipeline,
                             listing=listing, metrics=metrics)

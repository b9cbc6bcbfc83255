import logging
import uuid
from enum import Enum
from typing import Dict, List, Optional

from playlist_bridge.application.matching import TrackMatchingService, calculate_match_rate
from playlist_bridge.crosscutting.logging import CorrelationContext, log_error, provider_var, stage_var
from playlist_bridge.domain.entities import (
    ConversionRequest, ConversionResult, PlaylistDescriptor, ProviderId, Track,
)
from playlist_bridge.domain.errors import AuthError, ConversionError, InputError, UnexpectedError
from playlist_bridge.domain.platforms import detect_platform
from playlist_bridge.domain.ports import ConversionObserver, PlaylistCreator, PlaylistExtractor


logger = logging.getLogger(__name__)


class ConversionStage(str, Enum):
    """Lifecycle of a single conversion request."""

    IDLE = "idle"
    VALIDATING = "validating"
    DETECTING = "detecting"
    EXTRACTING = "extracting"
    MATCHING = "matching"
    CREATING_IF_REQUESTED = "creating_if_requested"
    DONE = "done"
    FAILED = "failed"


class ConversionPipeline:
    """Runs one playlist conversion from URL to ConversionResult.

    Stages run in order: validate the request, detect the source platform,
    extract the playlist, match every track on the target and, when asked
    for, create the destination playlist. Any stage can end in FAILED; the
    caller then gets one structured ConversionError.
    """

    def __init__(self,
                 extractors: Dict[ProviderId, PlaylistExtractor],
                 matching_service: TrackMatchingService,
                 creators: Dict[ProviderId, PlaylistCreator],
                 observer: ConversionObserver):
        """Initialize conversion pipeline.

        Args:
            extractors: Playlist extractor per source provider
            matching_service: Sequential track matcher
            creators: Playlist creator per destination provider
            observer: Receives stage transitions and outcomes
        """
        self.extractors = extractors
        self.matching_service = matching_service
        self.creators = creators
        self.observer = observer

    def convert(self, request: ConversionRequest) -> ConversionResult:
        """Convert a playlist.

        Args:
            request: URL, target platform, creation flag and caller identity

        Returns:
            ConversionResult with matched tracks and match rate

        Raises:
            ConversionError: Any subclass, carrying status, action and code
        """
        conversion_id = uuid.uuid4().hex[:12]
        stage_token = stage_var.set(ConversionStage.IDLE.value)
        provider_token = provider_var.set(None)

        try:
            with CorrelationContext(conversion_id=conversion_id):
                self.observer.emit('conversion_started', conversion_id=conversion_id,
                                   url=request.url, target=request.target_platform,
                                   create_playlist=request.create_playlist)
                try:
                    result = self._run(request)
                except ConversionError as e:
                    self._fail(conversion_id, e, level='WARNING')
                    raise
                except Exception as e:
                    log_error(logger, "Unexpected conversion failure", e,
                              conversion_id=conversion_id)
                    wrapped = UnexpectedError()
                    self._fail(conversion_id, wrapped, level='ERROR')
                    raise wrapped from e

                self._enter(ConversionStage.DONE)
                self.observer.emit('conversion_completed', conversion_id=conversion_id,
                                   track_count=len(result.tracks),
                                   available_count=result.available_count,
                                   match_rate=result.match_rate,
                                   created=result.created_playlist_url is not None)
                return result
        finally:
            provider_var.reset(provider_token)
            stage_var.reset(stage_token)

    def _run(self, request: ConversionRequest) -> ConversionResult:
        self._enter(ConversionStage.VALIDATING)
        target = self._validate(request)

        self._enter(ConversionStage.DETECTING)
        source = self._detect(request.url, target)

        self._enter(ConversionStage.EXTRACTING)
        playlist = self._extract(request.url, source)

        self._enter(ConversionStage.MATCHING)
        provider_var.set(target.value)
        tracks = self.matching_service.match_tracks(playlist.tracks, target)
        match_rate = calculate_match_rate(tracks)
        logger.info(f"Matched {sum(1 for t in tracks if t.is_available)}/{len(tracks)} "
                    f"tracks on {target.value} ({match_rate}%)")

        created_url = None
        if request.create_playlist and request.user_id:
            self._enter(ConversionStage.CREATING_IF_REQUESTED)
            created_url = self._create(playlist.name, tracks, target, request.user_id)

        return ConversionResult(
            original_playlist=playlist,
            tracks=tracks,
            target_platform=target,
            match_rate=match_rate,
            created_playlist_url=created_url,
        )

    def _validate(self, request: ConversionRequest) -> ProviderId:
        if not request.url or not request.url.strip():
            raise InputError("Missing required field: url", code='INVALID_REQUEST')

        target = ProviderId.parse(request.target_platform)
        if target is None:
            raise InputError(f"Unsupported target platform: {request.target_platform}",
                             code='UNSUPPORTED_TARGET')

        if request.create_playlist and not request.user_id:
            raise AuthError("Authentication required to create playlists",
                            code='UNAUTHENTICATED')
        return target

    def _detect(self, url: str, target: ProviderId) -> ProviderId:
        source = detect_platform(url)
        if source is None:
            raise InputError("Unsupported playlist URL", code='UNSUPPORTED_URL')
        if source == target:
            raise InputError("Source and target platforms must be different",
                             code='SAME_PLATFORM')
        return source

    def _extract(self, url: str, source: ProviderId) -> PlaylistDescriptor:
        provider_var.set(source.value)
        extractor = self.extractors.get(source)
        if extractor is None:
            raise InputError(f"Reading playlists from {source.value} is not supported",
                             code='UNSUPPORTED_URL')

        self.observer.emit('extraction_started', source=source.value)
        playlist = extractor.extract(url)
        self.observer.emit('extraction_completed', source=source.value,
                           name=playlist.name, track_count=playlist.track_count)
        return playlist

    def _create(self, name: str, tracks: List[Track], target: ProviderId,
                user_id: str) -> Optional[str]:
        creator = self.creators.get(target)
        if creator is None:
            self.observer.emit('playlist_creation_skipped', target=target.value,
                               reason='unsupported target')
            return None

        available = [t for t in tracks if t.is_available]
        try:
            url = creator.create(name, available, user_id)
        except Exception as e:
            log_error(logger, f"Playlist creation on {target.value} failed", e)
            url = None

        if url:
            self.observer.emit('playlist_created', target=target.value, url=url,
                               track_count=len(available))
        else:
            self.observer.emit('playlist_creation_skipped', level='WARNING',
                               target=target.value, reason='creation failed')
        return url

    def _enter(self, stage: ConversionStage) -> None:
        stage_var.set(stage.value)
        self.observer.emit('stage_changed', level='DEBUG', stage=stage.value)

    def _fail(self, conversion_id: str, error: ConversionError, level: str) -> None:
        self._enter(ConversionStage.FAILED)
        self.observer.emit('conversion_failed', level=level, conversion_id=conversion_id,
                           error_type=type(error).__name__, code=error.code,
                           status_code=error.status_code, message=error.message)

import logging
import time
from typing import Callable, Dict, List, Sequence

from playlist_bridge.domain.entities import UNKNOWN_ARTIST, ProviderId, Track
from playlist_bridge.domain.ports import ConversionObserver, TrackSearcher


logger = logging.getLogger(__name__)


def build_search_query(track: Track) -> str:
    """Build the catalog query for a track.

    The artist is left out when it's the unknown sentinel, otherwise the
    query is ``"{artist} {name}"``.
    """
    if not track.artist or track.artist == UNKNOWN_ARTIST:
        return (track.name or '').strip()
    return f"{track.artist} {track.name}".strip()


def calculate_match_rate(tracks: Sequence[Track]) -> float:
    """Percentage of available tracks rounded to 2 decimals; 0.0 when empty."""
    if not tracks:
        return 0.0
    available = sum(1 for t in tracks if t.is_available)
    return round(100 * available / len(tracks), 2)


class TrackMatchingService:
    """Sequential, rate-limited matching of tracks against a destination catalog.

    The first search result wins. A failing search marks that one track
    unavailable and matching carries on with the next.
    """

    def __init__(self,
                 searchers: Dict[ProviderId, TrackSearcher],
                 observer: ConversionObserver,
                 delay_seconds: float = 0.1,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize matching service.

        Args:
            searchers: Catalog searcher per destination provider
            observer: Receives one track_matched event per track
            delay_seconds: Pause after every track
            sleep: Sleep function, replaced in tests
        """
        self.searchers = searchers
        self.observer = observer
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def match_tracks(self, tracks: Sequence[Track], target: ProviderId) -> List[Track]:
        """Match every track in order and return annotated copies.

        Args:
            tracks: Source tracks
            target: Destination provider

        Returns:
            Tracks in the same order with availability and platform_track_id set
        """
        searcher = self.searchers.get(target)
        matched = []

        for index, track in enumerate(tracks):
            query = build_search_query(track)
            found, track_id = False, None

            if searcher is None:
                logger.warning(f"No searcher configured for {target.value}")
            elif query:
                try:
                    result = searcher.search(query)
                    found, track_id = result.found, result.platform_track_id
                except Exception as e:
                    logger.warning(f"Search failed for '{query}' on {target.value}: {e}")

            matched.append(track.with_match(found, track_id))
            self.observer.emit('track_matched', index=index, query=query, found=found,
                               target=target.value)

            if self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

        return matched

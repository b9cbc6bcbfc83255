import threading
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ConversionMetrics:
    """Counters aggregated across every conversion handled by this process."""
    conversions_started: int = 0
    conversions_completed: int = 0
    conversions_failed: int = 0
    tracks_total: int = 0
    tracks_matched: int = 0
    tracks_unmatched: int = 0
    quota_exceeded: int = 0
    refresh_attempts: int = 0
    refresh_failures: int = 0
    playlists_created: int = 0
    playlists_skipped: int = 0
    started_at: Optional[datetime] = None

    @property
    def match_rate(self) -> float:
        """Percentage of matched tracks across all conversions."""
        if self.tracks_total == 0:
            return 0.0
        return round(100 * self.tracks_matched / self.tracks_total, 2)

    @property
    def failure_rate(self) -> float:
        """Fraction of started conversions that ended in an error."""
        if self.conversions_started == 0:
            return 0.0
        return self.conversions_failed / self.conversions_started


class MetricsObserver:
    """Pipeline observer that counts events instead of logging them."""

    # event name -> counter it increments
    _COUNTERS = {
        'conversion_started': 'conversions_started',
        'conversion_completed': 'conversions_completed',
        'conversion_failed': 'conversions_failed',
        'quota_exceeded': 'quota_exceeded',
        'token_refresh_attempted': 'refresh_attempts',
        'token_refresh_failed': 'refresh_failures',
        'playlist_created': 'playlists_created',
        'playlist_creation_skipped': 'playlists_skipped',
    }

    def __init__(self):
        """Initialize metrics observer."""
        self.metrics = ConversionMetrics(started_at=datetime.now())
        self._lock = threading.Lock()

    def emit(self, event: str, level: str = 'INFO', **fields: Any) -> None:
        with self._lock:
            if event == 'track_matched':
                self.metrics.tracks_total += 1
                if fields.get('found'):
                    self.metrics.tracks_matched += 1
                else:
                    self.metrics.tracks_unmatched += 1
                return

            counter = self._COUNTERS.get(event)
            if counter:
                setattr(self.metrics, counter, getattr(self.metrics, counter) + 1)

    def snapshot(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for JSON serialization."""
        with self._lock:
            data = asdict(self.metrics)
            if data['started_at']:
                data['started_at'] = data['started_at'].isoformat()
            data['match_rate'] = self.metrics.match_rate
            data['failure_rate'] = self.metrics.failure_rate
            return data

    def reset(self) -> None:
        with self._lock:
            self.metrics = ConversionMetrics(started_at=datetime.now())

"""
Per-track geolocation history and speed estimation.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, Optional

from models.geo import GeoPosition

from .geodesy import distance_3d_m


@dataclass(frozen=True)
class GeoSample:
    position: GeoPosition
    timestamp: float


class TrackedGeoState:
    """
    Bounded history of geo samples for one track plus a smoothed speed.

    Speed is the total 3-D path length over the buffered samples divided by
    the elapsed time, blended into an exponential moving average. It stays
    None until min_samples samples exist.
    """

    def __init__(self, max_samples: int = 20, min_samples: int = 5, alpha: float = 0.3):
        if max_samples < 2:
            raise ValueError(f"max_samples must be at least 2, got {max_samples}")
        if not (2 <= min_samples <= max_samples):
            raise ValueError(
                f"min_samples must be within [2, max_samples], got {min_samples}"
            )
        if not (0.0 < alpha <= 1.0):
            raise ValueError(f"alpha must be within (0, 1], got {alpha}")
        self.max_samples = max_samples
        self.min_samples = min_samples
        self.alpha = alpha
        self._history: Deque[GeoSample] = deque(maxlen=max_samples)
        self.ema_speed_mps: Optional[float] = None

    @property
    def sample_count(self) -> int:
        return len(self._history)

    @property
    def history(self) -> Iterable[GeoSample]:
        return tuple(self._history)

    @property
    def last_position(self) -> Optional[GeoPosition]:
        if not self._history:
            return None
        return self._history[-1].position

    def add_sample(self, position: GeoPosition, timestamp: float) -> Optional[float]:
        """Append a sample (oldest evicted when full) and return the updated speed."""
        self._history.append(GeoSample(position, timestamp))
        return self.update_speed()

    def windowed_speed(self) -> Optional[float]:
        """Average speed over the buffered window, None if it cannot be computed."""
        if len(self._history) < self.min_samples:
            return None
        total_distance = 0.0
        total_time = 0.0
        samples = list(self._history)
        for prev, curr in zip(samples, samples[1:]):
            total_distance += distance_3d_m(prev.position, curr.position)
            total_time += curr.timestamp - prev.timestamp
        if total_time <= 0 or not math.isfinite(total_distance):
            return None
        return total_distance / total_time

    def update_speed(self) -> Optional[float]:
        windowed = self.windowed_speed()
        if windowed is None:
            return self.ema_speed_mps
        if self.ema_speed_mps is None:
            self.ema_speed_mps = windowed
        else:
            self.ema_speed_mps = self.alpha * windowed + (1.0 - self.alpha) * self.ema_speed_mps
        return self.ema_speed_mps

    @property
    def speed(self) -> Optional[float]:
        """Smoothed speed in m/s, None below the minimum sample count."""
        if len(self._history) < self.min_samples:
            return None
        return self.ema_speed_mps


class GeoStateRegistry:
    """TrackedGeoState instances keyed by track id."""

    def __init__(self, max_samples: int = 20, min_samples: int = 5, alpha: float = 0.3):
        # Validate once up front rather than on the first track.
        TrackedGeoState(max_samples, min_samples, alpha)
        self.max_samples = max_samples
        self.min_samples = min_samples
        self.alpha = alpha
        self._states: Dict[int, TrackedGeoState] = {}

    def __contains__(self, track_id: int) -> bool:
        return track_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def get(self, track_id: int) -> Optional[TrackedGeoState]:
        return self._states.get(track_id)

    def update(self, track_id: int, position: GeoPosition, timestamp: float) -> Optional[float]:
        """Record a position for a track and return its current speed (or None)."""
        state = self._states.get(track_id)
        if state is None:
            state = TrackedGeoState(self.max_samples, self.min_samples, self.alpha)
            self._states[track_id] = state
        state.add_sample(position, timestamp)
        return state.speed

    def remove(self, track_id: int) -> None:
        self._states.pop(track_id, None)

    def prune(self, active_ids: Iterable[int]) -> None:
        """Drop states whose track is no longer alive in the tracker."""
        keep = set(active_ids)
        stale = [tid for tid in self._states if tid not in keep]
        for tid in stale:
            del self._states[tid]
        if stale:
            logging.debug(f"Dropped geo state for tracks {stale}")

    def reset(self) -> None:
        self._states.clear()

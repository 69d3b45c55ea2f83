"""
Track models for object tracking state.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

from .detection import BoundingBox


@dataclass
class Track:
    """
    A tracked object across video frames.

    Owned and mutated by the tracker; consumers should work from
    TrackState snapshots.

    Attributes:
        track_id: Unique identifier for this track (never reused).
        bbox: Current (predicted or observed) bounding box in source pixels.
        velocity: Per-frame box displacement estimate (vx, vy).
        age: Frames since the track was created.
        hits: Number of detections matched to this track.
        time_since_update: Frames since the last matched detection.
        confidence: Track confidence in [0, 1].
        label: Object class label from the detector, if any.
        last_observed: Box of the last matched detection.
        centers: History of observed centers (newest last).
        areas: History of observed box areas (newest last).
    """
    track_id: int
    bbox: BoundingBox
    velocity: Tuple[float, float] = (0.0, 0.0)
    age: int = 1
    hits: int = 1
    time_since_update: int = 0
    confidence: float = 1.0
    label: Optional[str] = None
    last_observed: Optional[BoundingBox] = None
    centers: Deque[Tuple[float, float]] = field(default_factory=lambda: deque(maxlen=30))
    areas: Deque[float] = field(default_factory=lambda: deque(maxlen=30))

    def __post_init__(self) -> None:
        if self.last_observed is None:
            self.last_observed = self.bbox
        if not self.centers:
            self.centers.append(self.bbox.center)
            self.areas.append(self.bbox.area)

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    def is_confirmed(self, min_hits: int) -> bool:
        return self.hits >= min_hits


@dataclass(frozen=True)
class TrackState:
    """
    Immutable snapshot of a tracked object (for geolocation and sinks).

    Attributes:
        track_id: Unique identifier for this track.
        bbox: Bounding box at snapshot time.
        velocity: (vx, vy) in pixels per frame.
        hits: Matched detections so far.
        confidence: Track confidence in [0, 1].
        label: Object class label, if any.
    """
    track_id: int
    bbox: BoundingBox
    velocity: Tuple[float, float] = (0.0, 0.0)
    hits: int = 1
    confidence: float = 1.0
    label: Optional[str] = None

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @classmethod
    def from_track(cls, track: Track) -> "TrackState":
        """Create immutable snapshot from a Track."""
        return cls(
            track_id=track.track_id,
            bbox=track.bbox,
            velocity=track.velocity,
            hits=track.hits,
            confidence=track.confidence,
            label=track.label,
        )

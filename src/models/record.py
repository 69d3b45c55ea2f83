"""
Per-frame output record handed to record sinks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .geo import GeoPosition


@dataclass(frozen=True)
class TrackRecord:
    """
    One confirmed track in one processed frame.

    Attributes:
        track_id: Tracker-assigned identity.
        bbox: (x, y, width, height) in source pixels.
        position: Estimated geographic position.
        speed_mps: Smoothed speed, None until enough samples exist.
        confidence: Track confidence in [0, 1].
        timestamp: Capture time of the frame (unix seconds).
        label: Object class label, if known.
        display_label: Label after display-name remapping.
        distance_m: Estimated camera-to-object distance.
    """
    track_id: int
    bbox: Tuple[float, float, float, float]
    position: GeoPosition
    speed_mps: Optional[float]
    confidence: float
    timestamp: float
    label: Optional[str] = None
    display_label: Optional[str] = None
    distance_m: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Flat dict for sinks (JSON lines, database rows, uploads)."""
        x, y, w, h = self.bbox
        return {
            "track_id": self.track_id,
            "timestamp": self.timestamp,
            "bbox": {"x": x, "y": y, "w": w, "h": h},
            "label": self.label,
            "display_label": self.display_label,
            "latitude": self.position.latitude,
            "longitude": self.position.longitude,
            "height": self.position.height,
            "distance_m": self.distance_m,
            "speed_mps": self.speed_mps,
            "confidence": self.confidence,
        }

"""
Typed models for the motion geotracker.

Use the adapter functions to convert detector output (dicts, numpy rows)
into these models.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox
from .track import Track, TrackState
from .geo import GeoPosition
from .record import TrackRecord
from .config import (
    Config,
    SourceConfig,
    MotionConfig,
    TrackingConfig,
    CameraModelConfig,
    GeoConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    # Tracking
    "Track",
    "TrackState",
    # Geolocation
    "GeoPosition",
    "TrackRecord",
    # Config
    "Config",
    "SourceConfig",
    "MotionConfig",
    "TrackingConfig",
    "CameraModelConfig",
    "GeoConfig",
]

"""
Geolocation layer: camera model, geodesy and speed estimation.
"""

from .camera import CameraModel
from .locator import GeoLocator, TrackLocation
from .reference_sizes import ReferenceSizeTable
from .tracked_state import GeoStateRegistry, TrackedGeoState

__all__ = [
    "CameraModel",
    "GeoLocator",
    "TrackLocation",
    "ReferenceSizeTable",
    "GeoStateRegistry",
    "TrackedGeoState",
]

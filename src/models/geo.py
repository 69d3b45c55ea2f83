"""
Geographic position models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class GeoPosition:
    """
    Absolute position of an observed object.

    Attributes:
        latitude: Degrees, WGS84.
        longitude: Degrees, WGS84.
        height: Meters above ground level.
    """
    latitude: float
    longitude: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "height": self.height,
        }

    def __str__(self) -> str:
        return (
            f"GeoPosition(lat: {self.latitude:.6f}, lng: {self.longitude:.6f}, "
            f"height: {self.height:.2f}m)"
        )

"""
Camera model for a fixed observation camera.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from models.config import CameraModelConfig


@dataclass(frozen=True)
class CameraModel:
    """
    Immutable optics and mounting of the observing camera.

    Attributes:
        horizontal_fov_deg: Horizontal field of view in degrees.
        vertical_fov_deg: Vertical field of view in degrees.
        resolution_width: Image width in pixels.
        resolution_height: Image height in pixels.
        latitude: Mount latitude in degrees.
        longitude: Mount longitude in degrees.
        azimuth_deg: Viewing direction (0 = North, 90 = East).
        elevation_deg: Angle above the horizontal plane (0 = horizon).
        height_above_ground: Mount height in meters.
        focal_length_h_px: Derived horizontal focal length in pixels.
        focal_length_v_px: Derived vertical focal length in pixels.

    Raises:
        ValueError: On non-positive resolution, FOV outside (0, 180) degrees,
            or a degenerate focal length.
    """
    horizontal_fov_deg: float
    vertical_fov_deg: float
    resolution_width: int
    resolution_height: int
    latitude: float
    longitude: float
    azimuth_deg: float = 0.0
    elevation_deg: float = 0.0
    height_above_ground: float = 0.0
    focal_length_h_px: float = field(init=False)
    focal_length_v_px: float = field(init=False)

    def __post_init__(self) -> None:
        if self.resolution_width <= 0 or self.resolution_height <= 0:
            raise ValueError(
                f"camera resolution must be positive, got "
                f"{self.resolution_width}x{self.resolution_height}"
            )
        for name, fov in (
            ("horizontal_fov_deg", self.horizontal_fov_deg),
            ("vertical_fov_deg", self.vertical_fov_deg),
        ):
            if not (0.0 < fov < 180.0):
                raise ValueError(f"{name} must be between 0 and 180 degrees, got {fov}")
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(f"latitude must be within [-90, 90], got {self.latitude}")

        focal_h = _focal_length_px(self.resolution_width, self.horizontal_fov_deg)
        focal_v = _focal_length_px(self.resolution_height, self.vertical_fov_deg)
        for name, focal in (("horizontal", focal_h), ("vertical", focal_v)):
            if not math.isfinite(focal) or focal <= 0.0:
                raise ValueError(f"{name} focal length is degenerate: {focal}")

        # Frozen dataclass: derived fields are set through object.__setattr__.
        object.__setattr__(self, "focal_length_h_px", focal_h)
        object.__setattr__(self, "focal_length_v_px", focal_v)

    @property
    def average_focal_length_px(self) -> float:
        return (self.focal_length_h_px + self.focal_length_v_px) / 2.0

    @classmethod
    def from_config(cls, cfg: CameraModelConfig) -> "CameraModel":
        """Create from the camera_model config section."""
        model = cls(
            horizontal_fov_deg=float(cfg.horizontal_fov_deg),
            vertical_fov_deg=float(cfg.vertical_fov_deg),
            resolution_width=int(cfg.resolution_width),
            resolution_height=int(cfg.resolution_height),
            latitude=float(cfg.latitude),
            longitude=float(cfg.longitude),
            azimuth_deg=float(cfg.azimuth_deg),
            elevation_deg=float(cfg.elevation_deg),
            height_above_ground=float(cfg.height_above_ground),
        )
        logging.info(
            f"Camera model: {model.resolution_width}x{model.resolution_height}, "
            f"fov=({model.horizontal_fov_deg}, {model.vertical_fov_deg}), "
            f"azimuth={model.azimuth_deg}, elevation={model.elevation_deg}"
        )
        return model


def _focal_length_px(resolution: int, fov_deg: float) -> float:
    return resolution / (2.0 * math.tan(math.radians(fov_deg) / 2.0))

"""
Pixel-to-world geolocation.

Turns a tracked bounding box into a distance (pinhole model with a
per-class reference size), a viewing direction (azimuth/elevation from the
pixel offset within the field of view) and finally a GPS position relative
to the camera mount.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from models.detection import BoundingBox
from models.geo import GeoPosition
from models.track import TrackState

from .camera import CameraModel
from .geodesy import deg_to_rad, offset_position
from .reference_sizes import ReferenceSizeTable

MIN_DISTANCE_M = 0.5
MAX_DISTANCE_M = 1000.0


@dataclass(frozen=True)
class TrackLocation:
    """Geolocation result for one track snapshot."""
    track_id: int
    distance_m: float
    azimuth_deg: float
    elevation_deg: float
    position: GeoPosition


def clamp_distance(distance: float) -> float:
    if math.isnan(distance):
        return MAX_DISTANCE_M
    return min(MAX_DISTANCE_M, max(MIN_DISTANCE_M, distance))


class GeoLocator:
    """
    Converts pixel-space tracks into geographic positions.

    Stateless apart from its CameraModel and reference-size table, so one
    instance can serve every track of a session.
    """

    def __init__(
        self,
        camera: CameraModel,
        reference_sizes: Optional[ReferenceSizeTable] = None,
        default_label: str = "unknown",
    ):
        self.camera = camera
        self.reference_sizes = reference_sizes or ReferenceSizeTable()
        self.default_label = default_label

    def estimate_distance(self, object_class: Optional[str], bbox: BoundingBox) -> float:
        """
        Estimate camera-to-object distance in meters.

        Uses distance = reference_size * focal_length / pixel_size with the
        larger box dimension as pixel size and the mean of both focal
        lengths. The result is clamped to [0.5, 1000] meters; a box with no
        extent yields the far clamp.
        """
        reference = self.reference_sizes.size_for(object_class or self.default_label)
        pixel_size = max(bbox.width, bbox.height)
        if pixel_size <= 0:
            logging.debug(f"Zero pixel size for {object_class!r}, using max distance")
            return MAX_DISTANCE_M

        estimated = (reference * self.camera.average_focal_length_px) / pixel_size
        clamped = clamp_distance(estimated)
        if clamped != estimated:
            logging.debug(
                f"Distance clamped for {object_class!r}: {estimated:.2f}m -> {clamped:.2f}m"
            )
        return clamped

    def estimate_distance_from_diagonal(
        self, object_class: Optional[str], diagonal_px: float
    ) -> float:
        """Distance estimate from the box diagonal instead of its larger side."""
        if diagonal_px <= 0:
            return MAX_DISTANCE_M
        reference = self.reference_sizes.size_for(object_class or self.default_label)
        return clamp_distance(reference * self.camera.average_focal_length_px / diagonal_px)

    def pixel_to_angles(self, pixel_x: float, pixel_y: float) -> Tuple[float, float]:
        """
        Absolute (azimuth, elevation) in degrees of a pixel.

        Image rows grow downward, so pixels below the image center look
        below the camera's elevation. Azimuth is wrapped into [0, 360).
        """
        cam = self.camera
        half_w = cam.resolution_width / 2.0
        half_h = cam.resolution_height / 2.0
        normalized_x = (pixel_x - half_w) / half_w
        normalized_y = (pixel_y - half_h) / half_h

        relative_azimuth = normalized_x * (cam.horizontal_fov_deg / 2.0)
        relative_elevation = -normalized_y * (cam.vertical_fov_deg / 2.0)

        azimuth = (cam.azimuth_deg + relative_azimuth) % 360.0
        elevation = cam.elevation_deg + relative_elevation
        return azimuth, elevation

    def transform_to_position(
        self, distance: float, azimuth: float, elevation: float
    ) -> GeoPosition:
        """Position of a point at distance along (azimuth, elevation) from the camera."""
        azimuth_rad = deg_to_rad(azimuth)
        elevation_rad = deg_to_rad(elevation)

        horizontal = distance * math.cos(elevation_rad)
        vertical = distance * math.sin(elevation_rad)

        # Navigation convention: 0 deg is North, 90 deg is East.
        north = horizontal * math.cos(azimuth_rad)
        east = horizontal * math.sin(azimuth_rad)

        latitude, longitude = offset_position(
            self.camera.latitude, self.camera.longitude, north, east
        )
        return GeoPosition(
            latitude=latitude,
            longitude=longitude,
            height=self.camera.height_above_ground + vertical,
        )

    def transform_pixel_to_position(
        self, pixel_x: float, pixel_y: float, distance: float
    ) -> GeoPosition:
        azimuth, elevation = self.pixel_to_angles(pixel_x, pixel_y)
        return self.transform_to_position(distance, azimuth, elevation)

    def locate(self, track: TrackState) -> TrackLocation:
        """Geolocate a track snapshot from its box center and estimated distance."""
        cx, cy = track.center
        distance = self.estimate_distance(track.label, track.bbox)
        azimuth, elevation = self.pixel_to_angles(cx, cy)
        return TrackLocation(
            track_id=track.track_id,
            distance_m=distance,
            azimuth_deg=azimuth,
            elevation_deg=elevation,
            position=self.transform_to_position(distance, azimuth, elevation),
        )

    def display_name(self, label: Optional[str]) -> Optional[str]:
        return self.reference_sizes.display_name(label)

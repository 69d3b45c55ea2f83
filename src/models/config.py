"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass
class SourceConfig:
    """Frame source configuration (video file, stream URL or device index)."""
    device_id: Union[int, str] = 0
    source_id: str = "camera"
    fps: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            source_id=d.get("source_id", "camera"),
            fps=d.get("fps"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "device_id": self.device_id,
            "source_id": self.source_id,
        }
        if self.fps is not None:
            d["fps"] = self.fps
        return d


@dataclass
class MotionConfig:
    """
    Motion detector tuning.

    diff_combine selects how the background difference and the
    frame-to-frame difference are combined: "background" uses only the
    background difference, "or"/"and" combine both signals.
    """
    grid_width: int = 160
    grid_height: int = 90
    alpha_bg: float = 0.08
    alpha_fg: float = 0.005
    base_threshold: float = 22.0
    temporal_n: int = 4
    temporal_votes: int = 3
    min_blob_area: int = 50
    max_blobs: int = 32
    morph_iters: int = 1
    diff_combine: str = "background"
    frame_diff_scale: float = 0.8
    warmup_frames: int = 0
    noise_filter: bool = False
    max_blob_fraction: float = 1.0
    max_aspect_ratio: Optional[float] = None
    min_density: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MotionConfig":
        return cls(
            grid_width=d.get("grid_width", 160),
            grid_height=d.get("grid_height", 90),
            alpha_bg=d.get("alpha_bg", 0.08),
            alpha_fg=d.get("alpha_fg", 0.005),
            base_threshold=d.get("base_threshold", 22.0),
            temporal_n=d.get("temporal_n", 4),
            temporal_votes=d.get("temporal_votes", 3),
            min_blob_area=d.get("min_blob_area", 50),
            max_blobs=d.get("max_blobs", 32),
            morph_iters=d.get("morph_iters", 1),
            diff_combine=d.get("diff_combine", "background"),
            frame_diff_scale=d.get("frame_diff_scale", 0.8),
            warmup_frames=d.get("warmup_frames", 0),
            noise_filter=d.get("noise_filter", False),
            max_blob_fraction=d.get("max_blob_fraction", 1.0),
            max_aspect_ratio=d.get("max_aspect_ratio"),
            min_density=d.get("min_density", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "grid_width": self.grid_width,
            "grid_height": self.grid_height,
            "alpha_bg": self.alpha_bg,
            "alpha_fg": self.alpha_fg,
            "base_threshold": self.base_threshold,
            "temporal_n": self.temporal_n,
            "temporal_votes": self.temporal_votes,
            "min_blob_area": self.min_blob_area,
            "max_blobs": self.max_blobs,
            "morph_iters": self.morph_iters,
            "diff_combine": self.diff_combine,
            "frame_diff_scale": self.frame_diff_scale,
            "warmup_frames": self.warmup_frames,
            "noise_filter": self.noise_filter,
            "max_blob_fraction": self.max_blob_fraction,
            "min_density": self.min_density,
        }
        if self.max_aspect_ratio is not None:
            d["max_aspect_ratio"] = self.max_aspect_ratio
        return d


@dataclass
class TrackingConfig:
    """Tracking configuration."""
    iou_threshold: float = 0.3
    max_age: int = 10
    min_hits: int = 2
    association: str = "enhanced"
    velocity_damping: float = 0.9
    velocity_smoothing: float = 0.6
    confidence_decay: float = 0.95
    confidence_gain: float = 0.3
    min_confidence: float = 0.1
    min_box_size: float = 1.0
    min_detection_score: float = 0.1
    max_detections: int = 64
    stationary_min_hits: Optional[int] = 30
    stationary_max_displacement: float = 2.0
    max_size_variation: Optional[float] = 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            iou_threshold=d.get("iou_threshold", 0.3),
            max_age=d.get("max_age", 10),
            min_hits=d.get("min_hits", 2),
            association=d.get("association", "enhanced"),
            velocity_damping=d.get("velocity_damping", 0.9),
            velocity_smoothing=d.get("velocity_smoothing", 0.6),
            confidence_decay=d.get("confidence_decay", 0.95),
            confidence_gain=d.get("confidence_gain", 0.3),
            min_confidence=d.get("min_confidence", 0.1),
            min_box_size=d.get("min_box_size", 1.0),
            min_detection_score=d.get("min_detection_score", 0.1),
            max_detections=d.get("max_detections", 64),
            stationary_min_hits=d.get("stationary_min_hits", 30),
            stationary_max_displacement=d.get("stationary_max_displacement", 2.0),
            max_size_variation=d.get("max_size_variation", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iou_threshold": self.iou_threshold,
            "max_age": self.max_age,
            "min_hits": self.min_hits,
            "association": self.association,
            "velocity_damping": self.velocity_damping,
            "velocity_smoothing": self.velocity_smoothing,
            "confidence_decay": self.confidence_decay,
            "confidence_gain": self.confidence_gain,
            "min_confidence": self.min_confidence,
            "min_box_size": self.min_box_size,
            "min_detection_score": self.min_detection_score,
            "max_detections": self.max_detections,
            "stationary_min_hits": self.stationary_min_hits,
            "stationary_max_displacement": self.stationary_max_displacement,
            "max_size_variation": self.max_size_variation,
        }


@dataclass
class CameraModelConfig:
    """Static mounting and optics of the observing camera."""
    horizontal_fov_deg: float = 49.5503
    vertical_fov_deg: float = 69.3903
    resolution_width: int = 1920
    resolution_height: int = 1080
    latitude: float = 47.30658844506907
    longitude: float = 9.431777965149525
    azimuth_deg: float = 225.0
    elevation_deg: float = 0.0
    height_above_ground: float = 1.7

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraModelConfig":
        return cls(
            horizontal_fov_deg=d.get("horizontal_fov_deg", 49.5503),
            vertical_fov_deg=d.get("vertical_fov_deg", 69.3903),
            resolution_width=d.get("resolution_width", 1920),
            resolution_height=d.get("resolution_height", 1080),
            latitude=d.get("latitude", 47.30658844506907),
            longitude=d.get("longitude", 9.431777965149525),
            azimuth_deg=d.get("azimuth_deg", 225.0),
            elevation_deg=d.get("elevation_deg", 0.0),
            height_above_ground=d.get("height_above_ground", 1.7),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "horizontal_fov_deg": self.horizontal_fov_deg,
            "vertical_fov_deg": self.vertical_fov_deg,
            "resolution_width": self.resolution_width,
            "resolution_height": self.resolution_height,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "azimuth_deg": self.azimuth_deg,
            "elevation_deg": self.elevation_deg,
            "height_above_ground": self.height_above_ground,
        }


@dataclass
class GeoConfig:
    """Geolocation and speed estimation settings."""
    max_samples: int = 20
    min_samples: int = 5
    speed_alpha: float = 0.3
    default_label: str = "unknown"
    reference_sizes: Dict[str, float] = field(default_factory=dict)
    display_names: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GeoConfig":
        return cls(
            max_samples=d.get("max_samples", 20),
            min_samples=d.get("min_samples", 5),
            speed_alpha=d.get("speed_alpha", 0.3),
            default_label=d.get("default_label", "unknown"),
            reference_sizes=dict(d.get("reference_sizes") or {}),
            display_names=dict(d.get("display_names") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "max_samples": self.max_samples,
            "min_samples": self.min_samples,
            "speed_alpha": self.speed_alpha,
            "default_label": self.default_label,
        }
        if self.reference_sizes:
            d["reference_sizes"] = dict(self.reference_sizes)
        if self.display_names:
            d["display_names"] = dict(self.display_names)
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    camera_model: CameraModelConfig = field(default_factory=CameraModelConfig)
    geo: GeoConfig = field(default_factory=GeoConfig)
    log_path: str = "logs/motion_geotracker.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source") or {}),
            motion=MotionConfig.from_dict(d.get("motion") or {}),
            tracking=TrackingConfig.from_dict(d.get("tracking") or {}),
            camera_model=CameraModelConfig.from_dict(d.get("camera_model") or {}),
            geo=GeoConfig.from_dict(d.get("geo") or {}),
            log_path=d.get("log_path", "logs/motion_geotracker.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "source": self.source.to_dict(),
            "motion": self.motion.to_dict(),
            "tracking": self.tracking.to_dict(),
            "camera_model": self.camera_model.to_dict(),
            "geo": self.geo.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }

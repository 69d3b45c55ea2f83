"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from geo.camera import CameraModel  # noqa: E402


FRAME_WIDTH = 640
FRAME_HEIGHT = 360


def make_frame(width=FRAME_WIDTH, height=FRAME_HEIGHT, value=40):
    """Uniform grayscale frame."""
    return np.full((height, width), value, dtype=np.uint8)


def frame_with_box(x, y, w, h, background=40, foreground=200,
                   width=FRAME_WIDTH, height=FRAME_HEIGHT):
    """Grayscale frame with one bright rectangle at (x, y, w, h)."""
    frame = make_frame(width, height, background)
    frame[y:y + h, x:x + w] = foreground
    return frame


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
source:
  device_id: 0
  source_id: "camera"

motion:
  grid_width: 160
  grid_height: 90
  temporal_n: 4
  temporal_votes: 3

tracking:
  iou_threshold: 0.3
  max_age: 10
  min_hits: 2

camera_model:
  horizontal_fov_deg: 49.5503
  vertical_fov_deg: 69.3903
  resolution_width: 1920
  resolution_height: 1080
  latitude: 47.3
  longitude: 9.4
  azimuth_deg: 225.0

geo:
  max_samples: 20
  min_samples: 5

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "source": {
            "device_id": 0,
            "source_id": "camera",
        },
        "motion": {
            "grid_width": 160,
            "grid_height": 90,
            "temporal_n": 4,
            "temporal_votes": 3,
            "diff_combine": "background",
        },
        "tracking": {
            "iou_threshold": 0.3,
            "max_age": 10,
            "min_hits": 2,
            "association": "enhanced",
        },
        "camera_model": {
            "horizontal_fov_deg": 49.5503,
            "vertical_fov_deg": 69.3903,
            "resolution_width": 1920,
            "resolution_height": 1080,
            "latitude": 47.30658844506907,
            "longitude": 9.431777965149525,
            "azimuth_deg": 225.0,
            "elevation_deg": 0.0,
            "height_above_ground": 1.7,
        },
        "geo": {
            "max_samples": 20,
            "min_samples": 5,
            "speed_alpha": 0.3,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def camera():
    """Camera looking due north from the equator, level."""
    return CameraModel(
        horizontal_fov_deg=60.0,
        vertical_fov_deg=40.0,
        resolution_width=1920,
        resolution_height=1080,
        latitude=0.0,
        longitude=0.0,
        azimuth_deg=0.0,
        elevation_deg=0.0,
        height_above_ground=2.0,
    )

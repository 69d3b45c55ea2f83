"""
Smoke tests for typed models and adapters.
"""

import numpy as np
import pytest

from models.config import Config, GeoConfig, MotionConfig, TrackingConfig
from models.detection import BoundingBox, Detection, coerce_detection
from models.frame import FrameData
from models.geo import GeoPosition
from models.record import TrackRecord
from models.track import Track, TrackState


class TestBoundingBox:
    def test_properties(self):
        bbox = BoundingBox(x1=100, y1=100, x2=200, y2=150)
        assert bbox.width == 100
        assert bbox.height == 50
        assert bbox.center == (150, 125)
        assert bbox.area == 5000
        assert bbox.max_dimension == 100

    def test_degenerate(self):
        bbox = BoundingBox(10, 10, 10, 40)
        assert bbox.is_degenerate
        assert bbox.area == 0.0

    def test_shifted(self):
        assert BoundingBox(0, 0, 10, 10).shifted(5, -2) == BoundingBox(5, -2, 15, 8)

    def test_xywh(self):
        bbox = BoundingBox.from_xywh(10, 20, 30, 40)
        assert bbox.as_tuple() == (10, 20, 40, 60)
        assert bbox.as_xywh() == (10, 20, 30, 40)


class TestDetection:
    def test_from_xywh(self):
        det = Detection.from_xywh(10, 20, 30, 40)
        assert (det.x, det.y, det.w, det.h) == (10, 20, 30, 40)
        assert det.score == 1.0
        assert det.label is None

    def test_from_numpy_row(self):
        det = Detection.from_numpy_row(np.array([1, 2, 3, 4, 0.5]))
        assert det.bbox == BoundingBox(1, 2, 3, 4)
        assert det.score == 0.5

    def test_from_dict(self):
        det = Detection.from_dict({"bbox": [1, 2, 3, 4], "score": 0.7, "label": "car"})
        assert det.bbox == BoundingBox(1, 2, 3, 4)
        assert det.score == 0.7
        assert det.label == "car"

    def test_from_yolo_style_dict(self):
        det = Detection.from_dict({"box": [1, 2, 3, 4, 0.6], "tag": "kite"})
        assert det.score == 0.6
        assert det.label == "kite"

    def test_from_dict_without_box(self):
        with pytest.raises(ValueError):
            Detection.from_dict({"score": 0.5})

    def test_coerce(self):
        det = Detection.from_xyxy(1, 2, 3, 4)
        assert coerce_detection(det) is det
        assert coerce_detection([1, 2, 3, 4]).bbox == det.bbox


class TestCoerceDetection:
    def test_numpy_row_with_score(self):
        det = coerce_detection(np.array([10, 20, 50, 80, 0.4]))
        assert det.bbox == BoundingBox(10, 20, 50, 80)
        assert det.score == pytest.approx(0.4)

    def test_dict_passthrough(self):
        det = coerce_detection({"bbox": [0, 0, 5, 5], "label": "kite"})
        assert det.label == "kite"
        assert det.score == 1.0


class TestFrameData:
    def test_from_numpy(self):
        frame = np.zeros((360, 640), dtype=np.uint8)
        fd = FrameData.from_numpy(frame, timestamp=1.5, frame_index=3, source="cam")
        assert fd.size == (640, 360)
        assert fd.stride == 640
        assert fd.frame_index == 3

    def test_from_luma_bytes(self):
        fd = FrameData.from_luma_bytes(bytes(700 * 360), 700, 640, 360, timestamp=0.0)
        assert fd.stride == 700
        assert fd.size == (640, 360)

    def test_as_array_drops_row_padding(self):
        plane = np.full((4, 8), 255, dtype=np.uint8)
        plane[:, :6] = np.arange(6)
        fd = FrameData.from_luma_bytes(plane.tobytes(), 8, 6, 4, timestamp=0.0)

        arr = fd.as_array()

        assert arr.shape == (4, 6)
        assert (arr[2] == np.arange(6)).all()

    def test_as_array_zero_fills_short_buffer(self):
        fd = FrameData.from_luma_bytes(bytes([9]) * 10, 6, 6, 4, timestamp=0.0)

        arr = fd.as_array()

        assert arr.shape == (4, 6)
        assert arr[0, 0] == 9
        assert arr[3, 5] == 0


class TestTrack:
    def test_new_track_defaults(self):
        track = Track(track_id=1, bbox=BoundingBox(0, 0, 10, 20))
        assert track.hits == 1
        assert track.time_since_update == 0
        assert track.last_observed == track.bbox
        assert list(track.centers) == [(5, 10)]
        assert list(track.areas) == [200]
        assert not track.is_confirmed(2)

    def test_track_state_from_track(self):
        track = Track(track_id=4, bbox=BoundingBox(0, 0, 10, 20), label="person")
        track.velocity = (1.0, 2.0)
        state = TrackState.from_track(track)
        assert state.track_id == 4
        assert state.bbox == track.bbox
        assert state.velocity == (1.0, 2.0)
        assert state.label == "person"
        assert state.center == (5, 10)


class TestRecord:
    def test_to_dict(self):
        record = TrackRecord(
            track_id=1,
            bbox=(1.0, 2.0, 3.0, 4.0),
            position=GeoPosition(47.0, 9.0, 2.0),
            speed_mps=1.5,
            confidence=0.8,
            timestamp=100.0,
        )
        d = record.to_dict()
        assert d["track_id"] == 1
        assert d["height"] == 2.0
        assert d["speed_mps"] == 1.5
        assert d["label"] is None

    def test_geo_position_str(self):
        assert "lat: 47.000000" in str(GeoPosition(47.0, 9.0, 2.0))


class TestConfig:
    def test_from_dict_minimal(self):
        config = Config.from_dict({})
        assert config.motion.grid_width == 160
        assert config.tracking.association == "enhanced"
        assert config.camera_model.azimuth_deg == 225.0
        assert config.geo.min_samples == 5
        assert config.log_level == "INFO"

    def test_roundtrip(self):
        config = Config.from_dict({
            "motion": {"diff_combine": "or", "max_aspect_ratio": 8.0},
            "tracking": {"max_age": 20},
            "geo": {"reference_sizes": {"drone": 0.4}},
        })
        again = Config.from_dict(config.to_dict())
        assert again == config

    def test_section_defaults(self):
        assert MotionConfig().temporal_votes == 3
        assert TrackingConfig().velocity_damping == 0.9
        assert GeoConfig().speed_alpha == 0.3

"""
Smoke tests for ObjectTracker stability across synthetic sequences.
"""

import numpy as np
import pytest

from models.config import TrackingConfig
from models.detection import BoundingBox, Detection
from tracking.tracker import ObjectTracker, calculate_iou


def det(x1, y1, x2, y2, score=1.0, label=None):
    return Detection.from_xyxy(x1, y1, x2, y2, score=score, label=label)


class TestTrackerBasics:
    """Basic tracker functionality tests."""

    def test_tracker_init(self):
        tracker = ObjectTracker()

        assert tracker.config.iou_threshold == 0.3
        assert tracker.config.max_age == 10
        assert tracker.config.min_hits == 2
        assert tracker.next_track_id == 1
        assert tracker.get_all_tracks() == []

    def test_invalid_association_mode(self):
        with pytest.raises(ValueError):
            ObjectTracker(TrackingConfig(association="hungarian"))

    def test_invalid_min_hits(self):
        with pytest.raises(ValueError):
            ObjectTracker(TrackingConfig(min_hits=0))

    def test_empty_detections(self):
        tracker = ObjectTracker()

        assert tracker.update([]) == []
        assert tracker.update(np.array([])) == []
        assert tracker.get_all_tracks() == []


class TestConfirmedGating:
    def test_new_track_is_tentative(self):
        tracker = ObjectTracker()

        result = tracker.update([det(100, 100, 150, 150)])

        assert result == []
        assert len(tracker.get_all_tracks()) == 1
        assert tracker.get_all_tracks()[0].track_id == 1

    def test_track_confirmed_after_min_hits(self):
        tracker = ObjectTracker()

        tracker.update([det(100, 100, 150, 150)])
        result = tracker.update([det(102, 100, 152, 150)])

        assert len(result) == 1
        assert result[0].track_id == 1
        assert result[0].hits == 2
        assert result[0].time_since_update == 0

    def test_min_hits_one_reports_immediately(self):
        tracker = ObjectTracker(TrackingConfig(min_hits=1))

        result = tracker.update([det(100, 100, 150, 150)])

        assert [t.track_id for t in result] == [1]


class TestTrackerSequence:
    def test_object_moves_smoothly(self):
        tracker = ObjectTracker()

        for i in range(8):
            x = 100 + i * 5
            result = tracker.update([det(x, 100, x + 50, 150)])

        assert len(result) == 1
        track = result[0]
        assert track.track_id == 1
        assert track.hits == 8
        assert track.bbox == BoundingBox(135, 100, 185, 150)
        assert track.velocity[0] == pytest.approx(5.0, abs=1.0)
        assert track.velocity[1] == pytest.approx(0.0, abs=1e-9)

    def test_prediction_moves_unmatched_track(self):
        tracker = ObjectTracker()
        for i in range(4):
            x = 100 + i * 10
            tracker.update([det(x, 100, x + 50, 150)])
        before = tracker.get_all_tracks()[0].bbox

        tracker.update([])

        after = tracker.get_all_tracks()[0].bbox
        assert after.x1 > before.x1
        assert tracker.get_all_tracks()[0].time_since_update == 1

    def test_object_disappears_and_removed(self):
        tracker = ObjectTracker(TrackingConfig(max_age=3))
        tracker.update([det(100, 100, 150, 150)])
        tracker.update([det(100, 100, 150, 150)])

        for _ in range(3):
            tracker.update([])
        assert len(tracker.get_all_tracks()) == 1

        tracker.update([])
        assert tracker.get_all_tracks() == []
        assert tracker.removed_ids == [1]

    def test_two_objects_tracked_independently(self):
        tracker = ObjectTracker()

        for i in range(3):
            tracker.update([
                det(100 + i * 3, 100, 150 + i * 3, 150),
                det(400 - i * 3, 300, 450 - i * 3, 350),
            ])

        ids = sorted(t.track_id for t in tracker.get_confirmed_tracks())
        assert ids == [1, 2]

    def test_result_sorted_by_confidence(self):
        tracker = ObjectTracker(TrackingConfig(min_hits=1))
        tracker.update([det(100, 100, 150, 150, score=0.4), det(400, 300, 450, 350, score=0.9)])

        result = tracker.update([])

        assert [t.track_id for t in result] == [2, 1]
        assert result[0].confidence >= result[1].confidence


class TestTrackIds:
    def test_ids_monotonic_and_never_reused(self):
        tracker = ObjectTracker(TrackingConfig(max_age=0))
        seen = []

        for i in range(5):
            # Far apart each frame so nothing ever matches.
            x = i * 200
            tracker.update([det(x, 10, x + 40, 50)])
            seen.extend(t.track_id for t in tracker.get_all_tracks())

        assert seen == sorted(seen)
        assert len(set(seen)) == len(seen)
        assert tracker.next_track_id == 6

    def test_reset_restarts_ids(self):
        tracker = ObjectTracker()
        tracker.update([det(0, 0, 10, 10), det(100, 100, 120, 120)])

        tracker.reset()

        assert tracker.get_all_tracks() == []
        tracker.update([det(0, 0, 10, 10)])
        assert tracker.get_all_tracks()[0].track_id == 1


class TestAssociation:
    def test_detection_matches_at_most_one_track(self):
        tracker = ObjectTracker(TrackingConfig(min_hits=1))
        tracker.update([det(100, 100, 150, 150), det(110, 100, 160, 150)])

        tracker.update([det(105, 100, 155, 150)])

        matched = [t for t in tracker.get_all_tracks() if t.time_since_update == 0]
        assert len(matched) == 1

    def test_no_overlap_never_matches(self):
        tracker = ObjectTracker(TrackingConfig(iou_threshold=0.0))
        tracker.update([det(0, 0, 10, 10)])

        tracker.update([det(50, 50, 60, 60)])

        assert [t.track_id for t in tracker.get_all_tracks()] == [1, 2]

    def test_deterministic_for_identical_inputs(self):
        frames = [
            [det(100, 100, 150, 150), det(120, 100, 170, 150)],
            [det(104, 100, 154, 150), det(124, 100, 174, 150)],
            [det(108, 100, 158, 150), det(128, 100, 178, 150)],
        ]

        def run():
            tracker = ObjectTracker()
            out = []
            for dets in frames:
                out.append([(t.track_id, t.bbox.as_tuple()) for t in tracker.update(dets)])
            return out

        assert run() == run()

    def test_iou_mode(self):
        tracker = ObjectTracker(TrackingConfig(association="iou"))
        tracker.update([det(100, 100, 150, 150)])

        result = tracker.update([det(105, 100, 155, 150)])

        assert [t.track_id for t in result] == [1]

    def test_enhanced_score_identical_boxes(self):
        tracker = ObjectTracker()
        tracker.update([det(100, 100, 150, 150)])
        track = tracker.get_all_tracks()[0]

        assert tracker.match_score(track, det(100, 100, 150, 150)) == pytest.approx(1.0)


class TestDetectionInputs:
    def test_dict_detections(self):
        tracker = ObjectTracker()
        tracker.update([{"bbox": [100, 100, 150, 150], "score": 0.8, "label": "person"}])

        result = tracker.update([{"box": [101, 100, 151, 150, 0.9], "tag": "person"}])

        assert len(result) == 1
        assert result[0].label == "person"

    def test_numpy_rows(self):
        tracker = ObjectTracker()
        tracker.update(np.array([[100, 100, 150, 150, 0.9]]))

        result = tracker.update(np.array([[101, 100, 151, 150, 0.9]]))

        assert len(result) == 1

    def test_malformed_detection_skipped(self):
        tracker = ObjectTracker()

        tracker.update([{"score": 0.5}, det(100, 100, 150, 150)])

        assert len(tracker.get_all_tracks()) == 1

    def test_degenerate_and_low_score_not_spawned(self):
        tracker = ObjectTracker()

        tracker.update([det(10, 10, 10, 50), det(100, 100, 150, 150, score=0.05)])

        assert tracker.get_all_tracks() == []

    def test_score_clamped(self):
        tracker = ObjectTracker()

        tracker.update([det(100, 100, 150, 150, score=3.0)])

        assert tracker.get_all_tracks()[0].confidence == 1.0

    def test_max_detections_keeps_best(self):
        tracker = ObjectTracker(TrackingConfig(max_detections=2))

        tracker.update([
            det(0, 0, 20, 20, score=0.2),
            det(100, 0, 120, 20, score=0.9),
            det(200, 0, 220, 20, score=0.8),
        ])

        boxes = [t.bbox.x1 for t in tracker.get_all_tracks()]
        assert boxes == [100, 200]


class TestPruning:
    def test_stationary_track_removed(self):
        config = TrackingConfig(stationary_min_hits=5, min_hits=1)
        tracker = ObjectTracker(config)

        for _ in range(4):
            tracker.update([det(100, 100, 150, 150)])
        assert len(tracker.get_all_tracks()) == 1

        tracker.update([det(100, 100, 150, 150)])
        assert tracker.get_all_tracks() == []

    def test_stationary_check_disabled(self):
        config = TrackingConfig(stationary_min_hits=None, min_hits=1)
        tracker = ObjectTracker(config)

        for _ in range(40):
            tracker.update([det(100, 100, 150, 150)])

        assert len(tracker.get_all_tracks()) == 1

    def test_unstable_size_removed(self):
        config = TrackingConfig(max_size_variation=0.2, association="iou", iou_threshold=0.1)
        tracker = ObjectTracker(config)
        sizes = [50, 20, 50, 20, 50]

        # Same center every frame; only the size flickers.
        for s in sizes:
            half = s / 2
            tracker.update([det(125 - half, 125 - half, 125 + half, 125 + half)])

        assert tracker.get_all_tracks() == []


class TestIoUCalculation:
    def test_iou_identical_boxes(self):
        box = BoundingBox(100, 100, 200, 200)
        assert calculate_iou(box, box) == pytest.approx(1.0)

    def test_iou_no_overlap(self):
        assert calculate_iou(BoundingBox(0, 0, 10, 10), BoundingBox(20, 20, 30, 30)) == 0.0

    def test_iou_partial_overlap(self):
        iou = calculate_iou(BoundingBox(0, 0, 100, 100), BoundingBox(50, 0, 150, 100))
        # Intersection 50x100, union 15000
        assert iou == pytest.approx(5000 / 15000)

    def test_iou_degenerate_box(self):
        assert calculate_iou(BoundingBox(0, 0, 0, 10), BoundingBox(0, 0, 10, 10)) == 0.0

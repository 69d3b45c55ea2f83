"""
Object tracking module for tracking detections across video frames.

This module implements a SORT-style tracker: every track is predicted
forward with a damped constant-velocity model, detections are associated
to predictions by greedy best-score matching, and tracks move through a
tentative -> confirmed -> removed lifecycle.

Geolocation is NOT done here. Use `geo.locator.GeoLocator` on the
returned tracks for that.
"""

import logging
import math
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from models.config import TrackingConfig
from models.detection import BoundingBox, Detection, coerce_detection
from models.track import Track

ASSOCIATION_MODES = ("iou", "enhanced")

# Area samples needed before size stability is judged.
MIN_SIZE_SAMPLES = 5


def calculate_iou(box_a: BoundingBox, box_b: BoundingBox) -> float:
    """
    Calculate Intersection over Union (IoU) between two bounding boxes.

    Returns:
        IoU value between 0 and 1. Degenerate (zero-area) boxes give 0.
    """
    if box_a.is_degenerate or box_b.is_degenerate:
        return 0.0

    x1_i = max(box_a.x1, box_b.x1)
    y1_i = max(box_a.y1, box_b.y1)
    x2_i = min(box_a.x2, box_b.x2)
    y2_i = min(box_a.y2, box_b.y2)

    if x2_i <= x1_i or y2_i <= y1_i:
        return 0.0

    intersection = (x2_i - x1_i) * (y2_i - y1_i)
    union = box_a.area + box_b.area - intersection

    if union <= 0:
        return 0.0

    return intersection / union


class ObjectTracker:
    """
    Tracks objects across frames using motion-predicted greedy matching.

    This tracker is responsible for:
    - Predicting every track forward before association
    - Matching detections to tracks one-to-one by score
    - Spawning tentative tracks for unmatched detections
    - Pruning stale, low-confidence and implausible tracks

    Only confirmed tracks (hits >= min_hits) are returned from update().
    """

    def __init__(self, config: Optional[TrackingConfig] = None):
        """
        Initialize the object tracker.

        Args:
            config: Tracking parameters; defaults to TrackingConfig().

        Raises:
            ValueError: If any parameter is out of range.
        """
        self.config = config or TrackingConfig()
        _validate(self.config)

        self.tracked_objects: Dict[int, Track] = {}
        self.next_track_id = 1
        self.removed_ids: List[int] = []
        self.frame_count = 0

        logging.info(
            f"Object tracker initialized: association={self.config.association}, "
            f"iou_threshold={self.config.iou_threshold}, max_age={self.config.max_age}, "
            f"min_hits={self.config.min_hits}"
        )

    def update(self, detections: Iterable[Any]) -> List[Track]:
        """
        Update tracker with this frame's detections.

        Args:
            detections: Detection objects, detector dicts
                ({"bbox": [x1, y1, x2, y2], "score": s, "label": l}) or
                numpy rows [x1, y1, x2, y2, score].

        Returns:
            Confirmed tracks sorted by descending confidence.
        """
        self.frame_count += 1
        dets = self._prepare_detections(detections)
        tracks = list(self.tracked_objects.values())

        for track in tracks:
            self._predict(track)

        matches, unmatched = self._associate(tracks, dets)

        for ti, di in matches:
            self._apply_detection(tracks[ti], dets[di])

        for di in unmatched:
            self._spawn_track(dets[di])

        self._remove_invalid_tracks()

        confirmed = self.get_confirmed_tracks()
        # sorted() is stable: equal confidence keeps id order
        return sorted(confirmed, key=lambda t: -t.confidence)

    def _prepare_detections(self, detections: Iterable[Any]) -> List[Detection]:
        """Normalize inputs, clamp scores and cap the candidate count."""
        if detections is None:
            return []
        if isinstance(detections, np.ndarray) and detections.size == 0:
            return []

        dets: List[Detection] = []
        for item in detections:
            try:
                det = coerce_detection(item)
            except (ValueError, TypeError, IndexError, KeyError) as e:
                logging.warning(f"Skipping malformed detection {item!r}: {e}")
                continue
            score = det.score
            if math.isnan(score):
                score = 0.0
            clamped = min(1.0, max(0.0, score))
            if clamped != det.score:
                det = replace(det, score=clamped)
            dets.append(det)

        cap = self.config.max_detections
        if len(dets) > cap:
            best = sorted(range(len(dets)), key=lambda i: -dets[i].score)[:cap]
            dets = [dets[i] for i in sorted(best)]
        return dets

    def _predict(self, track: Track) -> None:
        """Advance a track one frame with its damped velocity."""
        vx, vy = track.velocity
        track.bbox = track.bbox.shifted(vx, vy)
        damping = self.config.velocity_damping
        track.velocity = (vx * damping, vy * damping)
        track.age += 1
        track.time_since_update += 1
        track.confidence *= self.config.confidence_decay

    def match_score(self, track: Track, det: Detection) -> float:
        """
        Association score between a (predicted) track and a detection.

        Pairs without any overlap score 0 and never match.
        """
        iou = calculate_iou(track.bbox, det.bbox)
        if iou <= 0.0:
            return 0.0
        if self.config.association == "iou":
            return iou

        area_t = track.bbox.area
        area_d = det.bbox.area
        size_ratio = min(area_t, area_d) / max(area_t, area_d)

        tcx, tcy = track.center
        dcx, dcy = det.center
        error = math.hypot(dcx - tcx, dcy - tcy)
        max_dim = max(track.bbox.max_dimension, det.bbox.max_dimension)
        motion_bonus = max(0.0, 1.0 - error / max_dim) if max_dim > 0 else 0.0

        return 0.6 * iou + 0.2 * size_ratio + 0.2 * motion_bonus

    def _associate(
        self, tracks: List[Track], dets: List[Detection]
    ) -> Tuple[List[Tuple[int, int]], List[int]]:
        """
        Greedy one-to-one assignment by descending score.

        Ties keep discovery order (tracks outer, detections inner), so the
        result is deterministic for identical inputs.
        """
        pairs: List[Tuple[float, int, int]] = []
        for ti, track in enumerate(tracks):
            for di, det in enumerate(dets):
                score = self.match_score(track, det)
                if score > 0.0 and score >= self.config.iou_threshold:
                    pairs.append((score, ti, di))
        pairs.sort(key=lambda p: -p[0])

        matched_tracks = set()
        matched_dets = set()
        matches: List[Tuple[int, int]] = []
        for _, ti, di in pairs:
            if ti in matched_tracks or di in matched_dets:
                continue
            matches.append((ti, di))
            matched_tracks.add(ti)
            matched_dets.add(di)

        unmatched = [di for di in range(len(dets)) if di not in matched_dets]
        return matches, unmatched

    def _apply_detection(self, track: Track, det: Detection) -> None:
        """Correct a track with its matched detection."""
        frames = max(track.time_since_update, 1)
        ox, oy = track.last_observed.center
        nx, ny = det.center
        obs_vx = (nx - ox) / frames
        obs_vy = (ny - oy) / frames

        s = self.config.velocity_smoothing
        vx, vy = track.velocity
        track.velocity = (s * obs_vx + (1.0 - s) * vx, s * obs_vy + (1.0 - s) * vy)

        track.bbox = det.bbox
        track.last_observed = det.bbox
        track.hits += 1
        track.time_since_update = 0
        gain = self.config.confidence_gain
        track.confidence = min(1.0, track.confidence + gain * (1.0 - track.confidence))
        if det.label:
            track.label = det.label
        track.centers.append(det.center)
        track.areas.append(det.bbox.area)

    def _spawn_track(self, det: Detection) -> Optional[Track]:
        """Create a tentative track if the detection passes sanity filters."""
        cfg = self.config
        if det.bbox.is_degenerate or det.w < cfg.min_box_size or det.h < cfg.min_box_size:
            return None
        if det.score < cfg.min_detection_score:
            return None

        track = Track(
            track_id=self.next_track_id,
            bbox=det.bbox,
            confidence=det.score,
            label=det.label,
        )
        self.tracked_objects[track.track_id] = track
        self.next_track_id += 1
        logging.debug(f"[TRACK] new id={track.track_id} bbox={det.bbox.as_int_tuple()}")
        return track

    def _removal_reason(self, track: Track) -> Optional[str]:
        cfg = self.config
        if track.time_since_update > cfg.max_age:
            return "stale"
        if track.confidence < cfg.min_confidence:
            return "low confidence"
        if self._is_stationary(track):
            return "stationary"
        if self._is_size_unstable(track):
            return "unstable size"
        return None

    def _is_stationary(self, track: Track) -> bool:
        cfg = self.config
        if cfg.stationary_min_hits is None or track.hits < cfg.stationary_min_hits:
            return False
        centers = np.asarray(track.centers, dtype=float)
        spread = math.hypot(*np.ptp(centers, axis=0))
        return spread < cfg.stationary_max_displacement

    def _is_size_unstable(self, track: Track) -> bool:
        cfg = self.config
        if cfg.max_size_variation is None or len(track.areas) < MIN_SIZE_SAMPLES:
            return False
        areas = np.asarray(track.areas, dtype=float)
        mean = float(areas.mean())
        if mean <= 0:
            return True
        return float(areas.std()) / mean > cfg.max_size_variation

    def _remove_invalid_tracks(self) -> None:
        """Remove tracks that are stale or fail a validity check."""
        to_remove = []
        for track_id, track in self.tracked_objects.items():
            reason = self._removal_reason(track)
            if reason is not None:
                to_remove.append((track_id, reason))

        self.removed_ids = []
        for track_id, reason in to_remove:
            del self.tracked_objects[track_id]
            self.removed_ids.append(track_id)
            logging.debug(f"[TRACK] removed id={track_id} ({reason})")

    def get_confirmed_tracks(self) -> List[Track]:
        """Tracks with at least min_hits matched detections, in id order."""
        return [t for t in self.tracked_objects.values() if t.hits >= self.config.min_hits]

    def get_all_tracks(self) -> List[Track]:
        """All live tracks, including tentative ones."""
        return list(self.tracked_objects.values())

    @property
    def tracks(self) -> List[Track]:
        """Confirmed tracks in id order."""
        return self.get_confirmed_tracks()

    @property
    def all_tracks(self) -> List[Track]:
        return self.get_all_tracks()

    def reset(self) -> None:
        """Drop every track and restart id allocation."""
        self.tracked_objects.clear()
        self.removed_ids = []
        self.next_track_id = 1
        self.frame_count = 0
        logging.info("Object tracker reset")


def _validate(cfg: TrackingConfig) -> None:
    if not (0.0 <= cfg.iou_threshold <= 1.0):
        raise ValueError(f"iou_threshold must be between 0 and 1, got {cfg.iou_threshold}")
    if cfg.max_age < 0:
        raise ValueError(f"max_age must be non-negative, got {cfg.max_age}")
    if cfg.min_hits < 1:
        raise ValueError(f"min_hits must be at least 1, got {cfg.min_hits}")
    if cfg.association not in ASSOCIATION_MODES:
        raise ValueError(
            f"association must be one of: {', '.join(ASSOCIATION_MODES)}, got {cfg.association!r}"
        )
    for name in ("velocity_damping", "confidence_decay", "confidence_gain", "min_confidence"):
        value = getattr(cfg, name)
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"{name} must be between 0 and 1, got {value}")
    if not (0.0 < cfg.velocity_smoothing <= 1.0):
        raise ValueError(f"velocity_smoothing must be within (0, 1], got {cfg.velocity_smoothing}")
    if cfg.max_detections < 1:
        raise ValueError(f"max_detections must be at least 1, got {cfg.max_detections}")

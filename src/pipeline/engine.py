"""
Pipeline engine for the motion geotracker.

This module wires the per-frame processing chain:
frame -> MotionDetector -> ObjectTracker -> GeoLocator -> GeoStateRegistry
and hands the resulting TrackRecords to registered sinks. Frame input comes
from the observation layer; the core itself does no I/O.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from detection.base import Detector
from detection.motion import MotionDetector
from geo.camera import CameraModel
from geo.locator import GeoLocator
from geo.reference_sizes import ReferenceSizeTable
from geo.tracked_state import GeoStateRegistry
from models.config import Config, MotionConfig
from models.detection import BoundingBox
from models.frame import FrameData
from models.record import TrackRecord
from models.track import Track, TrackState
from observation import ObservationSource
from tracking.tracker import ObjectTracker

RecordSink = Callable[[List[TrackRecord]], None]


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline run loop.

    Attributes:
        max_consecutive_failures: Max frame read failures before stopping.
        retry_delay: Seconds to wait after a failed read on a live source.
        stats_log_interval: Seconds between status log messages.
        max_frames: Stop after this many processed frames (None = unbounded).
    """
    max_consecutive_failures: int = 10
    retry_delay: float = 0.5
    stats_log_interval: float = 60.0
    max_frames: Optional[int] = None


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frame_count: int = 0
    dropped_frames: int = 0
    record_count: int = 0
    sink_errors: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    consecutive_failures: int = 0


class PerceptionPipeline:
    """
    Per-frame perception chain producing geolocated, speed-annotated tracks.

    Only one frame is processed at a time. process() waits for the frame in
    flight; try_process() drops the new frame instead, which is what a live
    camera callback should use.

    Example:
        pipeline = create_pipeline_from_config(config)
        pipeline.add_sink(lambda records: print(len(records)))
        records = pipeline.process(frame_data)
    """

    def __init__(
        self,
        detector: Optional[Detector],
        tracker: ObjectTracker,
        locator: GeoLocator,
        registry: GeoStateRegistry,
        motion_config: Optional[MotionConfig] = None,
        config: Optional[PipelineConfig] = None,
    ):
        """
        Args:
            detector: Frame detector. If None, a MotionDetector sized to the
                first frame is created lazily from motion_config.
            tracker: Track association engine.
            locator: Pixel-to-GPS converter.
            registry: Per-track speed state.
            motion_config: Settings for the lazily created MotionDetector.
            config: Run loop settings.
        """
        self.detector = detector
        self.tracker = tracker
        self.locator = locator
        self.registry = registry
        self.motion_config = motion_config or MotionConfig()
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._lock = threading.Lock()
        self._running = False
        self._sinks: List[RecordSink] = []

    def add_sink(self, sink: RecordSink) -> None:
        """
        Add a sink called with each frame's records.

        Sink errors are logged and never stop processing.
        """
        self._sinks.append(sink)

    def process(self, frame_data: FrameData) -> List[TrackRecord]:
        """Process one frame, waiting for any frame already in flight."""
        with self._lock:
            return self._process_frame(frame_data)

    def try_process(self, frame_data: FrameData) -> Optional[List[TrackRecord]]:
        """
        Process one frame unless another is still in flight.

        Returns:
            The frame's records, or None if the frame was dropped.
        """
        if not self._lock.acquire(blocking=False):
            self.stats.dropped_frames += 1
            logging.warning(
                f"Frame {frame_data.frame_index} dropped: pipeline busy "
                f"(dropped={self.stats.dropped_frames})"
            )
            return None
        try:
            return self._process_frame(frame_data)
        finally:
            self._lock.release()

    def process_detections(
        self,
        detections: Iterable[Any],
        timestamp: float,
        frame_size: Optional[Tuple[int, int]] = None,
    ) -> List[TrackRecord]:
        """
        Feed detections from an alternative detector straight into tracking.

        Args:
            detections: Anything ObjectTracker.update() accepts.
            timestamp: Capture time of the frame the detections belong to.
            frame_size: (width, height) of the detector's coordinate space.
                None means the camera model's resolution.
        """
        with self._lock:
            self.stats.frame_count += 1
            return self._track_and_locate(detections, timestamp, frame_size)

    def reset(self) -> None:
        """Discard detector, tracker and speed state; track ids restart at 1."""
        with self._lock:
            if self.detector is not None:
                self.detector.reset()
            self.tracker.reset()
            self.registry.reset()
            self.stats = PipelineStats()
        logging.info("Pipeline reset")

    def run(self, source: ObservationSource) -> None:
        """
        Run the processing loop over an observation source.

        Opens the source, processes frames until stopped, exhausted or
        max_frames is reached, then closes it.
        """
        self._running = True
        self.stats = PipelineStats()

        try:
            source.open()
            logging.info(f"Pipeline started: source={source.source_id}")

            while self._running:
                if self.config.max_frames is not None and self.stats.frame_count >= self.config.max_frames:
                    logging.info(f"Frame limit reached ({self.config.max_frames})")
                    break

                frame_data = source.read()

                if frame_data is None:
                    if source.exhausted:
                        logging.info(f"Source exhausted: {source.source_id}")
                        break
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                        )
                        break
                    logging.warning(
                        f"Frame read failed ({self.stats.consecutive_failures}/"
                        f"{self.config.max_consecutive_failures})"
                    )
                    time.sleep(self.config.retry_delay)
                    continue

                self.stats.consecutive_failures = 0
                self.process(frame_data)
                self._log_stats_periodically()

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._running = False
            try:
                source.close()
            except Exception as e:
                logging.warning(f"Error closing source: {e}")
            logging.info(
                f"Pipeline stopped: frames={self.stats.frame_count}, "
                f"records={self.stats.record_count}, dropped={self.stats.dropped_frames}"
            )

    def stop(self) -> None:
        """Signal the run loop to stop after the current frame."""
        self._running = False

    def _process_frame(self, frame_data: FrameData) -> List[TrackRecord]:
        self.stats.frame_count += 1
        detector = self._ensure_detector(frame_data)

        frame = frame_data.frame
        if isinstance(frame, np.ndarray) and frame.ndim >= 2:
            detections = detector.detect(frame)
        elif isinstance(detector, MotionDetector):
            # Samples the strided plane directly, no copy.
            detections = detector.process_frame(frame, frame_data.stride)
        else:
            detections = detector.detect(frame_data.as_array())

        return self._track_and_locate(
            detections, frame_data.timestamp, (frame_data.width, frame_data.height)
        )

    def _ensure_detector(self, frame_data: FrameData) -> Detector:
        if self.detector is None:
            self.detector = MotionDetector(frame_data.width, frame_data.height, self.motion_config)
        return self.detector

    def _track_and_locate(
        self,
        detections: Iterable[Any],
        timestamp: float,
        frame_size: Optional[Tuple[int, int]],
    ) -> List[TrackRecord]:
        tracks = self.tracker.update(detections)
        self.registry.prune(t.track_id for t in self.tracker.get_all_tracks())

        scale = self._camera_scale(frame_size)
        records = [self._locate_track(track, timestamp, scale) for track in tracks]

        self.stats.record_count += len(records)
        if self.stats.frame_count % 30 == 0 and records:
            logging.debug(
                f"[TRACK] frame={self.stats.frame_count} ids={[r.track_id for r in records]}"
            )

        self._emit(records)
        return records

    def _camera_scale(self, frame_size: Optional[Tuple[int, int]]) -> Tuple[float, float]:
        """Factors mapping frame pixels to camera-model pixels."""
        if frame_size is None:
            return (1.0, 1.0)
        width, height = frame_size
        if width <= 0 or height <= 0:
            return (1.0, 1.0)
        camera = self.locator.camera
        return (camera.resolution_width / width, camera.resolution_height / height)

    def _locate_track(
        self, track: Track, timestamp: float, scale: Tuple[float, float]
    ) -> TrackRecord:
        state = TrackState.from_track(track)
        sx, sy = scale
        if (sx, sy) != (1.0, 1.0):
            b = state.bbox
            state = replace(state, bbox=BoundingBox(b.x1 * sx, b.y1 * sy, b.x2 * sx, b.y2 * sy))

        location = self.locator.locate(state)
        speed = self.registry.update(track.track_id, location.position, timestamp)

        return TrackRecord(
            track_id=track.track_id,
            bbox=track.bbox.as_xywh(),
            position=location.position,
            speed_mps=speed,
            confidence=track.confidence,
            timestamp=timestamp,
            label=track.label,
            display_label=self.locator.display_name(track.label),
            distance_m=location.distance_m,
        )

    def _emit(self, records: List[TrackRecord]) -> None:
        for sink in self._sinks:
            try:
                sink(records)
            except Exception as e:
                self.stats.sink_errors += 1
                logging.warning(f"Sink error: {e}")

    def _log_stats_periodically(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: frames={self.stats.frame_count}, "
                f"records={self.stats.record_count}, "
                f"live_tracks={len(self.tracker.get_all_tracks())}, "
                f"dropped={self.stats.dropped_frames}"
            )
            self.stats.last_stats_log_time = now


def create_pipeline_from_config(
    config: Union[Config, Dict[str, Any]],
    detector: Optional[Detector] = None,
    max_frames: Optional[int] = None,
) -> PerceptionPipeline:
    """
    Factory function to create a PerceptionPipeline from the app config.

    Args:
        config: Typed Config or the raw dict from load_config().
        detector: Optional detector; defaults to a MotionDetector created
            on the first frame.
        max_frames: Optional frame limit for run().
    """
    if isinstance(config, dict):
        config = Config.from_dict(config)

    camera = CameraModel.from_config(config.camera_model)
    reference_sizes = ReferenceSizeTable(
        sizes=config.geo.reference_sizes,
        display_names=config.geo.display_names,
    )
    locator = GeoLocator(camera, reference_sizes, default_label=config.geo.default_label)
    registry = GeoStateRegistry(
        max_samples=config.geo.max_samples,
        min_samples=config.geo.min_samples,
        alpha=config.geo.speed_alpha,
    )
    tracker = ObjectTracker(config.tracking)

    return PerceptionPipeline(
        detector=detector,
        tracker=tracker,
        locator=locator,
        registry=registry,
        motion_config=config.motion,
        config=PipelineConfig(max_frames=max_frames),
    )

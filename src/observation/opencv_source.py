"""
OpenCV-based observation source.

Supports:
- Video files (device_id as file path)
- Network streams (device_id as URL)
- Local cameras (device_id as int, e.g., 0)

Frames are converted to grayscale luminance unless configured otherwise,
since the motion detector only looks at brightness.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union

import cv2
import numpy as np

from models.config import SourceConfig
from models.frame import FrameData
from .base import ObservationConfig, ObservationSource


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int), stream URL (str), or file path (str).
        max_retries: Maximum attempts to open the capture.
        rotate: Rotation in degrees (0, 90, 180, 270).
    """
    device_id: Union[int, str] = 0
    max_retries: int = 3
    rotate: int = 0

    @classmethod
    def from_source_config(cls, cfg: SourceConfig) -> "OpenCVSourceConfig":
        """Adapter: Create from the `source` config section."""
        device_id = cfg.device_id
        # Allow "0" from the command line to mean camera 0.
        if isinstance(device_id, str) and device_id.isdigit():
            device_id = int(device_id)
        return cls(
            source_id=cfg.source_id,
            fps=cfg.fps,
            device_id=device_id,
        )


class OpenCVSource(ObservationSource):
    """
    Observation source wrapping cv2.VideoCapture.

    Example:
        config = OpenCVSourceConfig(device_id="clips/beach.mp4")
        with OpenCVSource(config) as source:
            for frame_data in source:
                pipeline.process(frame_data)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def _open_source(self) -> None:
        retries = self._opencv_config.max_retries
        for attempt in range(1, retries + 1):
            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            if attempt < retries:
                wait_time = min(2 ** attempt, 10)
                logging.warning(
                    f"Failed to open {self.device_id} (attempt {attempt}/{retries}), "
                    f"retrying in {wait_time}s"
                )
                time.sleep(wait_time)

        if self._cap is None:
            raise RuntimeError(f"Failed to open {self.device_id} after {retries} attempts")

        if isinstance(self.device_id, int) and self._opencv_config.fps:
            self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
        logging.info(f"Capture device: {self.device_id}")

    def _read_frame(self, frame_index: int) -> Optional[FrameData]:
        if self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                self._mark_exhausted()
            else:
                logging.warning(f"Failed to read frame from {self.device_id}")
            return None

        return FrameData.from_numpy(
            self._apply_transforms(frame),
            timestamp=self._frame_timestamp(frame_index),
            frame_index=frame_index,
            source=self.source_id,
        )

    def _frame_timestamp(self, frame_index: int) -> float:
        """Media time for files (so replays give true speeds), wall clock otherwise."""
        if self.is_file:
            pos_ms = self._cap.get(cv2.CAP_PROP_POS_MSEC)
            if pos_ms and pos_ms > 0:
                return pos_ms / 1000.0
            fps = self._cap.get(cv2.CAP_PROP_FPS) or self._opencv_config.fps
            if fps:
                return frame_index / float(fps)
        return time.time()

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply rotation and grayscale conversion."""
        rotate = self._opencv_config.rotate
        if rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

        if self._opencv_config.grayscale and frame.ndim == 3:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        return frame

    def _close_source(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

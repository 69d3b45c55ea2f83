"""
In-memory observation source.

Replays luminance frames that are already in memory: numpy images or raw
Y-plane buffers with a row stride, as camera preview APIs deliver them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from models.frame import FrameData, LumaBuffer
from .base import ObservationConfig, ObservationSource


@dataclass
class BufferSourceConfig(ObservationConfig):
    """
    Attributes:
        width: Frame width for raw buffers (ignored for 2-D arrays).
        height: Frame height for raw buffers (ignored for 2-D arrays).
        row_stride: Bytes per row for raw buffers; defaults to width.
        fps: Used to derive timestamps (frame_index / fps).
    """
    width: int = 0
    height: int = 0
    row_stride: Optional[int] = None
    fps: Optional[int] = 30


class BufferSource(ObservationSource):
    """Observation source over a finite sequence of frames."""

    def __init__(self, frames: Sequence[LumaBuffer], config: Optional[BufferSourceConfig] = None):
        super().__init__(config or BufferSourceConfig(source_id="buffer"))
        self._buffer_config: BufferSourceConfig = self._config
        self._frames: List[LumaBuffer] = list(frames)

    def _open_source(self) -> None:
        logging.debug(f"Replaying {len(self._frames)} buffered frames")

    def _read_frame(self, frame_index: int) -> Optional[FrameData]:
        if frame_index > len(self._frames):
            self._mark_exhausted()
            return None

        frame = self._frames[frame_index - 1]
        fps = self._buffer_config.fps or 30
        timestamp = frame_index / float(fps)

        if isinstance(frame, np.ndarray) and frame.ndim >= 2:
            return FrameData.from_numpy(frame, timestamp, frame_index=frame_index, source=self.source_id)

        cfg = self._buffer_config
        return FrameData.from_luma_bytes(
            frame,
            row_stride=cfg.row_stride or cfg.width,
            width=cfg.width,
            height=cfg.height,
            timestamp=timestamp,
            frame_index=frame_index,
            source=self.source_id,
        )

"""
Frame source contract for the perception pipeline.

A source hands out grayscale FrameData one frame at a time. Finite inputs
(video files, in-memory replays) end by flagging themselves exhausted;
live inputs may return None for a frame and recover on the next read,
which the pipeline run loop counts as a transient failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings shared by every frame source.

    Attributes:
        source_id: Stamped on each FrameData.source (e.g. "beach-cam").
        fps: Nominal frame rate. Finite sources derive timestamps from it.
        grayscale: Convert colour input to single-channel luminance.
    """
    source_id: str = "default"
    fps: Optional[int] = None
    grayscale: bool = True


class ObservationSource(ABC):
    """
    Base class for frame sources.

    Subclasses implement _open_source() and _read_frame(); the base keeps
    the open/exhausted state and the frame counter so every source reports
    them the same way to the run loop.

        with BufferSource(frames) as source:
            for frame_data in source:
                pipeline.process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._exhausted = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def exhausted(self) -> bool:
        """True once a finite source has delivered its last frame."""
        return self._exhausted

    @property
    def frame_index(self) -> int:
        """Frames delivered since open."""
        return self._frame_index

    def open(self) -> None:
        """
        Open the source and restart the frame counter.

        Raises:
            RuntimeError: If the underlying input cannot be opened.
        """
        if self._is_open:
            return
        self._open_source()
        self._is_open = True
        self._exhausted = False
        self._frame_index = 0
        logging.info(f"{type(self).__name__} opened: source_id={self.source_id}")

    def read(self) -> Optional[FrameData]:
        """Next frame, or None when closed, exhausted or a live read failed."""
        if not self._is_open or self._exhausted:
            return None
        frame_data = self._read_frame(self._frame_index + 1)
        if frame_data is not None:
            self._frame_index = frame_data.frame_index
        return frame_data

    def close(self) -> None:
        """Release the input. Safe to call more than once."""
        self._close_source()
        if self._is_open:
            logging.info(
                f"{type(self).__name__} closed: source_id={self.source_id}, "
                f"frames={self._frame_index}"
            )
        self._is_open = False

    def _mark_exhausted(self) -> None:
        self._exhausted = True
        logging.info(f"End of input reached: source_id={self.source_id}")

    @abstractmethod
    def _open_source(self) -> None:
        """Acquire the underlying input."""

    @abstractmethod
    def _read_frame(self, frame_index: int) -> Optional[FrameData]:
        """
        Produce the frame numbered frame_index.

        Return None for a missing frame; call _mark_exhausted() first when
        the input has ended for good.
        """

    def _close_source(self) -> None:
        pass

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """Yield frames until a read returns None."""
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        frame_data = self.read()
        while frame_data is not None:
            yield frame_data
            frame_data = self.read()

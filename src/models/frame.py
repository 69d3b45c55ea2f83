"""
FrameData model for captured video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

LumaBuffer = Union[bytes, bytearray, memoryview, np.ndarray]


@dataclass
class FrameData:
    """
    Metadata and payload for a captured video frame.

    Attributes:
        frame: Luminance payload. Either a 2-D uint8 array (rows x cols) or a
            flat row-major byte buffer whose rows are row_stride bytes apart.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since start.
        source: Identifier for the camera/video source.
        row_stride: Bytes per row; may exceed width when rows are padded.
    """
    frame: LumaBuffer
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None
    row_stride: Optional[int] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @classmethod
    def from_luma_bytes(
        cls,
        luma: LumaBuffer,
        row_stride: int,
        width: int,
        height: int,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a raw Y plane as delivered by camera APIs."""
        return cls(
            frame=luma,
            width=width,
            height=height,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
            row_stride=row_stride,
        )

    @property
    def stride(self) -> int:
        """Row stride in bytes (defaults to width for packed frames)."""
        if self.row_stride is not None:
            return self.row_stride
        if isinstance(self.frame, np.ndarray) and self.frame.ndim >= 2:
            return int(self.frame.shape[1])
        return self.width

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def as_array(self) -> np.ndarray:
        """
        2-D (height, width) uint8 view of the luminance plane.

        Row padding is dropped; a short buffer is zero-filled to full size.
        """
        if isinstance(self.frame, np.ndarray) and self.frame.ndim >= 2:
            return self.frame
        if isinstance(self.frame, np.ndarray):
            flat = self.frame.reshape(-1)
        else:
            flat = np.frombuffer(self.frame, dtype=np.uint8)

        stride = max(self.stride, self.width)
        needed = stride * self.height
        if flat.size < needed:
            padded = np.zeros(needed, np.uint8)
            padded[:flat.size] = flat
            flat = padded
        return flat[:needed].reshape(self.height, stride)[:, :self.width]

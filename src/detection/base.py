"""
Detection interfaces.

We keep this lightweight so the tracker stays detector-agnostic:
- motion detection (background subtraction on a downsampled grid)
- any classifier backend that yields labelled boxes per frame
"""

from __future__ import annotations

from typing import List

import numpy as np

from models.detection import Detection


class Detector:
    """Detector interface returning detections in source pixel space."""

    def detect(self, frame: np.ndarray) -> List[Detection]:
        raise NotImplementedError

    def reset(self) -> None:
        """Discard any per-stream state (background models, history)."""

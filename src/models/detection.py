"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in source pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def area(self) -> float:
        if self.is_degenerate:
            return 0.0
        return self.width * self.height

    @property
    def max_dimension(self) -> float:
        return max(self.width, self.height)

    @property
    def is_degenerate(self) -> bool:
        """True when the box has no positive area."""
        return self.width <= 0 or self.height <= 0

    def shifted(self, dx: float, dy: float) -> "BoundingBox":
        """Return the same box translated by (dx, dy)."""
        return BoundingBox(self.x1 + dx, self.y1 + dy, self.x2 + dx, self.y2 + dy)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    @classmethod
    def from_tuple(cls, t: Sequence[float]) -> "BoundingBox":
        """Create from (x1, y1, x2, y2) tuple."""
        return cls(x1=float(t[0]), y1=float(t[1]), x2=float(t[2]), y2=float(t[3]))

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)


@dataclass(frozen=True)
class Detection:
    """
    A single detection from a detector backend.

    The motion detector emits score 1.0 and no label; classifier backends
    fill in both.

    Attributes:
        bbox: Bounding box in source pixel coordinates.
        score: Detection score (0-1).
        label: Optional object class label (e.g. "person").
    """
    bbox: BoundingBox
    score: float = 1.0
    label: Optional[str] = None

    @property
    def x(self) -> float:
        return self.bbox.x1

    @property
    def y(self) -> float:
        return self.bbox.y1

    @property
    def w(self) -> float:
        return self.bbox.width

    @property
    def h(self) -> float:
        return self.bbox.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @classmethod
    def from_xywh(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        score: float = 1.0,
        label: Optional[str] = None,
    ) -> "Detection":
        """Create Detection from x, y, width, height."""
        return cls(bbox=BoundingBox.from_xywh(x, y, w, h), score=score, label=label)

    @classmethod
    def from_xyxy(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        score: float = 1.0,
        label: Optional[str] = None,
    ) -> "Detection":
        """Create Detection from x1, y1, x2, y2 coordinates."""
        return cls(
            bbox=BoundingBox(x1=x1, y1=y1, x2=x2, y2=y2),
            score=score,
            label=label,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Detection":
        """
        Adapter: Convert an alternative detector result to a Detection.

        Accepts {"bbox": [x1, y1, x2, y2], "score": s, "label": l}. The
        {"box": [x1, y1, x2, y2, score], "tag": l} shape emitted by YOLO
        wrappers is accepted as well.
        """
        box = d.get("bbox", d.get("box"))
        if box is None or len(box) < 4:
            raise ValueError(f"Detection dict has no usable bbox: {d!r}")
        score = d.get("score")
        if score is None:
            score = box[4] if len(box) > 4 else 1.0
        label = d.get("label", d.get("tag"))
        return cls.from_xyxy(
            float(box[0]), float(box[1]), float(box[2]), float(box[3]),
            score=float(score),
            label=str(label) if label is not None else None,
        )

    @classmethod
    def from_numpy_row(cls, row: np.ndarray) -> "Detection":
        """
        Adapter: Convert from numpy array row [x1, y1, x2, y2, ...] to Detection.
        """
        return cls(
            bbox=BoundingBox(
                x1=float(row[0]),
                y1=float(row[1]),
                x2=float(row[2]),
                y2=float(row[3]),
            ),
            score=float(row[4]) if len(row) > 4 else 1.0,
        )


def coerce_detection(item: Any) -> Detection:
    """Normalize any supported detection shape into a Detection."""
    if isinstance(item, Detection):
        return item
    if isinstance(item, dict):
        return Detection.from_dict(item)
    return Detection.from_numpy_row(np.asarray(item, dtype=float))

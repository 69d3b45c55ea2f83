"""
Real-world reference sizes for object classes.

The pinhole distance estimate needs the physical size of what is being
looked at. Sizes are in meters and describe the dominant dimension of the
object (height for people, length for vehicles, wingspan for aircraft).
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

DEFAULT_REFERENCE_SIZE_M = 1.0

DEFAULT_REFERENCE_SIZES: Dict[str, float] = {
    # People and vehicles
    "person": 1.7,
    "bicycle": 1.7,
    "car": 4.5,
    "motorbike": 2.1,
    "motorcycle": 2.1,
    "aeroplane": 30.0,
    "airplane": 30.0,
    "bus": 12.0,
    "train": 25.0,
    "truck": 8.0,
    "boat": 6.0,
    "ship": 50.0,
    # Animals
    "bird": 0.25,
    "cat": 0.5,
    "dog": 0.7,
    "horse": 2.4,
    "sheep": 1.3,
    "cow": 2.5,
    "elephant": 5.5,
    "bear": 2.0,
    "zebra": 2.2,
    "giraffe": 4.5,
    # Street furniture and objects
    "traffic light": 3.0,
    "fire hydrant": 0.7,
    "stop sign": 0.8,
    "parking meter": 1.2,
    "bench": 1.5,
    "chair": 0.8,
    "sofa": 2.0,
    "dining table": 1.5,
    "bed": 2.0,
    "tv": 1.3,
    "laptop": 0.35,
    "mouse": 0.1,
    "remote": 0.2,
    "keyboard": 0.45,
    "cell phone": 0.15,
    "microwave": 0.5,
    "oven": 0.6,
    "toaster": 0.3,
    "sink": 0.6,
    "refrigerator": 0.7,
    # Sports equipment and aviation
    "frisbee": 0.27,
    "skis": 1.7,
    "snowboard": 1.5,
    "sports ball": 0.22,
    "kite": 8.0,
    "umbrella": 8.0,
    "paraglider": 8.0,
    "baseball bat": 0.9,
    "baseball glove": 0.3,
    "skateboard": 0.8,
    "surfboard": 8.0,
    "tennis racket": 0.7,
    # Small items
    "bottle": 0.25,
    "wine glass": 0.2,
    "cup": 0.1,
    "fork": 0.2,
    "knife": 0.25,
    "spoon": 0.18,
    "bowl": 0.15,
    "banana": 0.18,
    "apple": 0.08,
    "sandwich": 0.15,
    "orange": 0.07,
    "broccoli": 0.15,
    "carrot": 0.15,
    "hot dog": 0.15,
    "pizza": 0.3,
    "donut": 0.08,
    "cake": 0.2,
    "unknown": DEFAULT_REFERENCE_SIZE_M,
}

# Classifier labels that are really paragliders seen from below.
DEFAULT_DISPLAY_NAMES: Dict[str, str] = {
    "kite": "paraglider",
    "umbrella": "paraglider",
    "surfboard": "paraglider",
}


def _clean(label: str) -> str:
    return label.strip().lower()


class ReferenceSizeTable:
    """
    Lookup of real-world sizes by object class label.

    Lookup order: exact match, then the first entry (in table order) whose
    key contains the label or is contained in it, then the default size.
    """

    def __init__(
        self,
        sizes: Optional[Mapping[str, float]] = None,
        display_names: Optional[Mapping[str, str]] = None,
        default_size: float = DEFAULT_REFERENCE_SIZE_M,
    ):
        if default_size <= 0:
            raise ValueError(f"default_size must be positive, got {default_size}")
        merged = dict(DEFAULT_REFERENCE_SIZES)
        for key, value in (sizes or {}).items():
            if value <= 0:
                raise ValueError(f"reference size for {key!r} must be positive, got {value}")
            merged[_clean(key)] = float(value)
        self._sizes = merged
        self._display_names = dict(DEFAULT_DISPLAY_NAMES)
        self._display_names.update({_clean(k): v for k, v in (display_names or {}).items()})
        self.default_size = default_size

    def size_for(self, label: Optional[str]) -> float:
        """Reference size in meters for a label."""
        if not label:
            return self.default_size
        clean = _clean(label)
        if not clean:
            return self.default_size
        if clean in self._sizes:
            return self._sizes[clean]
        for key, value in self._sizes.items():
            if key in clean or clean in key:
                return value
        return self.default_size

    def display_name(self, label: Optional[str]) -> Optional[str]:
        """Label as it should be shown to users."""
        if label is None:
            return None
        clean = _clean(label)
        return self._display_names.get(clean, clean)

    def as_dict(self) -> Dict[str, float]:
        return dict(self._sizes)

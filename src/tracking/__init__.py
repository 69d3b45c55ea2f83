"""
Tracking module.

The canonical tracker implementation is in tracking.tracker.
"""

from .tracker import ObjectTracker, calculate_iou

__all__ = ["ObjectTracker", "calculate_iou"]

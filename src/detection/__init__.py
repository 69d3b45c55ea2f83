"""
Motion Geotracker - Detection Module

This module finds moving objects in video frames.
"""

from .base import Detector
from .motion import MotionDetector

__all__ = ['Detector', 'MotionDetector']

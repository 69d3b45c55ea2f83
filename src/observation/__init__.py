"""
Observation layer for pluggable frame sources.

This layer abstracts the source of frames (video file, stream, camera,
in-memory buffers) from the perception pipeline. Each source implements
the ObservationSource interface and returns FrameData objects.
"""

from models.config import SourceConfig

from .base import ObservationConfig, ObservationSource
from .buffer_source import BufferSource, BufferSourceConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(source_cfg: SourceConfig) -> ObservationSource:
    """Build the OpenCV source described by the `source` config section."""
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "BufferSource",
    "BufferSourceConfig",
    "create_source_from_config",
]

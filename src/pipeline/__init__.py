"""
Pipeline module for the motion geotracker.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources
- Motion detection and tracking
- Geolocation and speed estimation
- Delivery of per-frame records to sinks
"""

from .engine import (
    PerceptionPipeline,
    PipelineConfig,
    PipelineStats,
    create_pipeline_from_config,
)

__all__ = [
    "PerceptionPipeline",
    "PipelineConfig",
    "PipelineStats",
    "create_pipeline_from_config",
]

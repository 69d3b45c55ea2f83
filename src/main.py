"""
Motion Geotracker command line entry point.

Reads frames from a video file, stream or camera, runs motion detection,
tracking and geolocation, and writes one JSON line per tracked object and
frame to stdout.

Usage:
    python src/main.py --config config/config.yaml --source clips/beach.mp4

Arguments:
    --config: Path to configuration file
    --source: Video file, stream URL or camera index (overrides source.device_id)
    --max-frames: Stop after this many frames
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

import yaml

from models.config import Config
from models.record import TrackRecord
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline.engine import create_pipeline_from_config

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
DIFF_COMBINE_MODES = ('background', 'or', 'and')
ASSOCIATION_MODES = ('iou', 'enhanced')


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _check_rate(section: Dict[str, Any], key: str, prefix: str) -> Optional[str]:
    """Rates must lie in (0, 1]."""
    if key in section:
        value = section[key]
        if not _is_number(value) or not (0 < value <= 1):
            return f"{prefix}.{key} must be within (0, 1]"
    return None


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['source', 'camera_model', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Source
    source = config.get('source') or {}
    if 'device_id' not in source:
        return False, "Missing source.device_id"
    if not isinstance(source['device_id'], (int, str)) or isinstance(source['device_id'], bool):
        return False, "source.device_id must be an integer (index) or string (path/URL)"
    if isinstance(source['device_id'], int) and source['device_id'] < 0:
        return False, "source.device_id integer must be non-negative"
    if source.get('fps') is not None and not _is_positive_int(source['fps']):
        return False, "source.fps must be a positive integer"

    # Camera model
    camera = config.get('camera_model') or {}
    for key in ('resolution_width', 'resolution_height'):
        if key not in camera:
            return False, f"Missing camera_model.{key}"
        if not _is_positive_int(camera[key]):
            return False, f"camera_model.{key} must be a positive integer"
    for key in ('horizontal_fov_deg', 'vertical_fov_deg'):
        if key not in camera:
            return False, f"Missing camera_model.{key}"
        if not _is_number(camera[key]) or not (0 < camera[key] < 180):
            return False, f"camera_model.{key} must be between 0 and 180 degrees"
    for key in ('latitude', 'longitude'):
        if key not in camera:
            return False, f"Missing camera_model.{key}"
        if not _is_number(camera[key]):
            return False, f"camera_model.{key} must be a number"
    if not (-90 <= camera['latitude'] <= 90):
        return False, "camera_model.latitude must be between -90 and 90"
    for key in ('azimuth_deg', 'elevation_deg', 'height_above_ground'):
        if key in camera and not _is_number(camera[key]):
            return False, f"camera_model.{key} must be a number"

    # Motion detector (optional section)
    motion = config.get('motion') or {}
    for key in ('grid_width', 'grid_height', 'temporal_n', 'temporal_votes', 'max_blobs'):
        if key in motion and not _is_positive_int(motion[key]):
            return False, f"motion.{key} must be a positive integer"
    if motion.get('temporal_votes', 3) > motion.get('temporal_n', 4):
        return False, "motion.temporal_votes must not exceed motion.temporal_n"
    for key in ('alpha_bg', 'alpha_fg'):
        error = _check_rate(motion, key, 'motion')
        if error:
            return False, error
    if 'diff_combine' in motion and motion['diff_combine'] not in DIFF_COMBINE_MODES:
        return False, f"motion.diff_combine must be one of: {', '.join(DIFF_COMBINE_MODES)}"
    if 'min_blob_area' in motion:
        if not isinstance(motion['min_blob_area'], int) or motion['min_blob_area'] < 0:
            return False, "motion.min_blob_area must be a non-negative integer"

    # Tracking (optional section)
    tracking = config.get('tracking') or {}
    if 'iou_threshold' in tracking:
        iou = tracking['iou_threshold']
        if not _is_number(iou) or not (0 < iou <= 1):
            return False, "tracking.iou_threshold must be between 0 and 1"
    for key in ('max_age', 'min_hits', 'max_detections'):
        if key in tracking and not _is_positive_int(tracking[key]):
            return False, f"tracking.{key} must be a positive integer"
    if 'association' in tracking and tracking['association'] not in ASSOCIATION_MODES:
        return False, f"tracking.association must be one of: {', '.join(ASSOCIATION_MODES)}"
    error = _check_rate(tracking, 'velocity_smoothing', 'tracking')
    if error:
        return False, error

    # Geo (optional section)
    geo = config.get('geo') or {}
    max_samples = geo.get('max_samples', 20)
    min_samples = geo.get('min_samples', 5)
    if not _is_positive_int(max_samples) or max_samples < 2:
        return False, "geo.max_samples must be an integer >= 2"
    if not _is_positive_int(min_samples) or not (2 <= min_samples <= max_samples):
        return False, "geo.min_samples must be between 2 and geo.max_samples"
    error = _check_rate(geo, 'speed_alpha', 'geo')
    if error:
        return False, error
    sizes = geo.get('reference_sizes') or {}
    if not isinstance(sizes, dict):
        return False, "geo.reference_sizes must be a mapping of label to meters"
    for label, size in sizes.items():
        if not _is_number(size) or size <= 0:
            return False, f"geo.reference_sizes.{label} must be a positive number"

    # Log settings
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def json_lines_sink(stream=None):
    """Create a sink writing each record as one JSON line."""
    out = stream or sys.stdout

    def _sink(records: List[TrackRecord]) -> None:
        for record in records:
            out.write(json.dumps(record.to_dict()) + "\n")
        out.flush()

    return _sink


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Motion Geotracker')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--source', type=str, default=None,
                        help='Video file, stream URL or camera index')
    parser.add_argument('--max-frames', type=int, default=None,
                        help='Stop after this many frames')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.source is not None:
        config.setdefault('source', {})['device_id'] = (
            int(args.source) if args.source.isdigit() else args.source
        )

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    logging.info("Starting Motion Geotracker")

    app_config = Config.from_dict(config)
    try:
        pipeline = create_pipeline_from_config(app_config, max_frames=args.max_frames)
    except ValueError as e:
        logging.error(f"Invalid configuration: {e}")
        sys.exit(1)

    pipeline.add_sink(json_lines_sink())
    source = create_source_from_config(app_config.source)

    try:
        pipeline.run(source)
    except RuntimeError as e:
        logging.error(f"Source error: {e}")
        sys.exit(1)

    logging.info("Motion Geotracker stopped")


if __name__ == "__main__":
    main()

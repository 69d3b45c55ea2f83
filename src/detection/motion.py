"""
Motion detection module for finding moving regions in grayscale frames.

Works on a small downsampled copy of the frame: a per-pixel background
model with selective learning rates, an adaptive difference threshold,
temporal majority voting to suppress flicker, 3x3 morphology, and an
8-connected flood fill that turns the cleaned mask into boxes.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from models.config import MotionConfig
from models.detection import Detection
from models.frame import LumaBuffer

from .base import Detector

DIFF_COMBINE_MODES = ("background", "or", "and")

# Absolute bounds for the adaptive threshold.
MIN_THRESHOLD = 8.0
MAX_THRESHOLD = 80.0

GridRect = Tuple[int, int, int, int]


class MotionDetector(Detector):
    """
    Detect moving regions using background subtraction on a downsampled grid.

    One instance owns its background model, masks and history ring, all of
    which are mutated in place on every call. Instances are not thread-safe:
    frames must be processed strictly one after another.
    """

    def __init__(
        self,
        source_width: int,
        source_height: int,
        config: Optional[MotionConfig] = None,
    ) -> None:
        """
        Initialize the motion detector.

        Args:
            source_width: Width of incoming frames in pixels.
            source_height: Height of incoming frames in pixels.
            config: Tuning parameters; defaults to MotionConfig().

        Raises:
            ValueError: If the frame or grid dimensions or any tuning
                parameter is out of range.
        """
        cfg = config or MotionConfig()
        _validate(source_width, source_height, cfg)

        self.config = cfg
        self.source_width = int(source_width)
        self.source_height = int(source_height)
        self.grid_width = int(cfg.grid_width)
        self.grid_height = int(cfg.grid_height)
        self.scale_x = self.source_width / self.grid_width
        self.scale_y = self.source_height / self.grid_height

        # Nearest source pixel for each grid cell center.
        rows = np.floor((np.arange(self.grid_height) + 0.5) * self.scale_y).astype(np.int64)
        cols = np.floor((np.arange(self.grid_width) + 0.5) * self.scale_x).astype(np.int64)
        self._sample_rows = np.clip(rows, 0, self.source_height - 1)
        self._sample_cols = np.clip(cols, 0, self.source_width - 1)

        self._kernel = np.ones((3, 3), np.uint8)
        self._allocate()

        logging.info(
            f"Motion detector initialized: source={self.source_width}x{self.source_height}, "
            f"grid={self.grid_width}x{self.grid_height}, diff_combine={cfg.diff_combine}"
        )

    def _allocate(self) -> None:
        shape = (self.grid_height, self.grid_width)
        self._bg = np.zeros(shape, np.float32)
        self._curr = np.zeros(shape, np.float32)
        self._prev = np.zeros(shape, np.float32)
        self._mask = np.zeros(shape, np.uint8)
        self._mask_stab = np.zeros(shape, np.uint8)
        # Ring is longer than temporal_n so a vote never reads the slot being written.
        self._history = [np.zeros(shape, np.uint8) for _ in range(self.config.temporal_n + 2)]
        self._hist_ptr = 0
        self._initialized = False
        self._frames_since_init = 0
        self.frame_count = 0

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def background(self) -> np.ndarray:
        """Read-only view of the background model."""
        view = self._bg.view()
        view.flags.writeable = False
        return view

    @property
    def foreground_mask(self) -> np.ndarray:
        view = self._mask.view()
        view.flags.writeable = False
        return view

    @property
    def stabilized_mask(self) -> np.ndarray:
        view = self._mask_stab.view()
        view.flags.writeable = False
        return view

    @property
    def history_length(self) -> int:
        return len(self._history)

    def detect(self, frame: np.ndarray) -> List[Detection]:
        """
        Detect motion in a numpy frame.

        Args:
            frame: 2-D grayscale or 3-channel BGR image.

        Returns:
            Detections in source pixel coordinates.
        """
        if frame.ndim == 3:
            frame = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        frame = np.ascontiguousarray(frame)
        row_stride = frame.shape[1] if frame.ndim == 2 else self.source_width
        return self.process_frame(frame.reshape(-1), row_stride)

    def process_frame(self, frame: LumaBuffer, row_stride: int) -> List[Detection]:
        """
        Process one frame's luminance plane.

        Args:
            frame: Row-major luminance bytes; rows are row_stride bytes apart.
            row_stride: Bytes per row (may exceed the frame width).

        Returns:
            Detections in source pixel coordinates. Always empty on the
            first call, which only seeds the background model.
        """
        self.frame_count += 1
        self._downsample(frame, row_stride)

        if not self._initialized:
            self._bg[...] = self._curr
            self._prev[...] = self._curr
            self._initialized = True
            self._frames_since_init = 0
            logging.debug("Motion background initialized")
            return []

        self._frames_since_init += 1
        if self._frames_since_init <= self.config.warmup_frames:
            self._update_background()
            self._prev[...] = self._curr
            return []

        self._make_foreground_mask()
        self._push_history_and_vote()
        self._morphological_cleanup()
        if self.config.noise_filter:
            self._noise_reduction_filter()

        rects = self._find_blobs()

        self._update_background()
        self._prev[...] = self._curr

        detections = [
            Detection.from_xywh(
                x * self.scale_x,
                y * self.scale_y,
                w * self.scale_x,
                h * self.scale_y,
                score=1.0,
            )
            for x, y, w, h in rects
        ]
        if detections:
            logging.debug(f"Motion frame {self.frame_count}: {len(detections)} blobs")
        return detections

    def reset(self) -> None:
        """Discard the background model and history."""
        self._allocate()
        logging.info("Motion background model reset")

    def _downsample(self, frame: LumaBuffer, row_stride: int) -> None:
        if isinstance(frame, np.ndarray):
            flat = frame.reshape(-1)
        else:
            flat = np.frombuffer(frame, dtype=np.uint8)
        if flat.size == 0:
            self._curr.fill(0.0)
            return

        stride = max(int(row_stride), 0)
        idx = self._sample_rows[:, None] * stride + self._sample_cols[None, :]
        # Short or mis-strided buffers sample the nearest valid byte.
        np.clip(idx, 0, flat.size - 1, out=idx)
        self._curr[...] = flat[idx]

    def _adaptive_threshold(self, diffs: np.ndarray) -> float:
        bins = np.clip(diffs.astype(np.int32), 0, 255)
        hist = np.bincount(bins.ravel(), minlength=256)
        target = int(diffs.size * 0.75)
        p75 = min(int(np.searchsorted(np.cumsum(hist), target, side="left")), 255)
        return float(np.clip(self.config.base_threshold + 0.3 * p75, MIN_THRESHOLD, MAX_THRESHOLD))

    def _make_foreground_mask(self) -> None:
        bg_diffs = np.abs(self._curr - self._bg)
        foreground = bg_diffs >= self._adaptive_threshold(bg_diffs)

        mode = self.config.diff_combine
        if mode != "background":
            frame_diffs = np.abs(self._curr - self._prev)
            frame_thresh = self._adaptive_threshold(frame_diffs) * self.config.frame_diff_scale
            frame_motion = frame_diffs >= frame_thresh
            if mode == "or":
                foreground = foreground | frame_motion
            else:
                foreground = foreground & frame_motion

        self._mask.fill(0)
        self._mask[foreground] = 255

    def _push_history_and_vote(self) -> None:
        self._history[self._hist_ptr][...] = self._mask
        self._hist_ptr = (self._hist_ptr + 1) % len(self._history)

        votes = np.zeros(self._mask.shape, np.int32)
        for k in range(self.config.temporal_n):
            buf = self._history[(self._hist_ptr - 1 - k) % len(self._history)]
            votes += buf >= 128

        self._mask_stab.fill(0)
        self._mask_stab[votes >= self.config.temporal_votes] = 255

    def _morphological_cleanup(self) -> None:
        # Close (fill gaps) then open (remove specks); replicated border
        # keeps edge pixels comparing only against in-bounds neighbours.
        mask = self._mask_stab
        for _ in range(self.config.morph_iters):
            mask = cv2.dilate(mask, self._kernel, borderType=cv2.BORDER_REPLICATE)
            mask = cv2.erode(mask, self._kernel, borderType=cv2.BORDER_REPLICATE)
        for _ in range(self.config.morph_iters):
            mask = cv2.erode(mask, self._kernel, borderType=cv2.BORDER_REPLICATE)
            mask = cv2.dilate(mask, self._kernel, borderType=cv2.BORDER_REPLICATE)
        self._mask_stab[...] = mask

    def _noise_reduction_filter(self) -> None:
        """Keep interior pixels only when at least 4 of their 3x3 block are set."""
        fg = (self._mask_stab >= 128).astype(np.uint8)
        support = cv2.filter2D(fg, -1, self._kernel, borderType=cv2.BORDER_CONSTANT)
        interior = support[1:-1, 1:-1] >= 4
        self._mask_stab[1:-1, 1:-1] = np.where(interior, 255, 0).astype(np.uint8)

    def _find_blobs(self) -> List[GridRect]:
        """
        8-connected components of the stabilized mask as grid rectangles.

        Uses an explicit stack; recursion depth would otherwise grow with
        blob size. Components are reported in raster order of their first
        pixel and scanning stops once max_blobs are kept.
        """
        w, h = self.grid_width, self.grid_height
        flat = self._mask_stab.reshape(-1)
        fg = (flat != 0).tolist()
        visited = bytearray(w * h)
        out: List[GridRect] = []

        for start in np.flatnonzero(flat).tolist():
            if visited[start]:
                continue
            visited[start] = 1
            stack = [start]
            min_x = max_x = start % w
            min_y = max_y = start // w
            area = 0

            while stack:
                idx = stack.pop()
                cy, cx = divmod(idx, w)
                area += 1
                if cx < min_x:
                    min_x = cx
                elif cx > max_x:
                    max_x = cx
                if cy < min_y:
                    min_y = cy
                elif cy > max_y:
                    max_y = cy

                for ny in range(max(cy - 1, 0), min(cy + 2, h)):
                    row = ny * w
                    for nx in range(max(cx - 1, 0), min(cx + 2, w)):
                        nidx = row + nx
                        if fg[nidx] and not visited[nidx]:
                            visited[nidx] = 1
                            stack.append(nidx)

            rect = (min_x, min_y, max_x - min_x + 1, max_y - min_y + 1)
            if self._is_valid_blob(area, rect):
                out.append(rect)
                if len(out) >= self.config.max_blobs:
                    break
        return out

    def _is_valid_blob(self, area: int, rect: GridRect) -> bool:
        cfg = self.config
        if area < cfg.min_blob_area:
            return False

        _, _, width, height = rect
        if cfg.max_blob_fraction < 1.0:
            if width > self.grid_width * cfg.max_blob_fraction:
                return False
            if height > self.grid_height * cfg.max_blob_fraction:
                return False

        if cfg.max_aspect_ratio is not None:
            aspect_ratio = max(width, height) / min(width, height)
            if aspect_ratio > cfg.max_aspect_ratio:
                return False

        if cfg.min_density > 0.0 and area / float(width * height) < cfg.min_density:
            return False
        return True

    def _update_background(self) -> None:
        # Slow learning under foreground keeps objects from ghosting into the background.
        alpha = np.where(self._mask_stab == 0, self.config.alpha_bg, self.config.alpha_fg)
        self._bg += alpha.astype(np.float32) * (self._curr - self._bg)


def _validate(source_width: int, source_height: int, cfg: MotionConfig) -> None:
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"source dimensions must be positive, got {source_width}x{source_height}")
    if cfg.grid_width <= 0 or cfg.grid_height <= 0:
        raise ValueError(f"grid dimensions must be positive, got {cfg.grid_width}x{cfg.grid_height}")
    if cfg.temporal_n < 1:
        raise ValueError(f"temporal_n must be at least 1, got {cfg.temporal_n}")
    if not (1 <= cfg.temporal_votes <= cfg.temporal_n):
        raise ValueError(
            f"temporal_votes must be within [1, temporal_n={cfg.temporal_n}], got {cfg.temporal_votes}"
        )
    for name in ("alpha_bg", "alpha_fg"):
        value = getattr(cfg, name)
        if not (0.0 < value <= 1.0):
            raise ValueError(f"{name} must be within (0, 1], got {value}")
    if cfg.morph_iters < 0:
        raise ValueError(f"morph_iters must be non-negative, got {cfg.morph_iters}")
    if cfg.max_blobs < 1:
        raise ValueError(f"max_blobs must be at least 1, got {cfg.max_blobs}")
    if cfg.diff_combine not in DIFF_COMBINE_MODES:
        raise ValueError(
            f"diff_combine must be one of: {', '.join(DIFF_COMBINE_MODES)}, got {cfg.diff_combine!r}"
        )
    if cfg.warmup_frames < 0:
        raise ValueError(f"warmup_frames must be non-negative, got {cfg.warmup_frames}")

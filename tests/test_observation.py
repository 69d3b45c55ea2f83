"""
Tests for observation layer.
"""

from typing import Optional

import numpy as np
import pytest

from models.config import SourceConfig
from models.frame import FrameData
from observation import create_source_from_config
from observation.base import ObservationConfig, ObservationSource
from observation.buffer_source import BufferSource, BufferSourceConfig
from observation.opencv_source import OpenCVSource, OpenCVSourceConfig


class MockSource(ObservationSource):
    """Live-style source: a None in the frame list is a failed read."""

    def __init__(self, config: ObservationConfig, frames: list = None):
        super().__init__(config)
        self._frames = frames or []
        self._cursor = 0

    def _open_source(self) -> None:
        self._cursor = 0

    def _read_frame(self, frame_index: int) -> Optional[FrameData]:
        if self._cursor >= len(self._frames):
            self._mark_exhausted()
            return None
        frame = self._frames[self._cursor]
        self._cursor += 1
        if frame is None:
            return None
        return FrameData.from_numpy(frame, float(frame_index), frame_index, self.source_id)


class TestObservationConfig:
    def test_default_config(self):
        config = ObservationConfig()
        assert config.source_id == "default"
        assert config.fps is None
        assert config.grayscale is True


class TestOpenCVSourceConfig:
    def test_from_source_config(self):
        config = OpenCVSourceConfig.from_source_config(
            SourceConfig(device_id="clips/beach.mp4", source_id="beach", fps=25)
        )
        assert config.device_id == "clips/beach.mp4"
        assert config.source_id == "beach"
        assert config.fps == 25

    def test_numeric_string_is_camera_index(self):
        config = OpenCVSourceConfig.from_source_config(SourceConfig(device_id="1"))
        assert config.device_id == 1

    def test_factory(self):
        source = create_source_from_config(SourceConfig(device_id=0, source_id="cam"))
        assert isinstance(source, OpenCVSource)
        assert source.source_id == "cam"
        assert not source.is_open

    def test_read_before_open_returns_none(self):
        source = OpenCVSource(OpenCVSourceConfig(device_id="missing.mp4"))
        assert source.read() is None


class TestMockSource:
    def test_source_lifecycle(self):
        frames = [np.zeros((100, 100), dtype=np.uint8) for _ in range(3)]
        source = MockSource(ObservationConfig(source_id="test"), frames)

        assert not source.is_open
        source.open()
        assert source.is_open

        fd = source.read()
        assert fd.source == "test"
        assert fd.frame_index == 1

        source.close()
        assert not source.is_open

    def test_failed_read_is_not_exhaustion(self):
        frame = np.zeros((10, 10), dtype=np.uint8)
        source = MockSource(ObservationConfig(), [frame, None, frame])
        source.open()

        assert source.read().frame_index == 1
        assert source.read() is None
        assert not source.exhausted
        assert source.read().frame_index == 2
        assert source.read() is None
        assert source.exhausted
        assert source.read() is None

    def test_reopen_restarts_counter(self):
        frame = np.zeros((10, 10), dtype=np.uint8)
        source = MockSource(ObservationConfig(), [frame])

        with source:
            list(source)
        assert source.exhausted

        source.open()
        assert not source.exhausted
        assert source.frame_index == 0
        assert source.read().frame_index == 1

    def test_iterate_requires_open(self):
        source = MockSource(ObservationConfig(), [])
        with pytest.raises(RuntimeError):
            list(source)


class TestBufferSource:
    def test_replays_arrays(self):
        frames = [np.full((36, 64), i, dtype=np.uint8) for i in range(4)]

        with BufferSource(frames) as source:
            out = list(source)

        assert len(out) == 4
        assert out[2].frame_index == 3
        assert out[1].timestamp < out[2].timestamp
        assert source.exhausted
        assert not source.is_open

    def test_raw_buffers_carry_stride(self):
        config = BufferSourceConfig(source_id="preview", width=64, height=36, row_stride=80)
        source = BufferSource([bytes(80 * 36)], config)
        source.open()

        fd = source.read()

        assert fd.stride == 80
        assert fd.size == (64, 36)
        assert fd.source == "preview"
        assert source.read() is None
        assert source.exhausted

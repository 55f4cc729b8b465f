from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from errors import PipelineBuildError, SeekError
from frame_encoder import derive_width
from sampler import Task


class FakeGrabber:
    """Stands in for FrameGrabber: fixed geometry/duration, records teardown."""

    instances: list["FakeGrabber"] = []

    def __init__(self, source, height, timeout=None, *, orig=(1920, 1080),
                 duration=10_000_000_000, fail_build=False, fail_seek_at=None):
        self.source = Path(source)
        self.height = height
        self.width = 0
        self.orig = orig
        self.duration = duration
        self.fail_build = fail_build
        self.fail_seek_at = fail_seek_at
        self.started = False
        self.closed = False
        self.grabbed: list[int] = []
        FakeGrabber.instances.append(self)

    def __enter__(self):
        if self.fail_build or not self.source.exists():
            raise PipelineBuildError(f"not a readable file: {self.source}")
        return self

    def __exit__(self, *exc):
        self.closed = True

    def start(self):
        self.started = True
        self.width = derive_width(*self.orig, self.height)
        return self.duration

    def grab(self, position):
        if self.fail_seek_at is not None and len(self.grabbed) == self.fail_seek_at:
            raise SeekError(f"seek to {position} ns refused")
        self.grabbed.append(position)
        return np.full((self.height, self.width, 3), len(self.grabbed), dtype=np.uint8)


@pytest.fixture
def fake_grabber():
    FakeGrabber.instances.clear()
    yield FakeGrabber
    FakeGrabber.instances.clear()


@pytest.fixture
def make_task(tmp_path):
    src = tmp_path / "clip.mp4"
    src.write_bytes(b"\x00")
    out = tmp_path / "out"
    out.mkdir()

    def _make(**kw):
        fields = dict(prefix="shot", height=180, samples=3, target=out,
                      index=0, source=src, ref_idx=0)
        fields.update(kw)
        return Task(**fields)

    return _make

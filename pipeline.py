# =========  pipeline.py  =========
"""
Per-task GStreamer pipeline construction.

    filesrc → decodebin ┄┄ videoconvert → videoscale → appsink

The decodebin → videoconvert link is left open: decodebin only exposes its
pads after pre-roll, so `frame_grabber` links the video pad once the
source geometry is known.

Public API
----------
build_pipeline(source)   → PipelineHandle (NULL state, not playing)
reset_on_exit(handle)    → context manager forcing NULL on every exit
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import gi
gi.require_version("Gst", "1.0")
from gi.repository import Gst

from errors import PipelineBuildError

log = logging.getLogger(__name__)


@dataclass
class PipelineHandle:
    pipeline: Gst.Pipeline
    decoder:  Gst.Element
    convert:  Gst.Element
    sink:     Gst.Element
    # filled in once caps are negotiated
    width:  int = 0
    height: int = 0


# ── builder ────────────────────────────────────────────────────────────────
def _make(factory: str) -> Gst.Element:
    el = Gst.ElementFactory.make(factory, None)
    if el is None:
        raise PipelineBuildError(f"GStreamer element '{factory}' is not available")
    return el


def build_pipeline(source: Path) -> PipelineHandle:
    Gst.init(None)

    source = Path(source)
    if not source.is_file():
        raise PipelineBuildError(f"not a readable file: {source}")

    pipeline = Gst.Pipeline.new(None)
    src     = _make("filesrc")
    decoder = _make("decodebin")
    convert = _make("videoconvert")
    scale   = _make("videoscale")
    sink    = _make("appsink")

    src.set_property("location", str(source))
    # one frame at a time, no read-ahead, no clock sync
    sink.set_property("max-buffers", 1)
    sink.set_property("sync", False)

    for el in (src, decoder, convert, scale, sink):
        if not pipeline.add(el):
            raise PipelineBuildError(f"failed to add {el.get_name()} to pipeline")

    if not src.link(decoder):
        raise PipelineBuildError("failed to link filesrc to decodebin")
    if not convert.link(scale) or not scale.link(sink):
        raise PipelineBuildError("failed to link videoconvert ! videoscale ! appsink")

    log.debug("pipeline built for %s", source)
    return PipelineHandle(pipeline, decoder, convert, sink)


# ── teardown guard ─────────────────────────────────────────────────────────
@contextmanager
def reset_on_exit(handle: PipelineHandle) -> Iterator[PipelineHandle]:
    """Yield `handle`; bring its pipeline back to NULL however we leave."""
    try:
        yield handle
    finally:
        handle.pipeline.set_state(Gst.State.NULL)

# =========  frame_grabber.py  =========
"""
Blocking facade over one per-task GStreamer pipeline.

Every call either finishes the state change / seek it asked for or raises;
unrelated bus traffic is skipped while waiting.

Public API
----------
with FrameGrabber(path, height) as g:
    g.start()           → duration in ns (pipeline PAUSED, caps fixed)
    g.grab(pos_ns)      → HxWx3 uint8 frame at that position
Properties
----------
.width / .height    → output geometry (after start())
.duration           → stream duration in ns (after start())
"""
from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, Optional

import gi
gi.require_version("Gst", "1.0")
from gi.repository import Gst
import numpy as np

from errors import (
    DurationUnavailableError,
    NoVideoStreamError,
    PipelineBuildError,
    SamplerError,
    SeekError,
)
from frame_encoder import derive_width, frame_to_array
from pipeline import PipelineHandle, build_pipeline, reset_on_exit

log = logging.getLogger(__name__)

_WAIT_MASK = Gst.MessageType.STATE_CHANGED | Gst.MessageType.ERROR


# ────────────────────────────────────────────────────────────────────────────
class FrameGrabber:
    def __init__(self, source: Path, height: int,
                 timeout: Optional[float] = None):
        self.source = Path(source)
        self.height = int(height)
        self.width = 0
        self.duration = 0
        self._timeout_ns = (Gst.CLOCK_TIME_NONE if timeout is None
                            else int(timeout * Gst.SECOND))
        self._timeout = timeout
        self._h: Optional[PipelineHandle] = None
        self._stack = ExitStack()
        self._probes: list[tuple[Gst.Pad, int]] = []
        self._probes_lock = threading.Lock()   # pad-added runs on a streaming thread

    # ── lifetime ────────────────────────────────────────────────────────────
    def __enter__(self) -> "FrameGrabber":
        self._h = self._stack.enter_context(reset_on_exit(build_pipeline(self.source)))
        self._h.decoder.connect("pad-added", self._on_pad_added)
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        with self._probes_lock:
            self._probes = []
        self._stack.close()

    # ── public API ──────────────────────────────────────────────────────────
    def start(self) -> int:
        h = self._h
        bus = h.pipeline.get_bus()

        if h.pipeline.set_state(Gst.State.PAUSED) == Gst.StateChangeReturn.FAILURE:
            raise PipelineBuildError(
                self._pending_error(bus) or "failed to set pipeline state to paused")

        # pre-roll: decodebin has typefound and exposed its pads
        self._wait_for_state(bus, h.decoder, Gst.State.PAUSED, PipelineBuildError)

        pad, orig_w, orig_h = self._video_pad()
        self.width = derive_width(orig_w, orig_h, self.height)
        if self.width < 1:
            raise PipelineBuildError(
                f"derived width is 0 for {orig_w}x{orig_h} at height {self.height}")
        h.width, h.height = self.width, self.height
        h.sink.set_property("caps", Gst.Caps.from_string(
            f"video/x-raw,format=RGB,width={self.width},height={self.height}"))

        if pad.link(h.convert.get_static_pad("sink")) != Gst.PadLinkReturn.OK:
            raise PipelineBuildError("failed to link decodebin to videoconvert")
        self._release_pads()
        log.debug("%s: %dx%d → %dx%d", self.source.name,
                  orig_w, orig_h, self.width, self.height)

        self._wait_for_state(bus, h.pipeline, Gst.State.PAUSED, DurationUnavailableError)

        ok, duration = h.pipeline.query_duration(Gst.Format.TIME)
        if not ok or duration <= 0:
            raise DurationUnavailableError(f"failed to get duration of {self.source}")
        self.duration = duration
        return duration

    def grab(self, position: int) -> np.ndarray:
        h = self._h
        if not h.pipeline.seek_simple(
            Gst.Format.TIME,
            Gst.SeekFlags.FLUSH | Gst.SeekFlags.ACCURATE,
            int(position),
        ):
            raise SeekError(f"seek to {position} ns refused")

        sample = self._pull_preroll()
        if sample is None:
            reason = self._pending_error(h.pipeline.get_bus()) or "no frame after seek"
            raise SeekError(f"{reason} (at {position} ns)")
        buf = sample.get_buffer()
        if buf is None:
            raise SeekError(f"failed to get buffer at {position} ns")

        ok, info = buf.map(Gst.MapFlags.READ)
        if not ok:
            raise SeekError(f"failed to map buffer at {position} ns")
        try:
            return frame_to_array(bytes(info.data), self.width, self.height)
        finally:
            buf.unmap(info)

    # ── internals ───────────────────────────────────────────────────────────
    def _on_pad_added(self, _decoder, pad: Gst.Pad) -> None:
        # hold buffers (not events) until start() has picked and linked a pad
        pid = pad.add_probe(Gst.PadProbeType.BLOCK | Gst.PadProbeType.BUFFER,
                            lambda *_: Gst.PadProbeReturn.OK)
        with self._probes_lock:
            self._probes.append((pad, pid))

    def _release_pads(self) -> None:
        with self._probes_lock:
            probes, self._probes = self._probes, []
        for pad, pid in probes:
            pad.remove_probe(pid)

    def _video_pad(self) -> tuple[Gst.Pad, int, int]:
        for pad in self._h.decoder.srcpads:
            caps = pad.get_current_caps()
            if caps is None or caps.get_size() == 0:
                continue
            s = caps.get_structure(0)
            if not s.get_name().startswith("video/"):
                continue
            ok_w, width = s.get_int("width")
            ok_h, height = s.get_int("height")
            if ok_w and ok_h and height > 0:
                return pad, width, height
        raise NoVideoStreamError(f"no video dimension found in {self.source}")

    def _pull_preroll(self) -> Optional[Gst.Sample]:
        if self._timeout is None:
            return self._h.sink.emit("pull-preroll")
        return self._h.sink.emit("try-pull-preroll", self._timeout_ns)

    def _wait_for_state(self, bus: Gst.Bus, src: Gst.Object, state: Gst.State,
                        error: type[SamplerError]) -> None:
        what = f"{src.get_name()} to reach {state.value_nick}"

        def _reached(msg: Gst.Message) -> bool:
            if msg.type != Gst.MessageType.STATE_CHANGED:
                return False
            _old, new, _pending = msg.parse_state_changed()
            return new == state

        self._wait_for_message(bus, src, _reached, error, what)

    def _wait_for_message(self, bus: Gst.Bus, src: Gst.Object,
                          predicate: Callable[[Gst.Message], bool],
                          error: type[SamplerError], what: str) -> None:
        while True:
            msg = bus.timed_pop_filtered(self._timeout_ns, _WAIT_MASK)
            if msg is None:
                raise error(f"timed out waiting for {what}")
            if msg.type == Gst.MessageType.ERROR:
                err, _dbg = msg.parse_error()
                raise error(f"{err.message} (waiting for {what})")
            if msg.src == src and predicate(msg):
                return

    @staticmethod
    def _pending_error(bus: Gst.Bus) -> Optional[str]:
        msg = bus.pop_filtered(Gst.MessageType.ERROR)
        if msg is None:
            return None
        err, _dbg = msg.parse_error()
        return err.message

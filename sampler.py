"""
sampler.py  – one sampling task, start to finish

    build → pause → geometry/duration → plan → (seek, pull, encode) × N

The grabber is entered as a context manager before its first state change,
so the pipeline is back at NULL on every way out of `run_task`.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import config
from frame_encoder import output_name, write_png
from sample_planner import plan_samples

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Task:
    prefix:  str
    height:  int
    samples: int
    target:  Path
    index:   int
    source:  Path
    # routes progress back to the row that queued this task
    ref_idx: int


def _gst_grabber(source: Path, height: int, timeout: Optional[float]):
    from frame_grabber import FrameGrabber   # GStreamer only loaded by workers
    return FrameGrabber(source, height, timeout=timeout)


@dataclass
class TaskContext:
    """Per-worker state reused across tasks."""
    rng: random.Random = field(default_factory=random.Random)
    grabber_factory: Callable = _gst_grabber
    unbiased: bool = config.UNBIASED_SAMPLING
    timeout: Optional[float] = config.BUS_TIMEOUT_SEC


def run_task(ctx: TaskContext, task: Task,
             report_progress: Callable[[float], None]) -> list[Path]:
    """Run `task`; returns the PNGs written.  Any failure propagates."""
    written: list[Path] = []
    with ctx.grabber_factory(task.source, task.height, ctx.timeout) as grabber:
        duration = grabber.start()
        plan = plan_samples(duration, task.samples, ctx.rng, unbiased=ctx.unbiased)
        log.debug("task %d: %s duration=%d ns plan=%s",
                  task.ref_idx, task.source.name, duration, plan)

        for i, pos in enumerate(plan):
            frame = grabber.grab(pos)
            out = Path(task.target) / output_name(task.prefix, task.index, pos)
            written.append(write_png(frame, out))
            report_progress((i + 1) / task.samples)

    return written

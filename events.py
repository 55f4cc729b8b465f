#!/usr/bin/env python3
"""
events.py  – progress hub

• `ProgressEvent` is the only thing workers tell the outside world.
• `ProgressChannel` is a thread-safe FIFO: any worker may post, one
  consumer (terminal loop, web board, tests) drains it.
"""

from __future__ import annotations

import queue
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgressEvent:
    """
    `progress` is the completed fraction in [0, 1], or None once the task
    has failed; nothing follows a None for the same `ref_idx`.
    """
    ref_idx: int
    progress: Optional[float]

    @property
    def failed(self) -> bool:
        return self.progress is None


class ProgressChannel:
    def __init__(self) -> None:
        self._fifo: "queue.Queue[ProgressEvent]" = queue.Queue()

    # ── producer side (worker threads) ─────────────────────────────────
    def post(self, event: ProgressEvent) -> None:
        self._fifo.put(event)

    def report(self, ref_idx: int, progress: Optional[float]) -> None:
        self.post(ProgressEvent(ref_idx, progress))

    # ── consumer side ──────────────────────────────────────────────────
    def poll(self) -> ProgressEvent | None:
        """Return next queued event or None (non-blocking)."""
        try:
            return self._fifo.get_nowait()
        except queue.Empty:
            return None

    def get(self, timeout: float | None = None) -> ProgressEvent | None:
        """Block for the next event; None if `timeout` elapses first."""
        try:
            return self._fifo.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[ProgressEvent]:
        out = []
        while (ev := self.poll()) is not None:
            out.append(ev)
        return out

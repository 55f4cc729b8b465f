"""
worker_pool.py

Fixed set of long-lived threads sharing one FIFO task queue.  Each worker
runs a single task at a time and forwards its progress to the channel;
a failure becomes one `None` event for that task and the worker moves on.

Public API
----------
pool = WorkerPool(channel, workers=None, seed=None)
pool.submit(task)
pool.close()          → queued tasks still run, then the threads are joined
"""
from __future__ import annotations

import logging
import os
import queue
import random
import threading
from typing import Callable, Optional

import psutil

import config
from events import ProgressChannel
from sampler import Task, TaskContext, run_task

log = logging.getLogger(__name__)

_SHUTDOWN = object()      # one per worker; the thread exits on receipt

Runner = Callable[[TaskContext, Task, Callable[[float], None]], object]


def physical_cores() -> int:
    return psutil.cpu_count(logical=False) or os.cpu_count() or 1


class WorkerPool:
    def __init__(self,
                 channel: ProgressChannel,
                 workers: Optional[int] = None,
                 runner: Runner = run_task,
                 seed: Optional[int] = None,
                 unbiased: bool = config.UNBIASED_SAMPLING,
                 timeout: Optional[float] = config.BUS_TIMEOUT_SEC,
                 grabber_factory: Optional[Callable] = None) -> None:
        self.channel = channel
        self.size = max(1, int(workers or config.WORKERS or physical_cores()))
        self._runner = runner
        self._tasks: "queue.Queue[object]" = queue.Queue()
        self._closed = False
        self._threads: list[threading.Thread] = []

        for n in range(self.size):
            # distinct but reproducible streams when seeded
            rng = random.Random(None if seed is None else seed + n)
            ctx = TaskContext(rng=rng, unbiased=unbiased, timeout=timeout)
            if grabber_factory is not None:
                ctx.grabber_factory = grabber_factory
            t = threading.Thread(target=self._work, args=(ctx,),
                                 name=f"sampler-{n}", daemon=True)
            t.start()
            self._threads.append(t)
        log.info("started %d sampler workers", self.size)

    # ── producer side ──────────────────────────────────────────────────────
    def submit(self, task: Task) -> None:
        if self._closed:
            raise RuntimeError("worker pool is closed")
        self._tasks.put(task)

    def close(self, wait: bool = True) -> None:
        """Stop accepting tasks; workers finish what is queued, then exit."""
        if self._closed:
            return
        self._closed = True
        for _ in self._threads:
            self._tasks.put(_SHUTDOWN)
        if wait:
            for t in self._threads:
                t.join()

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ── worker loop ────────────────────────────────────────────────────────
    def _work(self, ctx: TaskContext) -> None:
        while True:
            task = self._tasks.get()
            if task is _SHUTDOWN:
                return
            ref_idx = task.ref_idx

            def _report(p: float, ref_idx: int = ref_idx) -> None:
                self.channel.report(ref_idx, p)

            try:
                self._runner(ctx, task, _report)
            except Exception:
                log.exception("task %d (%s) failed", ref_idx, task.source)
                self.channel.report(ref_idx, None)
            else:
                log.info("task %d (%s) done", ref_idx, task.source.name)

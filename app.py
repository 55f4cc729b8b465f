#!/usr/bin/env python3
"""
app.py – command-line front end

Turns the paths on the command line into one batch of tasks, feeds them to
the worker pool and renders progress events until every task has either
finished or failed.  Per-task failures are logged and reported; they never
stop the run.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import config
import web_remote
from batch_builder import build_batch
from events import ProgressChannel, ProgressEvent
from progress_board import ProgressBoard
from sampler import Task
from worker_pool import WorkerPool

log = logging.getLogger(__name__)

EXIT_OK, EXIT_FAILED, EXIT_USAGE = 0, 1, 2


# ── helpers ────────────────────────────────────────────────────────────────
def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="video-sampler",
        description="Extract randomly-timed PNG stills from video files")
    ap.add_argument("paths", nargs="+", type=Path,
                    help="video files, or directories to take videos from")
    ap.add_argument("--prefix", required=True,
                    help="output filename prefix")
    ap.add_argument("--height", type=_positive_int, default=config.DEFAULT_HEIGHT,
                    help=f"output height in pixels (default: {config.DEFAULT_HEIGHT})")
    ap.add_argument("--samples", type=_positive_int, default=config.DEFAULT_SAMPLES,
                    help=f"stills per video (default: {config.DEFAULT_SAMPLES})")
    ap.add_argument("--target", type=Path, default=Path(config.DEFAULT_TARGET),
                    help="existing output directory (default: %(default)s)")
    ap.add_argument("--workers", type=_positive_int, default=config.WORKERS,
                    help="worker threads (default: physical core count)")
    ap.add_argument("--seed", type=int, default=None,
                    help="seed the timestamp picker for reproducible runs")
    ap.add_argument("--unbiased", action=argparse.BooleanOptionalAction,
                    default=config.UNBIASED_SAMPLING,
                    help="use rejection sampling instead of plain modulo")
    ap.add_argument("--probe", action=argparse.BooleanOptionalAction,
                    default=config.PROBE_SOURCES,
                    help="skip files without a video stream before queueing")
    ap.add_argument("--timeout", type=float, default=config.BUS_TIMEOUT_SEC,
                    help="seconds to wait on any pipeline step (default: forever)")
    ap.add_argument("--web-port", type=int, default=config.WEB_PORT,
                    help="serve a status page on this port")
    ap.add_argument("--log-level", default=config.LOG_LEVEL)
    return ap


def configure_logging(level: str, log_file: Optional[str] = config.LOG_FILE) -> None:
    fmt = logging.Formatter(
        "%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s")
    root = logging.getLogger()
    root.setLevel(level.upper())
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for h in handlers:
        h.setFormatter(fmt)
        root.addHandler(h)


# ── main application ───────────────────────────────────────────────────────
class SamplerApp:
    def __init__(self, pool: WorkerPool, channel: ProgressChannel,
                 board: Optional[ProgressBoard] = None, out=sys.stdout):
        self.pool    = pool
        self.channel = channel
        self.board   = board or ProgressBoard()
        self.out     = out

    def enqueue(self, tasks: Sequence[Task]) -> None:
        for task in tasks:
            if task.ref_idx != self.board.next_ref():
                raise ValueError(
                    f"task ref_idx {task.ref_idx} != row {self.board.next_ref()}")
            self.board.add(task.source.name)
            self.pool.submit(task)

    def _render(self, event: ProgressEvent) -> None:
        row = self.board.apply(event)
        status = "FAIL" if row.failed else f"{row.progress * 100:3.0f}%"
        print(f"[{status}] {event.ref_idx:>3}  {row.name}", file=self.out, flush=True)

    def run(self) -> int:
        """Render events until every queued task is finished; returns exit code."""
        while not self.board.all_finished():
            event = self.channel.get(timeout=config.PROGRESS_POLL_SEC)
            if event is not None:
                self._render(event)
        for event in self.channel.drain():
            self._render(event)
        self.pool.close()

        failed = self.board.failed_count()
        print(f"{len(self.board) - failed}/{len(self.board)} videos sampled",
              file=self.out, flush=True)
        return EXIT_FAILED if failed else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    board = ProgressBoard()
    try:
        tasks = build_batch(
            args.paths,
            prefix=args.prefix,
            height=args.height,
            samples=args.samples,
            target=args.target,
            ref_base=board.next_ref(),
            probe=args.probe,
        )
    except ValueError as exc:
        log.error("%s", exc)
        return EXIT_USAGE
    if not tasks:
        log.error("no videos found in %s", ", ".join(map(str, args.paths)))
        return EXIT_USAGE

    if args.web_port is not None:
        web_remote.start(board, args.web_port, str(args.target))

    channel = ProgressChannel()
    pool = WorkerPool(channel, workers=args.workers, seed=args.seed,
                      unbiased=args.unbiased, timeout=args.timeout)
    app = SamplerApp(pool, channel, board)
    app.enqueue(tasks)
    try:
        return app.run()
    except KeyboardInterrupt:
        log.warning("interrupted; in-flight tasks are abandoned")
        pool.close(wait=False)
        return 130


if __name__ == "__main__":
    sys.exit(main())

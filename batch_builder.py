"""
batch_builder.py  – turn paths into a batch of sampling tasks

Directories are expanded one level into their video files; everything is
naturally sorted by file name so `index` follows what a user sees in a
file browser.  Each task gets the next `ref_idx` after `ref_base`.
"""
from __future__ import annotations

import logging
import re
import typing as _t
from pathlib import Path

import av

import config
from sampler import Task

log = logging.getLogger(__name__)


# ---------- natural sort --------------------------------------------------
def _nat_key(s: str) -> list[_t.Union[int, str]]:
    return [int(t) if t.isdigit() else t.lower()
            for t in re.split(r"(\d+)", s)]


def _is_video_name(p: Path) -> bool:
    return p.suffix.lower() in config.VIDEO_EXTENSIONS


# ---------- probe ---------------------------------------------------------
def has_video_stream(fp: Path) -> bool:
    """True when PyAV can open `fp` and finds at least one video stream."""
    try:
        with av.open(str(fp)) as c:
            return any(s.type == "video" for s in c.streams)
    except (av.error.FFmpegError, OSError):
        return False


# ---------- collection ----------------------------------------------------
def collect_sources(paths: _t.Iterable[Path]) -> list[Path]:
    """
    Explicit files are kept as given (any extension); directories
    contribute their video-named files.  Result is deduplicated and sorted.
    """
    seen: dict[Path, None] = {}
    for p in map(Path, paths):
        if p.is_dir():
            for child in p.iterdir():
                if child.is_file() and _is_video_name(child):
                    seen.setdefault(child, None)
        else:
            seen.setdefault(p, None)
    return sorted(seen, key=lambda p: _nat_key(p.name))


def build_batch(
    paths: _t.Iterable[Path],
    *,
    prefix: str,
    height: int,
    samples: int,
    target: Path,
    ref_base: int = 0,
    probe: bool = config.PROBE_SOURCES,
) -> list[Task]:
    """Validate the shared options and return one Task per source."""
    if not prefix:
        raise ValueError("prefix must not be empty")
    if height < 1:
        raise ValueError(f"height must be at least 1, got {height}")
    if samples < 1:
        raise ValueError(f"samples must be at least 1, got {samples}")
    target = Path(target)
    if not target.is_dir():
        raise ValueError(f"target directory does not exist: {target}")

    sources = collect_sources(paths)
    if probe:
        kept = []
        for fp in sources:
            if has_video_stream(fp):
                kept.append(fp)
            else:
                log.warning("skipping unreadable file: %s", fp)
        sources = kept

    return [
        Task(prefix=prefix, height=height, samples=samples, target=target,
             index=i, source=fp, ref_idx=ref_base + i)
        for i, fp in enumerate(sources)
    ]

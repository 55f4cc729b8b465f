"""
frame_encoder.py

Raw RGB buffers → PNG stills on disk, plus the naming / geometry helpers
the grabber and executor share.
"""
from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from errors import EncodeError

NS_PER_MS = 1_000_000


def derive_width(orig_width: int, orig_height: int, target_height: int) -> int:
    """Width keeping the source aspect at `target_height` (rounded down)."""
    if orig_height <= 0:
        raise ValueError("source height must be positive")
    return orig_width * target_height // orig_height


def output_name(prefix: str, index: int, position_ns: int) -> str:
    """`prefix-index-MM-SS-mmm.png` for a capture at `position_ns`."""
    ms_total = int(position_ns) // NS_PER_MS
    minutes, ms_rest = divmod(ms_total, 60_000)
    seconds, millis = divmod(ms_rest, 1000)
    return f"{prefix}-{index}-{minutes:02d}-{seconds:02d}-{millis:03d}.png"


def frame_to_array(data: bytes, width: int, height: int) -> np.ndarray:
    """
    Packed RGB888 → HxWx3 uint8.
    GStreamer pads each row to a 4-byte stride; the padding is dropped.
    """
    if width <= 0 or height <= 0:
        raise EncodeError(f"invalid frame geometry {width}x{height}")
    stride = len(data) // height
    if stride < width * 3:
        raise EncodeError(
            f"buffer of {len(data)} bytes too small for {width}x{height} RGB")
    rows = np.frombuffer(data, np.uint8, count=stride * height).reshape((height, stride))
    return np.ascontiguousarray(rows[:, : width * 3].reshape((height, width, 3)))


def write_png(frame: np.ndarray, path: Path) -> Path:
    """Write an 8-bit RGB PNG (no palette, no alpha)."""
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise EncodeError(f"expected HxWx3 frame, got shape {frame.shape}")
    path = Path(path)
    try:
        img = Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8))
        with open(path, "wb") as fh:
            img.save(fh, format="PNG")
    except OSError as exc:
        raise EncodeError(f"failed to write {path}: {exc}") from exc
    return path

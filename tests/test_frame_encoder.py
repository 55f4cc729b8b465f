import numpy as np
import pytest
from PIL import Image

from errors import EncodeError
from frame_encoder import derive_width, frame_to_array, output_name, write_png


@pytest.mark.parametrize("orig_w,orig_h,target_h,expected", [
    (1920, 1080, 180, 320),
    (1920, 1080, 100, 177),     # 177.7 rounds down
    (640, 480, 480, 640),
    (720, 576, 1, 1),
    (1, 1000, 10, 0),
])
def test_derive_width_is_floored(orig_w, orig_h, target_h, expected):
    assert derive_width(orig_w, orig_h, target_h) == expected
    assert derive_width(orig_w, orig_h, target_h) == (orig_w * target_h) // orig_h


def test_derive_width_rejects_zero_height():
    with pytest.raises(ValueError):
        derive_width(100, 0, 10)


@pytest.mark.parametrize("position_ns,name", [
    (0, "shot-2-00-00-000.png"),
    (5_042_000_000, "shot-2-00-05-042.png"),
    (65_432_999_999, "shot-2-01-05-432.png"),
    (3_725_001_000_000, "shot-2-62-05-001.png"),
])
def test_output_name(position_ns, name):
    assert output_name("shot", 2, position_ns) == name


def test_frame_to_array_drops_row_padding():
    width, height = 3, 2                       # 9 bytes per row, stride 12
    rows = []
    for y in range(height):
        pixels = bytes(range(y * 9, y * 9 + 9))
        rows.append(pixels + b"\xff\xff\xff")
    arr = frame_to_array(b"".join(rows), width, height)

    assert arr.shape == (2, 3, 3)
    assert arr.dtype == np.uint8
    assert arr[0, 0].tolist() == [0, 1, 2]
    assert arr[1, 2].tolist() == [15, 16, 17]
    assert 255 not in arr


def test_frame_to_array_rejects_short_buffer():
    with pytest.raises(EncodeError):
        frame_to_array(b"\x00" * 10, 4, 2)


def test_write_png_is_8bit_rgb(tmp_path):
    frame = np.zeros((4, 6, 3), dtype=np.uint8)
    frame[..., 0] = 200
    out = write_png(frame, tmp_path / "f.png")

    with Image.open(out) as img:
        assert img.format == "PNG"
        assert img.mode == "RGB"
        assert img.size == (6, 4)
        assert img.getpixel((0, 0)) == (200, 0, 0)


def test_write_png_missing_directory(tmp_path):
    frame = np.zeros((2, 2, 3), dtype=np.uint8)
    with pytest.raises(EncodeError):
        write_png(frame, tmp_path / "nope" / "f.png")
    assert not (tmp_path / "nope").exists()


def test_write_png_rejects_wrong_shape(tmp_path):
    with pytest.raises(EncodeError):
        write_png(np.zeros((2, 2), dtype=np.uint8), tmp_path / "f.png")

import pytest

import batch_builder
from batch_builder import build_batch, collect_sources


@pytest.fixture
def videos(tmp_path):
    d = tmp_path / "in"
    d.mkdir()
    for name in ("ep10.mkv", "ep2.mp4", "ep1.MOV", "notes.txt"):
        (d / name).write_bytes(b"\x00")
    out = tmp_path / "out"
    out.mkdir()
    return d, out


def test_directory_expansion_is_naturally_sorted(videos):
    d, _ = videos
    assert [p.name for p in collect_sources([d])] == ["ep1.MOV", "ep2.mp4", "ep10.mkv"]


def test_explicit_files_kept_and_deduplicated(videos):
    d, _ = videos
    got = collect_sources([d / "notes.txt", d, d / "ep2.mp4"])
    assert [p.name for p in got] == ["ep1.MOV", "ep2.mp4", "ep10.mkv", "notes.txt"]


def test_tasks_get_index_and_ref_idx(videos):
    d, out = videos
    tasks = build_batch([d], prefix="cap", height=240, samples=5,
                        target=out, ref_base=7, probe=False)

    assert [t.index for t in tasks] == [0, 1, 2]
    assert [t.ref_idx for t in tasks] == [7, 8, 9]
    assert {t.prefix for t in tasks} == {"cap"}
    assert all(t.target == out and t.height == 240 and t.samples == 5 for t in tasks)


def test_probe_drops_files_without_video(videos, monkeypatch):
    d, out = videos
    monkeypatch.setattr(batch_builder, "has_video_stream", lambda fp: fp.name != "ep2.mp4")
    tasks = build_batch([d], prefix="cap", height=240, samples=1, target=out, probe=True)
    assert [t.source.name for t in tasks] == ["ep1.MOV", "ep10.mkv"]
    assert [t.index for t in tasks] == [0, 1]


def test_probe_rejects_garbage_file(videos):
    d, _ = videos
    assert not batch_builder.has_video_stream(d / "notes.txt")


@pytest.mark.parametrize("kw", [
    {"prefix": ""},
    {"height": 0},
    {"samples": 0},
])
def test_invalid_options(videos, kw):
    d, out = videos
    opts = dict(prefix="cap", height=240, samples=1, target=out, probe=False)
    opts.update(kw)
    with pytest.raises(ValueError):
        build_batch([d], **opts)


def test_missing_target_is_not_created(videos, tmp_path):
    d, _ = videos
    with pytest.raises(ValueError):
        build_batch([d], prefix="cap", height=240, samples=1,
                    target=tmp_path / "absent", probe=False)
    assert not (tmp_path / "absent").exists()

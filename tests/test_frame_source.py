import cv2
import numpy as np
import pytest

from depth2midi.detection.base import FrameSourceError
from depth2midi.frame_source import ArrayFrameSource, ReplayFrameSource, save_recording


def depth_frames(count):
    return [np.full((6, 8), 600 + i, dtype=np.uint16) for i in range(count)]


def test_array_source_polls_in_order():
    frames = depth_frames(2)
    source = ArrayFrameSource([frames[0], None, frames[1]])

    assert source.acquire_latest_frame()[0]
    assert source.acquire_latest_frame() == (False, None)
    ready, frame = source.acquire_latest_frame()
    assert ready and frame is frames[1]
    assert source.exhausted
    assert source.acquire_latest_frame() == (False, None)


def test_replay_from_directory(tmp_path):
    frames = depth_frames(3)
    paths = save_recording(frames, str(tmp_path / "session"))
    assert len(paths) == 3

    with ReplayFrameSource(str(tmp_path / "session")) as source:
        assert source.total_frames == 3
        replayed = []
        while not source.exhausted:
            ready, frame = source.acquire_latest_frame()
            assert ready
            replayed.append(frame)

    assert len(replayed) == 3
    for original, frame in zip(frames, replayed):
        assert frame.dtype == np.uint16
        np.testing.assert_array_equal(frame, original)


def test_replay_16bit_png(tmp_path):
    frame = np.arange(48, dtype=np.uint16).reshape(6, 8) * 1000
    assert cv2.imwrite(str(tmp_path / "depth_000000.png"), frame)

    source = ReplayFrameSource(str(tmp_path / "*.png"))
    source.open()
    ready, loaded = source.acquire_latest_frame()

    assert ready
    np.testing.assert_array_equal(loaded, frame)


def test_replay_ignores_other_files(tmp_path):
    save_recording(depth_frames(2), str(tmp_path))
    (tmp_path / "notes.txt").write_text("session notes")

    source = ReplayFrameSource(str(tmp_path))
    source.open()

    assert source.total_frames == 2


def test_replay_empty_pattern(tmp_path):
    with pytest.raises(FrameSourceError):
        ReplayFrameSource(str(tmp_path / "missing" / "*.npy")).open()


def test_replay_rejects_colour_frames(tmp_path):
    np.save(tmp_path / "depth_000000.npy", np.zeros((6, 8, 3), dtype=np.uint16))
    source = ReplayFrameSource(str(tmp_path))
    source.open()

    with pytest.raises(FrameSourceError):
        source.acquire_latest_frame()

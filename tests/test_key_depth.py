import numpy as np
import pytest

from depth2midi.detection.base import DetectionProcessingError
from depth2midi.detection.key_depth import KeyDepthEstimator
from depth2midi.detection.key_layout import KeyboardLayout
from depth2midi.detection.roi_utils import key_roi_bounds, masked_mean


@pytest.fixture
def layout():
    return KeyboardLayout(4, 80, first_semitone=0, white_width=10, black_width=6,
                          white_height=40, black_height=30, right_margin=4)


def test_uniform_difference(layout):
    diff = np.full((60, 80), 3.0, dtype=np.float32)
    occlusion = np.zeros(diff.shape, dtype=bool)

    samples = KeyDepthEstimator(layout).estimate(diff, occlusion)

    assert [s.key_id for s in samples] == [0, 1, 2, 3]
    for sample in samples:
        assert sample.value == pytest.approx(3.0)
        assert not sample.occluded


def test_only_key_rectangle_is_sampled(layout):
    diff = np.zeros((60, 80), dtype=np.float32)
    diff[:40, 60:70] = 5.0
    diff[40:, 60:70] = 100.0  # below the key rectangle

    samples = KeyDepthEstimator(layout).estimate(diff, np.zeros(diff.shape, dtype=bool))

    assert samples[2].value == pytest.approx(5.0)
    assert samples[1].value == pytest.approx(0.0)
    assert samples[3].value == pytest.approx(0.0)


def test_occluded_pixels_are_ignored(layout):
    diff = np.full((60, 80), 2.0, dtype=np.float32)
    diff[:, 65:70] = 100.0
    occlusion = np.zeros(diff.shape, dtype=bool)
    occlusion[:, 65:70] = True

    samples = KeyDepthEstimator(layout).estimate(diff, occlusion)

    assert samples[2].value == pytest.approx(2.0)
    assert not samples[2].occluded


def test_fully_occluded_key_holds_previous_sample(layout):
    layout[2].depth = 1.25
    diff = np.full((60, 80), 9.0, dtype=np.float32)
    occlusion = np.zeros(diff.shape, dtype=bool)
    occlusion[:, 58:72] = True
    estimator = KeyDepthEstimator(layout)

    first = estimator.estimate(diff, occlusion)
    second = estimator.estimate(diff, occlusion)

    assert first[2].occluded
    assert first[2].value == 1.25
    assert second[2] == first[2]
    assert first[0].value == pytest.approx(9.0)


def test_shape_mismatch_rejected(layout):
    with pytest.raises(DetectionProcessingError):
        KeyDepthEstimator(layout).estimate(np.zeros((60, 80)), np.zeros((60, 79), dtype=bool))


def test_roi_clipped_to_frame(layout):
    assert key_roi_bounds(layout[0], (20, 80)) == (44, 0, 54, 20)
    assert key_roi_bounds(layout[0], (20, 40)) is None


def test_masked_mean_all_excluded():
    assert masked_mean(np.ones((3, 3)), np.ones((3, 3), dtype=bool)) is None

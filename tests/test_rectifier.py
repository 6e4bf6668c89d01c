import numpy as np
import pytest

from depth2midi.app_config import DEFAULT_SOURCE_QUAD, WARP_HEIGHT, WARP_WIDTH
from depth2midi.detection.base import CalibrationError
from depth2midi.detection.rectifier import GeometryRectifier


def test_target_corners_map_back_to_source_quad():
    rectifier = GeometryRectifier(DEFAULT_SOURCE_QUAD, (WARP_WIDTH, WARP_HEIGHT))
    corners = [(0, 0), (WARP_WIDTH, 0), (0, WARP_HEIGHT), (WARP_WIDTH, WARP_HEIGHT)]

    projected = rectifier.project_to_source(corners)

    np.testing.assert_allclose(projected, np.asarray(DEFAULT_SOURCE_QUAD, dtype=np.float64), atol=1e-2)


def test_source_quad_maps_to_keyboard_corners():
    rectifier = GeometryRectifier(DEFAULT_SOURCE_QUAD, (WARP_WIDTH, WARP_HEIGHT))

    projected = rectifier.project_to_keyboard(DEFAULT_SOURCE_QUAD)

    np.testing.assert_allclose(projected, rectifier.target_points, atol=1e-2)


def test_rectify_output_size_and_dtype():
    rectifier = GeometryRectifier(DEFAULT_SOURCE_QUAD, (WARP_WIDTH, WARP_HEIGHT))
    frame = np.full((424, 512), 700.0, dtype=np.float32)

    rectified = rectifier.rectify(frame)

    assert rectified.shape == (WARP_HEIGHT, WARP_WIDTH)
    assert rectified.dtype == np.float32
    assert rectified[WARP_HEIGHT // 2, WARP_WIDTH // 2] == pytest.approx(700.0)


def test_identity_quad_preserves_interior():
    rectifier = GeometryRectifier([(0, 0), (40, 0), (0, 30), (40, 30)], (40, 30))
    frame = np.arange(30 * 40, dtype=np.float32).reshape(30, 40)

    rectified = rectifier.rectify(frame)

    np.testing.assert_allclose(rectified[1:-1, 1:-1], frame[1:-1, 1:-1], atol=1e-2)


def test_pixels_outside_source_are_zero():
    rectifier = GeometryRectifier([(-10, -10), (50, -10), (-10, 50), (50, 50)], (60, 60))
    frame = np.full((40, 40), 700.0, dtype=np.float32)

    rectified = rectifier.rectify(frame)

    assert rectified[0, 0] == 0.0
    assert rectified[30, 30] == pytest.approx(700.0)


@pytest.mark.parametrize("quad", [
    [(0, 0), (10, 0), (20, 0), (5, 5)],      # three collinear points
    [(0, 0), (0, 0), (0, 10), (10, 10)],     # coincident points
    [(0, 0), (10, 0), (0, 10)],              # too few points
])
def test_degenerate_quad_rejected(quad):
    with pytest.raises(CalibrationError):
        GeometryRectifier(quad, (100, 50))


def test_non_positive_target_size_rejected():
    with pytest.raises(CalibrationError):
        GeometryRectifier(DEFAULT_SOURCE_QUAD, (0, 120))

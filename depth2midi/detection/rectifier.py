"""
Perspective rectification of depth frames into keyboard-space.

The transform is computed once from four calibration point correspondences
and reused for every frame.
"""
import itertools
import logging
from typing import Sequence, Tuple

import cv2
import numpy as np

from .base import CalibrationError

# Minimum triangle area (pixels^2) for any three calibration points
MIN_TRIANGLE_AREA = 1e-3


def _triangle_area(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    return 0.5 * abs((b[0] - a[0]) * (c[1] - a[1]) - (b[1] - a[1]) * (c[0] - a[0]))


def validate_quad(points: np.ndarray) -> None:
    """
    Reject calibration quadrilaterals with three collinear (or coincident) points.

    Raises:
        CalibrationError: If the quadrilateral is degenerate
    """
    if points.shape != (4, 2):
        raise CalibrationError(f"Calibration needs exactly 4 (x, y) points, got shape {points.shape}")
    if not np.all(np.isfinite(points)):
        raise CalibrationError("Calibration points must be finite")
    for a, b, c in itertools.combinations(points, 3):
        if _triangle_area(a, b, c) < MIN_TRIANGLE_AREA:
            raise CalibrationError(
                f"Degenerate calibration quadrilateral: points {a.tolist()}, {b.tolist()}, "
                f"{c.tolist()} are collinear"
            )


class GeometryRectifier:
    """
    Maps raw depth frames onto a fixed-size keyboard-space image.

    Source points are given in the order of the destination corners:
    top-left, top-right, bottom-left, bottom-right.
    """

    def __init__(self, source_quad: Sequence[Tuple[float, float]], target_size: Tuple[int, int]):
        """
        Args:
            source_quad: Four (x, y) device-pixel points
            target_size: (width, height) of the rectified frame

        Raises:
            CalibrationError: If the geometry is degenerate
        """
        self.logger = logging.getLogger(f"{__name__}.GeometryRectifier")
        width, height = int(target_size[0]), int(target_size[1])
        if width <= 0 or height <= 0:
            raise CalibrationError(f"Rectified size must be positive, got {width}x{height}")
        self.target_size = (width, height)

        self.source_points = np.asarray(source_quad, dtype=np.float32).reshape(-1, 2)
        validate_quad(self.source_points)
        self.target_points = np.float32([
            [0, 0],
            [width, 0],
            [0, height],
            [width, height],
        ])

        self.matrix = cv2.getPerspectiveTransform(self.source_points, self.target_points)
        if not np.all(np.isfinite(self.matrix)) or abs(np.linalg.det(self.matrix)) < 1e-12:
            raise CalibrationError("Calibration produced a singular perspective transform")
        self.inverse_matrix = np.linalg.inv(self.matrix)

        self.logger.info(f"[RECTIFIER] Perspective transform ready, target {width}x{height}")
        self.logger.debug(f"[RECTIFIER] matrix=\n{self.matrix}")

    def rectify(self, frame: np.ndarray) -> np.ndarray:
        """Warp a frame into keyboard-space; pixels mapping outside the source are zero."""
        return cv2.warpPerspective(
            frame,
            self.matrix,
            self.target_size,
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=0,
        )

    def project_to_source(self, points: np.ndarray) -> np.ndarray:
        """Map keyboard-space (x, y) points back to device pixels."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 1, 2)
        return cv2.perspectiveTransform(pts, self.inverse_matrix).reshape(-1, 2)

    def project_to_keyboard(self, points: np.ndarray) -> np.ndarray:
        """Map device-pixel (x, y) points into keyboard-space."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 1, 2)
        return cv2.perspectiveTransform(pts, self.matrix.astype(np.float64)).reshape(-1, 2)

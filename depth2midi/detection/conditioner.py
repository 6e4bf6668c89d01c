"""
Depth signal conditioning: speckle smoothing and valid-band clamping.
"""
import logging

import cv2
import numpy as np

from .base import DetectionConfigError


class DepthConditioner:
    """
    Cleans a raw depth frame.

    Steps:
    1. Convert to float32
    2. Bilateral filter (suppresses speckle, keeps key-edge discontinuities)
    3. Zero every pixel, raw or filtered, at or beyond max_distance (no
       surface) or nearer than min_distance (above-keyboard noise)
    """

    def __init__(self,
                 min_distance: float,
                 max_distance: float,
                 diameter: int = 3,
                 sigma_color: float = 5.0,
                 sigma_space: float = 5.0):
        if min_distance < 0 or max_distance <= min_distance:
            raise DetectionConfigError(
                f"Invalid depth band [{min_distance}, {max_distance}]: need 0 <= min < max"
            )
        self.min_distance = float(min_distance)
        self.max_distance = float(max_distance)
        self.diameter = int(diameter)
        self.sigma_color = float(sigma_color)
        self.sigma_space = float(sigma_space)
        self.logger = logging.getLogger(f"{__name__}.DepthConditioner")

    def condition(self, frame: np.ndarray) -> np.ndarray:
        """Return a new float32 frame with values in {0} U [min_distance, max_distance)."""
        converted = frame.astype(np.float32)
        out_of_band = (converted >= self.max_distance) | (converted < self.min_distance)
        if self.diameter > 0:
            filtered = cv2.bilateralFilter(converted, self.diameter, self.sigma_color, self.sigma_space)
        else:
            filtered = converted

        # out-of-band raw pixels stay zero even when smoothed back into the band
        filtered[out_of_band] = 0.0
        filtered[filtered >= self.max_distance] = 0.0
        filtered[filtered < self.min_distance] = 0.0
        return filtered

    def normalize(self, frame: np.ndarray) -> np.ndarray:
        """Scale depth so the valid band maps onto [0, 1] (display only)."""
        scale = self.max_distance - self.min_distance
        return frame / scale - self.min_distance / scale
